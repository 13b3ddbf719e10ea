"""
Logging configuration for the generation pipeline.

Usage in generator modules:
    from asyncapi_ballerina.api.gen_logging import get_logger
    logger = get_logger(__name__)

The root logger name is "balasync.gen". Log levels are controlled by the CLI.
"""

import logging
import sys

_LOGGER_NAME = "balasync.gen"


def get_logger(name: str = None) -> logging.Logger:
    """
    Return a child logger under the balasync.gen hierarchy.

    Args:
        name: Module __name__, or None for the root balasync.gen logger.

    Returns:
        logging.Logger instance
    """
    if name is None or name == _LOGGER_NAME:
        return logging.getLogger(_LOGGER_NAME)
    # "asyncapi_ballerina.api.builders.auth_resolver" -> "balasync.gen.auth_resolver"
    short = name.rsplit(".", 1)[-1]
    return logging.getLogger(f"{_LOGGER_NAME}.{short}")


def configure_gen_logging(verbose: bool = False, quiet: bool = False) -> None:
    """
    Configure the balasync.gen logger hierarchy.

    Levels:
        --verbose / -v  -> DEBUG   (per parameter / per field detail)
        (default)       -> INFO    (phase lines)
        --quiet / -q    -> WARNING (warnings and errors only)

    Args:
        verbose: Enable DEBUG-level output.
        quiet:   Suppress INFO output, keeping warnings and errors.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    root_logger = logging.getLogger(_LOGGER_NAME)
    root_logger.setLevel(level)

    if root_logger.handlers:
        for handler in root_logger.handlers:
            handler.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_GenFormatter())
    root_logger.addHandler(handler)

    root_logger.propagate = False


class _GenFormatter(logging.Formatter):
    """Emit the message as-is; generator code already tags its lines."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.levelno >= logging.WARNING:
            return f"[{record.levelname}] {message}"
        return message
