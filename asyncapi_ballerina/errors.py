"""
Errors raised by the generation pipeline.

Every failure of a generation call is an ``AsyncApiGeneratorError``; the
subclasses only narrow the category so callers can decide whether to abort a
batch or skip the offending channel/scheme.
"""


class AsyncApiGeneratorError(Exception):
    """Base class for all generator failures."""


class UnsupportedSchemeError(AsyncApiGeneratorError):
    """A security scheme family (or flow) the generator does not implement."""


class NoUsableAuthError(AsyncApiGeneratorError):
    """Neither key based nor token based auth could be derived."""


class UnsupportedBindingError(AsyncApiGeneratorError):
    """A channel binding is missing or is not the websocket binding."""


class UnsupportedParameterTypeError(AsyncApiGeneratorError):
    """A channel parameter resolves to a type that cannot be a parameter."""

    def __init__(self, message: str, param_name: str):
        super().__init__(message)
        self.param_name = param_name


class UnsupportedReferenceError(AsyncApiGeneratorError):
    """A ``$ref`` could not be resolved inside the loaded document."""


class MissingDispatchAnnotationError(AsyncApiGeneratorError):
    """A service lacks a usable ``@websocket:ServiceConfig`` dispatcher key."""
