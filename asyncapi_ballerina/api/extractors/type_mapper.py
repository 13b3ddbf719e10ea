"""Type mapping between AsyncAPI (JSON schema) types and Ballerina types."""

import copy
from typing import Any, Dict, Optional, Union


class _Unsupported:
    """Marker returned for schema types that have no Ballerina counterpart."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSUPPORTED"

    def __bool__(self) -> bool:
        return False


UNSUPPORTED = _Unsupported()

# Placeholders for types that only make sense with more context
ARRAY_MARKER = "[]"
RECORD_MARKER = "record {}"

HostType = Union[str, _Unsupported]

_PRIMITIVE_TYPES = {
    "string": "string",
    "integer": "int",
    "number": "decimal",
    "boolean": "boolean",
}

_NUMBER_FORMATS = {
    "float": "float",
    "double": "decimal",
    "decimal": "decimal",
}

SCALAR_HOST_TYPES = frozenset(set(_PRIMITIVE_TYPES.values()) | {"float"})


def to_host_type(spec_type: Optional[str], spec_format: Optional[str] = None) -> HostType:
    """
    Map a schema ``type`` (and ``format`` for numbers) to a Ballerina type name.

    ``array`` and ``object`` map to markers the caller has to complete with the
    item type or referenced record. Anything else is ``UNSUPPORTED`` and must be
    rejected by the caller.
    """
    if not isinstance(spec_type, str):
        return UNSUPPORTED
    normalized = spec_type.strip().lower()

    if normalized == "number" and spec_format:
        return _NUMBER_FORMATS.get(spec_format.strip().lower(), "decimal")
    if normalized in _PRIMITIVE_TYPES:
        return _PRIMITIVE_TYPES[normalized]
    if normalized == "array":
        return ARRAY_MARKER
    if normalized == "object":
        return RECORD_MARKER
    return UNSUPPORTED


def is_scalar(host_type: HostType) -> bool:
    return isinstance(host_type, str) and host_type in SCALAR_HOST_TYPES


# ------------------------------------------------------------------------------
# Ballerina -> schema

_HOST_TO_SCHEMA: Dict[str, Dict[str, Any]] = {
    "string": {"type": "string"},
    "int": {"type": "integer", "format": "int64"},
    "float": {"type": "number", "format": "float"},
    "decimal": {"type": "number", "format": "double"},
    "boolean": {"type": "boolean"},
    "byte": {"type": "integer", "format": "uint8"},
    "json": {},
    "anydata": {},
    "any": {},
}


def to_schema_type(host_type: str) -> Optional[Dict[str, Any]]:
    """JSON schema for a builtin Ballerina type, or None when it is not builtin."""
    schema = _HOST_TO_SCHEMA.get(host_type)
    return copy.deepcopy(schema) if schema is not None else None
