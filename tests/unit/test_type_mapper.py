"""
Unit tests for the schema type <-> Ballerina type mapping.
"""

import pytest

from asyncapi_ballerina.api.extractors.type_mapper import (
    ARRAY_MARKER,
    RECORD_MARKER,
    UNSUPPORTED,
    is_scalar,
    to_host_type,
    to_schema_type,
)


class TestToHostType:
    """Test the forward mapping used by the parameter and type builders."""

    @pytest.mark.parametrize("spec_type,expected", [
        ("string", "string"),
        ("integer", "int"),
        ("number", "decimal"),
        ("boolean", "boolean"),
    ])
    def test_primitives(self, spec_type, expected):
        assert to_host_type(spec_type) == expected

    def test_number_formats(self):
        """Numbers resolve through their format, not the bare type."""
        assert to_host_type("number", "float") == "float"
        assert to_host_type("number", "double") == "decimal"
        assert to_host_type("number", "something-else") == "decimal"

    def test_format_ignored_for_non_numbers(self):
        assert to_host_type("string", "date-time") == "string"
        assert to_host_type("integer", "int32") == "int"

    def test_structured_markers(self):
        assert to_host_type("array") == ARRAY_MARKER
        assert to_host_type("object") == RECORD_MARKER

    @pytest.mark.parametrize("spec_type", ["null", "file", "", None, 42])
    def test_unsupported_is_a_marker_not_a_substitute(self, spec_type):
        result = to_host_type(spec_type)
        assert result is UNSUPPORTED
        assert not result

    def test_is_scalar(self):
        assert is_scalar("int")
        assert is_scalar("float")
        assert not is_scalar(ARRAY_MARKER)
        assert not is_scalar(RECORD_MARKER)
        assert not is_scalar(UNSUPPORTED)


class TestToSchemaType:
    """Test the reverse mapping used for service -> AsyncAPI."""

    def test_builtins(self):
        assert to_schema_type("string") == {"type": "string"}
        assert to_schema_type("int") == {"type": "integer", "format": "int64"}
        assert to_schema_type("float") == {"type": "number", "format": "float"}
        assert to_schema_type("decimal") == {"type": "number", "format": "double"}
        assert to_schema_type("json") == {}

    def test_unknown_type_is_none(self):
        assert to_schema_type("Ticker") is None

    def test_returns_fresh_copies(self):
        first = to_schema_type("int")
        first["x-nullable"] = True
        assert "x-nullable" not in to_schema_type("int")
