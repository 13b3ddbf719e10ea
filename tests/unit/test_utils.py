"""
Unit tests for naming helpers.
"""

import pytest

from asyncapi_ballerina.utils import (
    capitalize,
    escape_identifier,
    extract_reference_type,
    get_valid_name,
    normalize_doc,
    path_placeholders,
    replace_placeholders,
)


class TestGetValidName:

    def test_plain_identifier_is_kept(self):
        assert get_valid_name("roomId") == "roomId"

    def test_separators_are_camel_cased(self):
        assert get_valid_name("x-api-key") == "xApiKey"
        assert get_valid_name("user name") == "userName"

    def test_type_names_start_upper_case(self):
        assert get_valid_name("ticker", is_type=True) == "Ticker"
        assert get_valid_name("order-book", is_type=True) == "OrderBook"

    def test_field_names_start_lower_case(self):
        assert get_valid_name("Nickname") == "nickname"

    def test_all_caps_names_are_kept(self):
        assert get_valid_name("API") == "API"

    def test_leading_digit(self):
        assert get_valid_name("2fa") == "_2fa"

    def test_keywords_are_escaped(self):
        assert get_valid_name("limit") == "'limit"
        assert get_valid_name("type") == "'type"
        assert escape_identifier("room") == "room"

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            get_valid_name("")
        with pytest.raises(ValueError):
            get_valid_name("---")


class TestHelpers:

    def test_extract_reference_type(self):
        assert extract_reference_type("#/components/schemas/Ticker") == "Ticker"
        with pytest.raises(ValueError):
            extract_reference_type("Ticker")

    def test_placeholders(self):
        assert path_placeholders("/rooms/{roomId}/users/{user-id}") == ["roomId", "user-id"]
        assert replace_placeholders("{host}:{port}", lambda name: name.upper()) == "HOST:PORT"

    def test_capitalize(self):
        assert capitalize("chat") == "Chat"
        assert capitalize("") == ""

    def test_normalize_doc(self):
        assert normalize_doc("  Multi\n  line   text ") == "Multi line text"
        assert normalize_doc("") is None
        assert normalize_doc(None) is None
