"""
Tests for data normalization utilities.

Tests hex field parsing and decoded value normalization to ensure consistent
JSON / CSV output across decoder value types.
"""

import json

import pytest
from hexbytes import HexBytes

from ethgasstats.extraction.core.normalization import (
    json_default,
    normalize_decoded_value,
    normalize_hex_field,
    normalize_hex_string,
    to_json,
)


class TestNormalizeHexField:
    """Test normalize_hex_field function with various input formats."""

    def test_hex_string_with_prefix(self):
        assert normalize_hex_field("0x1234abcd") == b"\x12\x34\xab\xcd"

    def test_hex_string_without_prefix(self):
        assert normalize_hex_field("1234abcd") == b"\x12\x34\xab\xcd"

    def test_hexbytes_object(self):
        assert normalize_hex_field(HexBytes("0x1234abcd")) == b"\x12\x34\xab\xcd"

    def test_empty_values(self):
        assert normalize_hex_field("") == b""
        assert normalize_hex_field("0x") == b""
        assert normalize_hex_field(None) == b""

    def test_invalid_hex_raises_error(self):
        with pytest.raises(ValueError, match="Invalid hex string"):
            normalize_hex_field("0xGGGG")

    def test_unsupported_type_raises_error(self):
        with pytest.raises(ValueError, match="Unsupported hex field type"):
            normalize_hex_field(12345)


class TestNormalizeHexString:
    """Test normalize_hex_string function for consistent string output."""

    def test_with_prefix_from_string_without(self):
        assert normalize_hex_string("1234", with_prefix=True) == "0x1234"

    def test_without_prefix_from_string_with(self):
        assert normalize_hex_string("0x1234", with_prefix=False) == "1234"

    def test_from_hexbytes(self):
        assert normalize_hex_string(HexBytes("0x1234")) == "0x1234"

    def test_from_bytes(self):
        assert normalize_hex_string(b"\x12\x34") == "0x1234"


class TestNormalizeDecodedValue:
    """Test conversion of decoder output to JSON-friendly values."""

    def test_bytes_become_hex(self):
        assert normalize_decoded_value(b"\xde\xad") == "0xdead"

    def test_tuples_become_lists(self):
        value = (1, (b"\x01", "0xabc"), [True, False])

        assert normalize_decoded_value(value) == [1, ["0x01", "0xabc"], [True, False]]

    def test_dict_values_are_normalized(self):
        assert normalize_decoded_value({"salt": b"\x00\x01"}) == {"salt": "0x0001"}

    def test_scalars_are_unchanged(self):
        big = 2**255
        assert normalize_decoded_value(big) == big
        assert normalize_decoded_value("text") == "text"


class TestJsonSerialization:
    """Test JSON helpers used for CSV cells."""

    def test_to_json_is_compact(self):
        assert to_json({"arg_to": "0x1", "arg_ids": [1, 2]}) == (
            '{"arg_to":"0x1","arg_ids":[1,2]}'
        )

    def test_bytes_fallback(self):
        assert json.loads(to_json([b"\x12\x34"])) == ["0x1234"]

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError, match="not JSON serializable"):
            json_default(object())
