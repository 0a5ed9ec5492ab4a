"""
Data normalization utilities for decoded call data.

This module converts values produced by the ABI decoder (bytes, HexBytes,
tuples, big integers) into plain Python structures that serialize cleanly to
JSON and CSV.

The normalization layer ensures:
- Consistent hex string format (with or without 0x prefix)
- Proper handling of Web3.py HexBytes objects
- Tuples (ABI structs and fixed arrays) become lists

Usage:
    from ethgasstats.extraction.core.normalization import (
        normalize_decoded_value,
        normalize_hex_string,
    )

    inputs = [normalize_decoded_value(value) for value in decoded_values]
"""

import json
import logging
from typing import Any

from hexbytes import HexBytes

logger = logging.getLogger(__name__)


def normalize_hex_field(hex_string: str | HexBytes | bytes | None) -> bytes:
    """
    Normalize a hex field to bytes, handling various input formats.

    It handles:
    - Strings with 0x prefix: "0x1234..."
    - Strings without 0x prefix: "1234..."
    - HexBytes objects (from Web3.py)
    - Raw bytes objects
    - Empty values: "0x", "", None

    Args:
        hex_string: Hex data in any supported format

    Returns:
        Raw bytes representation of the hex data

    Raises:
        ValueError: If the input cannot be parsed as hex data

    Examples:
        >>> normalize_hex_field("0x1234")
        b'\\x12\\x34'
        >>> normalize_hex_field(HexBytes("0x1234"))
        b'\\x12\\x34'
    """
    if hex_string is None or hex_string == "" or hex_string == "0x":
        return b""

    # HexBytes subclasses bytes, check it first
    if isinstance(hex_string, HexBytes):
        return bytes(hex_string)

    if isinstance(hex_string, bytes):
        return hex_string

    if isinstance(hex_string, str):
        hex_clean = hex_string[2:] if hex_string.startswith("0x") else hex_string

        try:
            return bytes.fromhex(hex_clean)
        except ValueError as e:
            raise ValueError(f"Invalid hex string: {hex_string}") from e

    raise ValueError(f"Unsupported hex field type: {type(hex_string)}")


def normalize_hex_string(
    hex_data: str | HexBytes | bytes | None, with_prefix: bool = True
) -> str:
    """
    Normalize hex data to a consistent string format.

    Args:
        hex_data: Hex data in any supported format
        with_prefix: If True, include '0x' prefix in output

    Returns:
        Hex string in consistent format

    Examples:
        >>> normalize_hex_string("1234", with_prefix=True)
        '0x1234'
        >>> normalize_hex_string(b"\\x12\\x34")
        '0x1234'
    """
    hex_str = normalize_hex_field(hex_data).hex()
    return f"0x{hex_str}" if with_prefix else hex_str


def normalize_decoded_value(value: Any) -> Any:
    """
    Convert a decoded ABI value into a JSON-friendly structure.

    - bytes / HexBytes → hex string with 0x prefix
    - tuples and lists → lists (recursively normalized)
    - dicts → dicts with normalized values
    - everything else (int, bool, str) is returned unchanged

    Args:
        value: Value produced by the ABI decoder

    Returns:
        Normalized value
    """
    if isinstance(value, (bytes, bytearray)):
        return normalize_hex_string(bytes(value))

    if isinstance(value, (list, tuple)):
        return [normalize_decoded_value(item) for item in value]

    if isinstance(value, dict):
        return {key: normalize_decoded_value(item) for key, item in value.items()}

    return value


def json_default(obj: Any) -> Any:
    """
    ``json.dumps`` fallback for values that survive normalization.

    Raises:
        TypeError: If object type is not supported
    """
    if isinstance(obj, (bytes, bytearray)):
        return normalize_hex_string(bytes(obj))

    if isinstance(obj, (set, frozenset)):
        return sorted(obj)

    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def to_json(value: Any) -> str:
    """Serialize a structured value to compact JSON text."""
    return json.dumps(value, default=json_default, separators=(",", ":"))
