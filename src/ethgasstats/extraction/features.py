"""
Default feature derivation for decoded calls.

A feature deriver receives the decoded call and its transaction record, writes
feature values onto the record and returns the names of the columns it
wrote. The exporter adds every returned name to the CSV schema.

Columns written here:
- ``arg_<name>`` for scalar arguments (address, integers, bool, bytesN)
- ``arg_<name>_length`` for array arguments
- ``arg_<name>_size`` for dynamic ``bytes`` and ``string`` arguments (bytes)
- ``arg_<name>`` as JSON text for struct arguments
"""

from typing import Any, Callable

from .core.normalization import normalize_hex_field, to_json
from .decoders.input_data import DecodedInput

FeatureDeriver = Callable[[DecodedInput, dict[str, Any]], list[str]]


def _byte_size(abi_type: str, value: Any) -> int:
    if abi_type == "string":
        return len(str(value).encode("utf-8"))
    try:
        return len(normalize_hex_field(value))
    except ValueError:
        return 0


def derive_features(decoded: DecodedInput, tx: dict[str, Any]) -> list[str]:
    """
    Write one feature column per decoded argument onto ``tx``.

    Args:
        decoded: Decoded call
        tx: Transaction record, updated in place

    Returns:
        Names of the feature columns written, in argument order
    """
    features: list[str] = []

    for name, abi_type, value in zip(decoded.names, decoded.types, decoded.inputs):
        column = f"arg_{name}"

        if abi_type.endswith("]"):
            column = f"{column}_length"
            tx[column] = len(value)
        elif abi_type in ("bytes", "string"):
            column = f"{column}_size"
            tx[column] = _byte_size(abi_type, value)
        elif abi_type.startswith("("):
            tx[column] = to_json(value)
        else:
            tx[column] = value

        if column not in features:
            features.append(column)

    return features
