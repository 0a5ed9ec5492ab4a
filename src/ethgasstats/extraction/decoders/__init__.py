"""ABI resolution and call data decoding."""

from .abi import AbiEntry, PerAddressAbi, UniformAbi, resolve_abis
from .input_data import DecodedInput, InputDataDecoder

__all__ = [
    "AbiEntry",
    "DecodedInput",
    "InputDataDecoder",
    "PerAddressAbi",
    "UniformAbi",
    "resolve_abis",
]
