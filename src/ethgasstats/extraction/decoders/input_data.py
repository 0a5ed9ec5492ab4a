"""
Decode transaction call data against a contract ABI.

Usage:
    from ethgasstats.extraction.decoders.input_data import InputDataDecoder

    decoder = InputDataDecoder(abi)
    decoded = decoder.decode_data(tx["input"])
    decoded.method  # "transfer"
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils.abi import collapse_if_tuple
from web3 import Web3
from web3.exceptions import Web3Exception

from ..core.normalization import normalize_decoded_value, normalize_hex_field

logger = logging.getLogger(__name__)

SELECTOR_SIZE = 4


@dataclass
class DecodedInput:
    """Decoded call: method name plus index-aligned types, names and values."""

    method: str | None = None
    types: list[str] = field(default_factory=list)
    inputs: list[Any] = field(default_factory=list)
    names: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class InputDataDecoder:
    """
    Decoder for the call data of one contract.

    Construction validates the ABI shape and raises on malformed
    descriptors, so that callers can isolate bad ABIs per contract. An ABI
    without function descriptors (events or constructor only) builds a
    decoder that decodes every input to an empty DecodedInput.
    """

    def __init__(self, abi: list[dict[str, Any]]):
        """
        Build a decoder from an ABI definition list.

        Args:
            abi: ABI as a list of function/event descriptors

        Raises:
            ValueError: If the ABI is not a list of descriptors
            Web3Exception: If web3 rejects a descriptor
        """
        if not isinstance(abi, list) or not all(isinstance(e, dict) for e in abi):
            raise ValueError("ABI must be a list of descriptor objects")

        self.abi = abi
        self._contract = Web3().eth.contract(abi=abi)

        # Descriptors without a type default to function
        self.has_functions = any(
            entry.get("type", "function") == "function" for entry in abi
        )
        if not self.has_functions:
            logger.debug("ABI has no function descriptors; all inputs decode empty")

    def decode_data(self, data: str | bytes | None) -> DecodedInput:
        """
        Decode call data.

        Args:
            data: Transaction input as hex string or bytes

        Returns:
            DecodedInput; empty (method None) when the selector matches no
            function of the ABI or the arguments cannot be decoded
        """
        try:
            data_bytes = normalize_hex_field(data)
        except ValueError as e:
            logger.warning(f"Cannot decode malformed input data: {e}")
            return DecodedInput()

        if not self.has_functions or len(data_bytes) < SELECTOR_SIZE:
            return DecodedInput()

        selector = "0x" + data_bytes[:SELECTOR_SIZE].hex()

        try:
            function = self._contract.get_function_by_selector(selector)
        except (ValueError, Web3Exception):
            logger.debug(f"No function matches selector {selector}")
            return DecodedInput()

        params = function.abi.get("inputs", [])
        types = [collapse_if_tuple(dict(param)) for param in params]
        names = [param.get("name", "") for param in params]

        try:
            values = abi_decode(types, data_bytes[SELECTOR_SIZE:])
        except (DecodingError, ValueError) as e:
            logger.warning(
                f"Failed to decode arguments of {function.abi.get('name')} "
                f"({selector}): {e}"
            )
            return DecodedInput()

        return DecodedInput(
            method=function.abi.get("name"),
            types=types,
            inputs=[normalize_decoded_value(value) for value in values],
            names=names,
        )
