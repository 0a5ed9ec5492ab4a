"""
Resolve the ABI and call decoder of every contract involved in a run.

ABIs come from a user-supplied source when one is given and from the explorer
otherwise. Every address gets exactly one AbiEntry: a missing ABI or a
decoder that cannot be built degrades that address to undecoded transactions
but never fails the run.

Usage:
    from ethgasstats.extraction.decoders.abi import load_abi_source, resolve_abis

    source = load_abi_source(config.abi)
    abis = await resolve_abis(explorer, address, addresses, network, source)
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from ..core.explorer import EtherscanClient
from ..core.utils import load_abi_json
from .input_data import InputDataDecoder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UniformAbi:
    """One ABI applied to the queried address."""

    abi: list[dict[str, Any]]


@dataclass(frozen=True)
class PerAddressAbi:
    """ABIs bound to explicit (lower-cased) addresses."""

    abis: dict[str, Any]


AbiSource = UniformAbi | PerAddressAbi


@dataclass(frozen=True)
class AbiEntry:
    """
    Resolved ABI of one contract.

    ``decoder`` is None when no usable decoder could be built; ``error``
    then holds the reason.
    """

    address: str
    abi: Any
    decoder: InputDataDecoder | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.decoder is not None


def parse_abi_source(abis: list[Any]) -> AbiSource:
    """
    Classify a parsed ABI source.

    A list whose items carry no ``address`` key is a plain ABI and applies to
    the queried address. Otherwise it is a list of ``{address, abi}`` pairs;
    pairs without an address are skipped and ABIs given as JSON text are
    parsed.

    Args:
        abis: Parsed ABI source

    Returns:
        UniformAbi or PerAddressAbi
    """
    if not abis:
        logger.warning("ABI source is empty, all ABIs will be fetched")
        return PerAddressAbi({})

    if not any(isinstance(item, dict) and "address" in item for item in abis):
        return UniformAbi(abis)

    per_address: dict[str, Any] = {}
    for item in abis:
        if not isinstance(item, dict) or not item.get("address"):
            logger.warning(f"Skipping ABI source item without address: {item!r:.80}")
            continue

        abi = item.get("abi", [])
        if isinstance(abi, str):
            try:
                abi = json.loads(abi)
            except json.JSONDecodeError as e:
                logger.error(f"Invalid ABI JSON for address {item['address']}: {e}")
                abi = []

        per_address[item["address"].lower()] = abi

    return PerAddressAbi(per_address)


def load_abi_source(source: str | Path | list[Any] | None) -> AbiSource | None:
    """
    Load and classify a user-supplied ABI source.

    Args:
        source: Inline JSON, path to a JSON file, parsed list or None

    Returns:
        AbiSource, or None when no source was supplied

    Raises:
        ValueError: If the source is not valid JSON or not a list
    """
    if source is None or source == "":
        return None

    return parse_abi_source(load_abi_json(source))


def build_decoder(
    abi: Any, address: str
) -> tuple[InputDataDecoder | None, str | None]:
    """
    Build a call decoder, isolating construction failures.

    Args:
        abi: ABI definition list
        address: Contract address (for logging)

    Returns:
        Tuple of (decoder, error); exactly one of them is None
    """
    try:
        return InputDataDecoder(abi), None
    except Exception as e:
        logger.error(
            f"Error occurred on creating txs' input data decoder for address {address}: {e}"
        )
        return None, f"Decoder construction failed: {e}"


def _build_entry(address: str, abi: Any, error: str | None = None) -> AbiEntry:
    if error is not None or not abi:
        return AbiEntry(address=address, abi=abi, error=error or "ABI is empty")

    decoder, decoder_error = build_decoder(abi, address)
    return AbiEntry(address=address, abi=abi, decoder=decoder, error=decoder_error)


async def fetch_abi(
    explorer: EtherscanClient, address: str, network: str = "mainnet"
) -> AbiEntry:
    """
    Fetch the ABI of one contract from the explorer.

    Never raises: explorer errors, "NOTOK" answers and malformed ABI text are
    logged and degrade the entry to an empty ABI without decoder.

    Args:
        explorer: Explorer client
        address: Lower-cased contract address
        network: Network name

    Returns:
        AbiEntry for the address
    """
    try:
        response = await explorer.get_abi(network, address)
    except Exception as e:
        response = {"error": repr(e)}

    error = None
    abi: Any = []

    if response.get("error"):
        error = str(response["error"])
    elif response.get("message") == "NOTOK":
        error = str(response.get("result"))
    else:
        try:
            abi = json.loads(response.get("result") or "[]")
        except (json.JSONDecodeError, TypeError) as e:
            error = f"Malformed ABI: {e}"
        else:
            if not isinstance(abi, list):
                error = f"Malformed ABI: expected list, got {type(abi).__name__}"

    if error is not None:
        logger.error(f"Error occurred on getting contract {address} abi: {error}")
        return _build_entry(address, [], error)

    return _build_entry(address, abi)


async def resolve_abis(
    explorer: EtherscanClient,
    address: str,
    addresses: Iterable[str],
    network: str = "mainnet",
    abi_source: AbiSource | None = None,
) -> dict[str, AbiEntry]:
    """
    Resolve one AbiEntry per address.

    Supplied ABIs are applied first; every remaining address is fetched from
    the explorer. Fetches run concurrently and are all awaited before the map
    is returned.

    Args:
        explorer: Explorer client
        address: Queried contract address (target of a UniformAbi)
        addresses: Contract addresses referenced by the transactions
        network: Network name
        abi_source: Optional user-supplied ABI source

    Returns:
        Mapping of lower-cased address to AbiEntry
    """
    abis: dict[str, AbiEntry] = {}

    if isinstance(abi_source, UniformAbi):
        target = address.lower()
        abis[target] = _build_entry(target, abi_source.abi)
    elif isinstance(abi_source, PerAddressAbi):
        for target, abi in abi_source.abis.items():
            abis[target] = _build_entry(target, abi)

    pending = sorted({a.lower() for a in addresses} - set(abis))
    logger.info(
        f"Resolving ABIs: {len(abis)} supplied, {len(pending)} to fetch from explorer"
    )

    entries = await asyncio.gather(
        *(fetch_abi(explorer, target, network) for target in pending)
    )
    for entry in entries:
        abis[entry.address] = entry

    decodable = sum(1 for entry in abis.values() if entry.ok)
    logger.info(f"Resolved {len(abis)} ABIs, {decodable} with a usable decoder")

    return abis
