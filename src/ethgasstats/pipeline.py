"""
End-to-end gas statistics pipeline.

validate → fetch (normal + internal) → merge → collect addresses →
resolve ABIs → decode and bind features → (trace) organization timestamps →
export CSV chunks.

Usage:
    from ethgasstats.pipeline import run_pipeline

    async with EtherscanClient(api_key) as explorer:
        paths = await run_pipeline(config, explorer)
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable

from .config import PipelineConfig
from .extraction.core.explorer import EtherscanClient
from .extraction.core.fetcher import (
    fetch_internal_transactions,
    fetch_transactions,
    validate_contract_address,
)
from .extraction.decoders.abi import load_abi_source, resolve_abis
from .extraction.export import export_to_csv
from .extraction.features import FeatureDeriver, derive_features
from .extraction.merge import collect_addresses, merge_transactions
from .extraction.prepare import enrich_organization_timestamps, prepare_transactions

logger = logging.getLogger(__name__)


async def _fetch_or_empty(
    fetch: Callable[..., Awaitable[list[dict[str, Any]]]],
    explorer: EtherscanClient,
    address: str,
    network: str,
    label: str,
) -> list[dict[str, Any]]:
    try:
        return await fetch(explorer, address, network)
    except Exception as e:
        logger.error(f"Error occurred on fetching {label} of {address}: {e}")
        return []


async def collect_transactions(
    explorer: EtherscanClient, address: str, network: str = "mainnet"
) -> list[dict[str, Any]]:
    """
    Fetch normal and internal transactions and merge them.

    Both lists are fetched concurrently. A failed fetch is logged and
    treated as an empty list.
    """
    txs, itxs = await asyncio.gather(
        _fetch_or_empty(fetch_transactions, explorer, address, network, "transactions"),
        _fetch_or_empty(
            fetch_internal_transactions,
            explorer,
            address,
            network,
            "internal transactions",
        ),
    )
    return merge_transactions(txs, itxs)


async def run_pipeline(
    config: PipelineConfig,
    explorer: EtherscanClient,
    derive: FeatureDeriver = derive_features,
) -> list[Path]:
    """
    Run the whole pipeline for ``config.address``.

    Args:
        config: Pipeline configuration
        explorer: Explorer client
        derive: Feature deriver applied to every decoded call

    Returns:
        Paths of the written CSV files

    Raises:
        ValueError: If the address is not a contract, the ABI source is
            invalid, or there is no transaction to export
        OSError: If a CSV chunk cannot be written
    """
    address, network = config.address, config.network

    # Parse the ABI source up front so a bad source fails before any fetch
    abi_source = load_abi_source(config.abi)

    validation = await validate_contract_address(explorer, address, network)
    if not validation.validated:
        raise ValueError(f"{validation.err}: {address}")

    logger.info(f"Collecting transactions of {address} on {network}")
    txs = await collect_transactions(explorer, address, network)

    addresses = collect_addresses(txs)
    abis = await resolve_abis(explorer, address, addresses, network, abi_source)

    prepared = prepare_transactions(txs, abis, derive)

    if config.trace:
        await enrich_organization_timestamps(explorer, prepared, network)

    return await export_to_csv(prepared, address, config.output_dir, config.chunk_size)
