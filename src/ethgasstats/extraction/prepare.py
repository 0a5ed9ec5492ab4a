"""
Decode merged transactions and bind their analytic features.

Usage:
    from ethgasstats.extraction.prepare import prepare_transactions

    prepared = prepare_transactions(merged_txs, abis)
    if trace:
        await enrich_organization_timestamps(explorer, prepared, network)
"""

import logging
from typing import Any

from .core.explorer import EtherscanClient, ExplorerError
from .decoders.abi import AbiEntry
from .decoders.input_data import DecodedInput
from .features import FeatureDeriver, derive_features

logger = logging.getLogger(__name__)

ORGANIZATION_PROPERTY = "arg__organization"
ORGANIZATION_TIMESTAMP = "arg__organization_timeStamp"


def bind_decoded_input(
    tx: dict[str, Any],
    decoded: DecodedInput,
    derive: FeatureDeriver = derive_features,
) -> None:
    """
    Attach a decoded call to its transaction record.

    Replaces ``input`` with the decoded mapping, sets ``method``, ``types``,
    ``names``, ``inputs``, builds ``properties`` (``arg_<name>`` → value;
    a later argument with a duplicate name overwrites an earlier one) and
    stores the feature columns returned by ``derive``.
    """
    properties: dict[str, Any] = {}
    for index, name in enumerate(decoded.names):
        properties[f"arg_{name}"] = decoded.inputs[index]

    tx["input"] = decoded.to_dict()
    tx["method"] = decoded.method
    tx["types"] = decoded.types
    tx["names"] = decoded.names
    tx["inputs"] = decoded.inputs
    tx["properties"] = properties
    tx["features"] = list(derive(decoded, tx))


def prepare_transactions(
    txs: list[dict[str, Any]],
    abis: dict[str, AbiEntry],
    derive: FeatureDeriver = derive_features,
) -> list[dict[str, Any]]:
    """
    Decode every transaction whose contract has a usable decoder.

    Records are updated in place. Transactions without an ABI entry or
    decoder keep their raw input and contribute no features.

    Args:
        txs: Merged transactions
        abis: Resolved ABI entries keyed by lower-cased address
        derive: Feature deriver

    Returns:
        List of the prepared transaction records
    """
    prepared = list(txs)
    decoded_count = 0

    for tx in prepared:
        entry = abis.get((tx.get("contractAddress") or "").lower())

        if entry is None or entry.decoder is None:
            tx.setdefault("features", [])
            continue

        bind_decoded_input(tx, entry.decoder.decode_data(tx.get("input")), derive)
        decoded_count += 1

    logger.info(f"Decoded {decoded_count} of {len(prepared)} transactions")
    return prepared


async def get_contract_creation_date(
    explorer: EtherscanClient, address: str, network: str = "mainnet"
) -> int:
    """
    Get the creation timestamp of a contract.

    Returns:
        Unix timestamp, or 0 if the explorer has no usable creation record
    """
    try:
        response = await explorer.get_contract_creation_date(network, address)
    except ExplorerError as e:
        logger.error(f"Error occurred on getting contract {address} creation date: {e}")
        return 0

    result = response.get("result") or []
    if not result:
        return 0

    timestamp = result[0].get("timeStamp") or 0
    try:
        return int(timestamp)
    except (TypeError, ValueError):
        logger.error(
            f"Error occurred on getting contract {address} creation date: "
            f"malformed timestamp {timestamp!r}"
        )
        return 0


def _organization_address(tx: dict[str, Any]) -> str | None:
    value = (tx.get("properties") or {}).get(ORGANIZATION_PROPERTY)
    if not isinstance(value, str) or not value:
        return None

    value = value.lower()
    return value if value.startswith("0x") else f"0x{value}"


async def enrich_organization_timestamps(
    explorer: EtherscanClient,
    txs: list[dict[str, Any]],
    network: str = "mainnet",
) -> dict[str, int]:
    """
    Attach the creation timestamp of the referenced organization contract.

    Organizations are resolved one after another, once per distinct address.
    Every record with an ``arg__organization`` property gets
    ``arg__organization_timeStamp`` and that column in its features.

    Args:
        explorer: Explorer client
        txs: Prepared transactions, updated in place
        network: Network name

    Returns:
        Mapping of organization address to creation timestamp
    """
    organizations: list[str] = []
    for tx in txs:
        organization = _organization_address(tx)
        if organization is not None and organization not in organizations:
            organizations.append(organization)

    timestamps: dict[str, int] = {}
    for organization in organizations:
        timestamps[organization] = await get_contract_creation_date(
            explorer, organization, network
        )

    for tx in txs:
        organization = _organization_address(tx)
        if organization is None:
            continue

        tx[ORGANIZATION_TIMESTAMP] = timestamps[organization]
        features = tx.setdefault("features", [])
        if ORGANIZATION_TIMESTAMP not in features:
            features.append(ORGANIZATION_TIMESTAMP)

    logger.info(f"Resolved creation dates of {len(timestamps)} organizations")
    return timestamps
