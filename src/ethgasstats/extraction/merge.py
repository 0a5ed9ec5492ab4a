"""
Reconcile normal and internal transactions.

A call to a proxy shows up twice in Etherscan: once as a normal transaction to
the proxy and once as an internal delegate call to the implementation. The
merge keeps one record per normal transaction and points its
``contractAddress`` at the contract whose code actually ran, so that the call
data can later be decoded with the right ABI.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)


def merge_transactions(
    txs: list[dict[str, Any]], itxs: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """
    Merge internal delegate calls into the normal transaction list.

    For each internal record the first normal record with the same hash gets
    ``contractAddress`` set to the internal record's destination. Only the
    first internal record per hash is applied. Records left without a
    ``contractAddress`` default to their own ``to``.

    Args:
        txs: Normal transactions (order is preserved)
        itxs: Internal delegate-call transactions

    Returns:
        New list of shallow-copied normal records; inputs are not mutated
    """
    merged = [dict(tx) for tx in txs]
    applied: set[str] = set()

    for itx in itxs:
        tx_hash = itx.get("hash")
        if tx_hash in applied:
            continue

        tx = next((tx for tx in merged if tx.get("hash") == tx_hash), None)
        if tx is not None:
            tx["contractAddress"] = itx.get("to")
            applied.add(tx_hash)

    for tx in merged:
        if not tx.get("contractAddress"):
            tx["contractAddress"] = tx.get("to")

    logger.info(
        f"Merged {len(itxs)} internal transactions into {len(merged)} transactions "
        f"({len(applied)} redirected)"
    )
    return merged


def collect_addresses(txs: list[dict[str, Any]]) -> set[str]:
    """
    Collect the distinct, lower-cased contract addresses of merged transactions.

    Raises:
        ValueError: If a transaction has no contractAddress
    """
    addresses: set[str] = set()

    for tx in txs:
        address = tx.get("contractAddress")
        if not address:
            raise ValueError(
                f"Transaction {tx.get('hash', 'unknown')} has no contractAddress"
            )
        addresses.add(address.lower())

    return addresses
