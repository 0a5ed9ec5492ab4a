"""
Transaction fetching utilities.

This module provides functions for validating the queried address and for
fetching its successful normal and internal (delegate) calls from the
explorer.
"""

import logging
from dataclasses import dataclass
from typing import Any

from .explorer import EtherscanClient

logger = logging.getLogger(__name__)

# Sentinel Etherscan uses for "no error" on transaction records
NO_ERROR = "0"
# Code returned by eth_getCode for externally-owned accounts
EMPTY_CODE = "0x"
DELEGATE_CALL = "delegatecall"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating the queried address."""

    validated: bool = True
    err: str = ""


async def validate_contract_address(
    explorer: EtherscanClient, address: str, network: str = "mainnet"
) -> ValidationResult:
    """
    Check that an address is a deployed contract.

    Does not raise for a negative answer; callers must check
    ``ValidationResult.validated`` before proceeding.

    Args:
        explorer: Explorer client
        address: Address to validate
        network: Network name

    Returns:
        ValidationResult with a human-readable reason when invalid
    """
    response = await explorer.validate_address(address, network)

    if response.get("error") or response.get("message") == "NOTOK":
        logger.error(
            f"Address validation failed for {address}: "
            f"{response.get('error') or response.get('result')}"
        )
        return ValidationResult(False, "Address specified is invalid")

    if response.get("result") == EMPTY_CODE:
        return ValidationResult(False, "Address specified is for External Owned Account")

    return ValidationResult()


async def fetch_transactions(
    explorer: EtherscanClient, address: str, network: str = "mainnet"
) -> list[dict[str, Any]]:
    """
    Fetch successful normal transactions sent to an address.

    Records where the address only appears as sender are dropped.

    Args:
        explorer: Explorer client
        address: Queried contract address
        network: Network name

    Returns:
        Raw transaction records with ``isError == "0"`` and ``to == address``
    """
    txs = await explorer.list_transactions(address, network)
    target = address.lower()

    filtered = [
        tx
        for tx in txs
        if tx.get("isError") == NO_ERROR
        and tx.get("to") is not None
        and tx["to"].lower() == target
    ]

    logger.info(f"Fetched {len(txs)} transactions for {address}, kept {len(filtered)}")
    return filtered


async def fetch_internal_transactions(
    explorer: EtherscanClient, address: str, network: str = "mainnet"
) -> list[dict[str, Any]]:
    """
    Fetch successful internal delegate calls of an address.

    Plain calls and creations are excluded: only delegate calls run in the
    storage context of the queried contract.

    Args:
        explorer: Explorer client
        address: Queried contract address
        network: Network name

    Returns:
        Raw internal transaction records of type ``delegatecall``
    """
    itxs = await explorer.list_internal_transactions(address, network)

    filtered = [
        itx
        for itx in itxs
        if itx.get("isError") == NO_ERROR and itx.get("type") == DELEGATE_CALL
    ]

    logger.info(
        f"Fetched {len(itxs)} internal transactions for {address}, "
        f"kept {len(filtered)} delegate calls"
    )
    return filtered
