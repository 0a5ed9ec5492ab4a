"""
Transaction extraction, reconciliation and decoding.

This module provides tools for fetching a contract's transactions from
Etherscan, resolving ABIs for every contract involved and decoding call data
into structured rows for CSV export.
"""
