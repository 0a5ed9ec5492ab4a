"""
ethgasstats

Collects a contract's call history from Etherscan, decodes every call against
the ABI of the contract that actually executed it, and exports the result as
chunked CSV files for gas-cost analysis.
"""

__version__ = "0.1.0"
