"""
Async Etherscan client.

Wraps the handful of Etherscan endpoints the pipeline needs behind coroutine
methods, with automatic retry, exponential backoff and rate-limit handling.

Usage:
    from ethgasstats.extraction.core.explorer import EtherscanClient

    async with EtherscanClient(api_key="...") as explorer:
        txs = await explorer.list_transactions(address, "mainnet")
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

import aiohttp

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_URLS = {
    "mainnet": "https://api.etherscan.io/api",
    "ropsten": "https://api-ropsten.etherscan.io/api",
    "goerli": "https://api-goerli.etherscan.io/api",
    "sepolia": "https://api-sepolia.etherscan.io/api",
}

# Etherscan answers status=0 for empty result sets
EMPTY_RESULT_MESSAGES = ("No transactions found", "No records found", "No data found")

MAX_BLOCK = 99999999


class ExplorerError(Exception):
    """Raised when an explorer request fails or returns an error status."""


class RateLimitError(ExplorerError):
    """Raised when the explorer rejects a request because of rate limits."""


class EtherscanClient:
    """
    Async client for the Etherscan HTTP API.

    Requests are bounded by a semaphore so that concurrent fan-out (e.g. ABI
    resolution for many contracts) stays within the account's rate limits,
    and every request is retried with exponential backoff on transient
    failures.
    """

    def __init__(
        self,
        api_key: str,
        base_urls: dict[str, str] | None = None,
        timeout: int = 30,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        max_concurrent_requests: int = 5,
    ):
        """
        Initialize Etherscan client.

        Args:
            api_key: Etherscan API key
            base_urls: Mapping of network name to API URL. Defaults to
                mainnet and the public Ethereum test networks.
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts per request
            backoff_factor: Exponential backoff multiplier (delay = backoff_factor^attempt)
            max_concurrent_requests: Maximum number of in-flight requests

        Raises:
            ValueError: If the API key is missing or a placeholder
        """
        if not api_key or api_key == "PLACEHOLDER_API_KEY":
            raise ValueError(
                "Invalid Etherscan API key. Please configure explorer.api_key "
                "in configs/ethgasstats.yaml, set ETHERSCAN_API_KEY or pass --api-key"
            )

        self.api_key = api_key
        self.base_urls = dict(base_urls or DEFAULT_BASE_URLS)
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor

        self._semaphore = asyncio.Semaphore(max_concurrent_requests)
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "EtherscanClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def retry_with_backoff(
        self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """
        Await a coroutine function with exponential backoff retry logic.

        Retries on transient errors (network issues, timeouts, rate limits)
        with exponentially increasing delays between attempts.

        Args:
            func: Coroutine function to execute
            *args: Positional arguments for the function
            **kwargs: Keyword arguments for the function

        Returns:
            Result from successful execution

        Raises:
            ExplorerError: If all retries fail
        """
        last_exception: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                return await func(*args, **kwargs)

            except (aiohttp.ClientError, asyncio.TimeoutError, RateLimitError) as e:
                last_exception = e

                if attempt < self.max_retries - 1:
                    delay = self.backoff_factor**attempt
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e!r}. "
                        f"Retrying in {delay:.2f} seconds..."
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(
                        f"Request failed after {self.max_retries} attempts: {e!r}"
                    )

        raise ExplorerError(
            f"Request failed after {self.max_retries} attempts: {last_exception!r}"
        ) from last_exception

    def _base_url(self, network: str) -> str:
        try:
            return self.base_urls[network]
        except KeyError:
            raise ValueError(
                f"Unsupported network '{network}'. "
                f"Expected one of: {', '.join(sorted(self.base_urls))}"
            ) from None

    async def _get(self, network: str, params: dict[str, Any]) -> dict[str, Any]:
        """Issue a single GET request and return the decoded JSON payload."""
        url = self._base_url(network)
        session = await self._get_session()

        async with self._semaphore:
            async with session.get(
                url, params={**params, "apikey": self.api_key}
            ) as response:
                if response.status == 429:
                    raise RateLimitError(f"HTTP 429 from {url}")
                response.raise_for_status()
                try:
                    payload = await response.json(content_type=None)
                except ValueError as e:
                    # Gateway and challenge pages are served as HTML
                    raise ExplorerError(f"Malformed response from {url}: {e}") from e

        if not isinstance(payload, dict):
            raise ExplorerError(
                f"Unexpected response type from {url}: {type(payload).__name__}"
            )

        result = payload.get("result")
        if (
            payload.get("status") == "0"
            and isinstance(result, str)
            and "rate limit" in result.lower()
        ):
            raise RateLimitError(result)

        return payload

    async def _request(self, network: str, **params: Any) -> dict[str, Any]:
        logger.debug(f"Etherscan request on {network}: {params}")
        return await self.retry_with_backoff(self._get, network, params)

    @staticmethod
    def _extract_result_list(payload: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Extract the record list from an account endpoint payload.

        Raises:
            ExplorerError: If the payload carries an error status
        """
        status = str(payload.get("status", "")).strip()
        message = str(payload.get("message", ""))
        result = payload.get("result")

        if status == "1" and isinstance(result, list):
            return result

        if status == "0" and (
            result == [] or any(m in message for m in EMPTY_RESULT_MESSAGES)
        ):
            return []

        raise ExplorerError(f"Explorer returned an error: {message} {result}".strip())

    async def validate_address(
        self, address: str, network: str = "mainnet"
    ) -> dict[str, Any]:
        """
        Fetch the deployed code at an address (eth_getCode).

        Returns:
            JSON-RPC payload; ``result`` is ``"0x"`` for externally-owned
            accounts. Transport failures are reported under ``error``.
        """
        try:
            return await self._request(
                network,
                module="proxy",
                action="eth_getCode",
                address=address,
                tag="latest",
            )
        except ExplorerError as e:
            return {"error": str(e), "result": None}

    async def list_transactions(
        self, address: str, network: str = "mainnet"
    ) -> list[dict[str, Any]]:
        """Fetch the normal transaction list of an address."""
        payload = await self._request(
            network,
            module="account",
            action="txlist",
            address=address,
            startblock=0,
            endblock=MAX_BLOCK,
            sort="asc",
        )
        return self._extract_result_list(payload)

    async def list_internal_transactions(
        self, address: str, network: str = "mainnet"
    ) -> list[dict[str, Any]]:
        """Fetch the internal transaction list of an address."""
        payload = await self._request(
            network,
            module="account",
            action="txlistinternal",
            address=address,
            startblock=0,
            endblock=MAX_BLOCK,
            sort="asc",
        )
        return self._extract_result_list(payload)

    async def get_abi(self, network: str, address: str) -> dict[str, Any]:
        """
        Fetch the verified ABI of a contract.

        Returns:
            Payload with ``status``, ``message`` and ``result`` (ABI as JSON
            text, or the error text when ``message`` is ``"NOTOK"``).
            Transport failures are reported under ``error``.
        """
        try:
            return await self._request(
                network, module="contract", action="getabi", address=address
            )
        except ExplorerError as e:
            return {"error": str(e), "message": "NOTOK", "result": None}

    async def get_contract_creation_date(
        self, network: str, address: str
    ) -> dict[str, Any]:
        """
        Fetch the creation record of a contract.

        Returns:
            ``{"result": [{"timeStamp": ..., ...}]}``; the list is empty when
            the explorer knows no creation record for the address.
        """
        payload = await self._request(
            network,
            module="contract",
            action="getcontractcreation",
            contractaddresses=address,
        )

        result = payload.get("result")
        if payload.get("status") != "1" or not isinstance(result, list):
            return {"result": []}

        records = []
        for entry in result:
            if not isinstance(entry, dict):
                continue
            record = dict(entry)
            timestamp = record.get("timeStamp") or record.get("timestamp")
            if timestamp is None and record.get("txHash"):
                timestamp = await self._transaction_timestamp(network, record["txHash"])
            record["timeStamp"] = timestamp
            records.append(record)

        return {"result": records}

    async def _transaction_timestamp(self, network: str, tx_hash: str) -> str | None:
        """Resolve the block timestamp of a transaction via proxy calls."""
        tx = await self._request(
            network, module="proxy", action="eth_getTransactionByHash", txhash=tx_hash
        )
        block_number = self._proxy_field(tx, "blockNumber")
        if not block_number:
            return None

        block = await self._request(
            network,
            module="proxy",
            action="eth_getBlockByNumber",
            tag=block_number,
            boolean="false",
        )
        timestamp = self._proxy_field(block, "timestamp")
        if not timestamp:
            return None

        try:
            return str(int(timestamp, 16))
        except (TypeError, ValueError):
            logger.warning(f"Malformed block timestamp for {tx_hash}: {timestamp!r}")
            return None

    @staticmethod
    def _proxy_field(payload: dict[str, Any], name: str) -> Any:
        """
        Read a field of a proxy (JSON-RPC) result object.

        Error payloads carry a string or null ``result``; those yield None.
        """
        result = payload.get("result")
        if not isinstance(result, dict):
            logger.warning(f"Explorer proxy call returned no object: {result!r}")
            return None
        return result.get(name)
