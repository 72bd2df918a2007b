"""
Ethereum JSON-RPC client over HTTP.

Implements the two calls the sync engine needs, ``eth_blockNumber`` and
``eth_getBlockByNumber`` with full transaction objects, on top of a
shared httpx.AsyncClient.
"""

import itertools
import time
from typing import Any, Dict, List, Optional

import httpx
import structlog

from ethparser.sync.clients.base import (
    BaseRPCClient,
    RPCConnectionError,
    RPCRateLimitError,
    RPCResponseError,
)
from ethparser.sync.config import RetryConfig
from ethparser.sync.retry import retry_with_backoff

logger = structlog.get_logger()


class JSONRPCClient(BaseRPCClient):
    """
    Client for a standard Ethereum node JSON-RPC endpoint.

    Connection failures and HTTP 429 are retried with backoff according
    to ``retry``; any other failure is raised on the first occurrence.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        retry: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            url: Node JSON-RPC endpoint
            timeout: Request timeout in seconds
            retry: Per-request retry policy
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.url = url
        self.timeout = timeout
        self.retry = retry or RetryConfig()
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._request_ids = itertools.count(1)

    def get_source_name(self) -> str:
        return "jsonrpc"

    async def get_current_block(self) -> str:
        result = await self._call("eth_blockNumber", [])
        if not isinstance(result, str):
            raise RPCResponseError(f"eth_blockNumber returned {result!r}")
        return result

    async def get_transactions(self, block_number: str) -> List[Dict[str, Any]]:
        block = await self._call("eth_getBlockByNumber", [block_number, True])
        if not isinstance(block, dict):
            raise RPCResponseError(f"invalid block data for block {block_number}")

        transactions = block.get("transactions")
        if not isinstance(transactions, list):
            raise RPCResponseError(f"no transaction list in block {block_number}")
        return transactions

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, params: List[Any]) -> Any:
        """Send one JSON-RPC request, retrying transient transport failures."""

        async def send() -> Any:
            payload = {
                "jsonrpc": "2.0",
                "method": method,
                "params": params,
                "id": next(self._request_ids),
            }
            started = time.perf_counter()
            try:
                response = await self._client.post(self.url, json=payload)
            except httpx.TransportError as e:
                logger.warning("rpc.request_failed", method=method, error=str(e))
                raise RPCConnectionError(f"{method} request failed: {e}") from e

            logger.debug(
                "rpc.response",
                method=method,
                status=response.status_code,
                latency_ms=round((time.perf_counter() - started) * 1000, 2),
            )

            if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
                raise RPCRateLimitError(f"{method} rate limited by node")
            if response.status_code != httpx.codes.OK:
                raise RPCResponseError(
                    f"{method} returned HTTP {response.status_code}"
                )

            try:
                body = response.json()
            except ValueError as e:
                raise RPCResponseError(f"{method} returned invalid JSON") from e

            if not isinstance(body, dict):
                raise RPCResponseError(f"{method} returned {type(body).__name__}")
            if body.get("error"):
                raise RPCResponseError(f"{method} failed: {body['error']}")
            if "result" not in body:
                raise RPCResponseError(f"{method} response has no result")
            return body["result"]

        return await retry_with_backoff(
            send,
            self.retry,
            retry_on=(RPCConnectionError, RPCRateLimitError),
            operation_name=method,
        )
