"""
Tests for node RPC clients and the request retry helper.
"""

import json

import httpx
import pytest

from ethparser.sync.clients.base import (
    RPCConnectionError,
    RPCRateLimitError,
    RPCResponseError,
)
from ethparser.sync.clients.jsonrpc_client import JSONRPCClient
from ethparser.sync.clients.mock_client import MockRPCClient
from ethparser.sync.config import RetryConfig
from ethparser.sync.errors import TransientFetchError
from ethparser.sync.models import hex_to_int, parse_transaction
from ethparser.sync.retry import compute_delay, retry_with_backoff

NODE_URL = "http://node.test"
NO_RETRY = RetryConfig(max_attempts=1)
FAST_RETRY = RetryConfig(max_attempts=3, initial_delay=0.01, jitter=False)


def make_client(handler, retry: RetryConfig = NO_RETRY) -> JSONRPCClient:
    return JSONRPCClient(
        url=NODE_URL, retry=retry, transport=httpx.MockTransport(handler)
    )


def rpc_result(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


@pytest.mark.asyncio
class TestJSONRPCClient:
    """Tests for the httpx JSON-RPC client."""

    async def test_get_current_block(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return rpc_result(request, "0x1b4")

        client = make_client(handler)
        assert await client.get_current_block() == "0x1b4"
        await client.close()

        assert requests[0]["method"] == "eth_blockNumber"
        assert requests[0]["params"] == []
        assert requests[0]["jsonrpc"] == "2.0"

    async def test_get_transactions(self):
        requests = []
        txs = [{"hash": "0x123", "from": "0xabc", "to": "0xdef", "value": "0x100"}]

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return rpc_result(request, {"number": "0x1e240", "transactions": txs})

        client = make_client(handler)
        assert await client.get_transactions("0x1e240") == txs
        await client.close()

        assert requests[0]["method"] == "eth_getBlockByNumber"
        assert requests[0]["params"] == ["0x1e240", True]

    async def test_request_ids_are_unique(self):
        ids = []

        def handler(request: httpx.Request) -> httpx.Response:
            ids.append(json.loads(request.content)["id"])
            return rpc_result(request, "0x1")

        client = make_client(handler)
        await client.get_current_block()
        await client.get_current_block()
        await client.close()

        assert len(set(ids)) == 2

    async def test_empty_block_returned_as_empty_list(self):
        client = make_client(lambda r: rpc_result(r, {"transactions": []}))
        assert await client.get_transactions("0x1") == []

    async def test_null_block_is_error(self):
        client = make_client(lambda r: rpc_result(r, None))

        with pytest.raises(RPCResponseError):
            await client.get_transactions("0xffffff")

    async def test_missing_transaction_list_is_error(self):
        client = make_client(lambda r: rpc_result(r, {"number": "0x1"}))

        with pytest.raises(RPCResponseError):
            await client.get_transactions("0x1")

    async def test_jsonrpc_error_member(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "bad"}},
            )

        client = make_client(handler)
        with pytest.raises(RPCResponseError, match="bad"):
            await client.get_current_block()

    async def test_http_error_status(self):
        client = make_client(lambda r: httpx.Response(502, text="bad gateway"))

        with pytest.raises(RPCResponseError, match="502"):
            await client.get_current_block()

    async def test_invalid_json(self):
        client = make_client(lambda r: httpx.Response(200, text="<html>"))

        with pytest.raises(RPCResponseError):
            await client.get_current_block()

    async def test_non_string_block_number(self):
        client = make_client(lambda r: rpc_result(r, 436))

        with pytest.raises(RPCResponseError):
            await client.get_current_block()

    async def test_rate_limit_retried(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls < 3:
                return httpx.Response(429)
            return rpc_result(request, "0x10")

        client = make_client(handler, retry=FAST_RETRY)
        assert await client.get_current_block() == "0x10"
        assert calls == 3

    async def test_rate_limit_exhausted(self):
        client = make_client(lambda r: httpx.Response(429), retry=FAST_RETRY)

        with pytest.raises(RPCRateLimitError):
            await client.get_current_block()

    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(RPCConnectionError):
            await client.get_current_block()

    async def test_response_errors_not_retried(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(500)

        client = make_client(handler, retry=FAST_RETRY)
        with pytest.raises(RPCResponseError):
            await client.get_current_block()
        assert calls == 1

    async def test_all_errors_are_transient(self):
        client = make_client(lambda r: httpx.Response(503))

        with pytest.raises(TransientFetchError):
            await client.get_current_block()


@pytest.mark.asyncio
class TestMockRPCClient:
    """Tests for the synthetic chain client."""

    async def test_head_and_blocks(self):
        client = MockRPCClient(start_block=500, latency_ms=0, transactions_per_block=4)

        head = hex_to_int(await client.get_current_block())
        txs = await client.get_transactions("0x1f4")

        assert head >= 500
        assert len(txs) == 4
        assert all(tx["from"] in client.addresses for tx in txs)

    async def test_blocks_are_reproducible(self):
        client = MockRPCClient(start_block=500, latency_ms=0)

        assert await client.get_transactions("0x1f0") == await client.get_transactions("0x1f0")

    async def test_records_parse(self):
        client = MockRPCClient(start_block=500, latency_ms=0, contract_creation_rate=0.0)

        for raw in await client.get_transactions("0x1f4"):
            tx = parse_transaction(raw, 500)
            assert tx.block_number == 500

    async def test_future_block_unavailable(self):
        client = MockRPCClient(start_block=500, latency_ms=0, block_time_seconds=3600)

        with pytest.raises(RPCResponseError):
            await client.get_transactions("0x3e8")

    async def test_failure_simulation(self):
        client = MockRPCClient(latency_ms=0, failure_rate=1.0)

        with pytest.raises(RPCConnectionError):
            await client.get_current_block()


class TestRetryLogic:
    """Tests for retry with exponential backoff."""

    @pytest.mark.asyncio
    async def test_retry_success_after_failures(self):
        call_count = 0

        async def operation():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise RPCConnectionError("Temporary failure")
            return "success"

        result = await retry_with_backoff(
            operation, FAST_RETRY, retry_on=(RPCConnectionError,)
        )

        assert result == "success"
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_non_retryable_raised_immediately(self):
        call_count = 0

        async def operation():
            nonlocal call_count
            call_count += 1
            raise RPCResponseError("bad payload")

        with pytest.raises(RPCResponseError):
            await retry_with_backoff(
                operation, FAST_RETRY, retry_on=(RPCConnectionError,)
            )

        assert call_count == 1

    def test_delay_is_capped(self):
        config = RetryConfig(initial_delay=1.0, max_delay=5.0, jitter=False)

        assert compute_delay(config, 0) == 1.0
        assert compute_delay(config, 1) == 2.0
        assert compute_delay(config, 10) == 5.0

    def test_jitter_stays_within_half(self):
        config = RetryConfig(initial_delay=2.0, jitter=True)

        for _ in range(20):
            assert 1.0 <= compute_delay(config, 0) <= 2.0
