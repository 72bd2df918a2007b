"""
Mock node client for testing and development.

Simulates a chain whose head advances with wall-clock time and whose
blocks contain reproducible pseudo-random transfers between a small
pool of addresses, so subscriptions see activity quickly.
"""

import asyncio
import random
import time
from typing import Any, Dict, List, Optional

from ethparser.sync.clients.base import (
    BaseRPCClient,
    RPCConnectionError,
    RPCResponseError,
)
from ethparser.sync.models import hex_to_int, int_to_hex


class MockRPCClient(BaseRPCClient):
    """
    Mock RPC client generating a synthetic chain.

    Block contents depend only on ``seed`` and the block number, so
    fetching the same block twice gives the same transactions.
    """

    def __init__(
        self,
        start_block: int = 19_000_000,
        block_time_seconds: float = 12.0,
        transactions_per_block: int = 8,
        address_pool_size: int = 10,
        contract_creation_rate: float = 0.05,
        failure_rate: float = 0.0,
        latency_ms: int = 50,
        seed: int = 1,
    ):
        """
        Initialize mock client.

        Args:
            start_block: Head block number at construction time
            block_time_seconds: Seconds between simulated blocks
            transactions_per_block: Transactions generated per block
            address_pool_size: Number of distinct addresses in transfers
            contract_creation_rate: Fraction of records with ``"to": null``
            failure_rate: Probability of a simulated connection failure
            latency_ms: Simulated network latency in milliseconds
            seed: Seed for addresses and block contents
        """
        self.start_block = start_block
        self.block_time_seconds = block_time_seconds
        self.transactions_per_block = transactions_per_block
        self.contract_creation_rate = contract_creation_rate
        self.failure_rate = failure_rate
        self.latency_ms = latency_ms
        self.seed = seed
        self._started_at = time.monotonic()

        pool_rng = random.Random(seed)
        self.addresses = [
            f"0x{pool_rng.getrandbits(160):040x}" for _ in range(address_pool_size)
        ]

    def get_source_name(self) -> str:
        """Return source identifier."""
        return "mock"

    def head(self) -> int:
        """Current simulated head block number."""
        if self.block_time_seconds <= 0:
            return self.start_block
        elapsed = time.monotonic() - self._started_at
        return self.start_block + int(elapsed / self.block_time_seconds)

    async def get_current_block(self) -> str:
        await self._simulate_network()
        return int_to_hex(self.head())

    async def get_transactions(self, block_number: str) -> List[Dict[str, Any]]:
        await self._simulate_network()

        number = hex_to_int(block_number)
        if number > self.head():
            raise RPCResponseError(f"invalid block data for block {block_number}")
        return [
            self._generate_transaction(number, idx)
            for idx in range(self.transactions_per_block)
        ]

    def _generate_transaction(self, block_number: int, idx: int) -> Dict[str, Any]:
        """Generate a single raw transaction record."""
        rng = random.Random(f"{self.seed}:{block_number}:{idx}")
        sender = rng.choice(self.addresses)
        recipient: Optional[str] = rng.choice(self.addresses)
        if rng.random() < self.contract_creation_rate:
            recipient = None

        return {
            "hash": f"0x{rng.getrandbits(256):064x}",
            "blockNumber": int_to_hex(block_number),
            "transactionIndex": int_to_hex(idx),
            "from": sender,
            "to": recipient,
            "value": int_to_hex(rng.randrange(0, 5 * 10**18)),
            "gas": "0x5208",
            "input": "0x",
        }

    async def _simulate_network(self):
        """Simulate latency and occasional failures."""
        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000.0)
        if self.failure_rate and random.random() < self.failure_rate:
            raise RPCConnectionError("Simulated node connection failure")
