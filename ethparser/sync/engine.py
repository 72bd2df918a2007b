"""
Block sync engine.

Polls the node for its head block, walks every block between the
watermark and the head in ascending order, and indexes each block's
transactions under their sender and recipient addresses.
"""

import asyncio
import contextlib
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Dict, List, Optional, Tuple, TypeVar

import structlog

from ethparser.sync.clients.base import BaseRPCClient
from ethparser.sync.clients.jsonrpc_client import JSONRPCClient
from ethparser.sync.clients.mock_client import MockRPCClient
from ethparser.sync.config import RPCConfig, SyncConfig
from ethparser.sync.errors import (
    EmptyBlockError,
    FieldExtractionError,
    SyncError,
    TransientFetchError,
)
from ethparser.sync.metrics import SyncMetrics, SyncStatus
from ethparser.sync.models import (
    Transaction,
    hex_to_int,
    int_to_hex,
    normalize_address,
    parse_transaction,
)
from ethparser.sync.store import TransactionStore

logger = structlog.get_logger()

T = TypeVar("T")


class EngineState(str, Enum):
    """Lifecycle of the sync loop."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


def create_rpc_client(config: RPCConfig) -> BaseRPCClient:
    """Build the RPC client named by the configuration."""
    if config.client_type == "mock":
        return MockRPCClient()
    return JSONRPCClient(url=config.url, timeout=config.timeout, retry=config.retry)


class SyncEngine:
    """
    Keeps a per-address transaction index in step with the chain head.

    One background task runs the loop; ``subscribe``, ``get_transactions``
    and ``get_current_block`` may be called from any request handler at
    any time and never touch the network.
    """

    def __init__(
        self,
        client: BaseRPCClient,
        config: Optional[SyncConfig] = None,
        store: Optional[TransactionStore] = None,
    ):
        """
        Initialize the engine.

        Args:
            client: Node RPC client
            config: Engine configuration (defaults to SyncConfig())
            store: Transaction store, mainly for tests (defaults to an empty one)
        """
        if client is None:
            raise ValueError("SyncEngine requires an RPC client")

        self.client = client
        self.config = config or SyncConfig()
        self.store = store or TransactionStore()
        self.metrics = SyncMetrics(history_size=self.config.metrics_history_size)
        self.state = EngineState.IDLE

        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._last_sync_time: Optional[datetime] = None

        logger.info(
            "sync.initialized",
            client_type=self.client.get_source_name(),
            poll_interval_seconds=self.config.poll_interval_seconds,
            block_interval_seconds=self.config.block_interval_seconds,
        )

    @classmethod
    def from_config(cls, config: SyncConfig) -> "SyncEngine":
        return cls(client=create_rpc_client(config.rpc), config=config)

    # Reads and subscriptions

    def subscribe(self, address: str) -> bool:
        """Observe an address. Returns False if it was already observed."""
        added = self.store.subscribe(address)
        logger.info(
            "sync.subscribed" if added else "sync.already_subscribed",
            address=normalize_address(address),
        )
        return added

    def get_transactions(self, address: str) -> List[Transaction]:
        """Transactions in or out of a subscribed address, oldest first."""
        return self.store.get_transactions(address)

    def get_current_block(self) -> int:
        """Last fully processed block, or -1 before the first sync."""
        return self.store.get_current_block()

    # Lifecycle

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self):
        """Start the sync loop in the background."""
        if self.running:
            logger.warning("sync.already_running")
            return

        self._stop_event.clear()
        self.state = EngineState.RUNNING
        self._task = asyncio.create_task(self._sync_loop(), name="block-sync")
        logger.info("sync.started", watermark=self.get_current_block())

    async def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Ask the loop to stop after its in-flight block and wait for it.

        Args:
            timeout: Seconds to wait (defaults to config.stop_timeout_seconds)

        Returns:
            True if the loop acknowledged in time, False if the wait timed
            out; in that case the loop task is cancelled and the caller
            proceeds regardless.
        """
        if not self.running:
            logger.debug("sync.not_running")
            if self.state != EngineState.IDLE:
                self.state = EngineState.STOPPED
            return True

        if timeout is None:
            timeout = self.config.stop_timeout_seconds

        self.state = EngineState.STOPPING
        self._stop_event.set()
        logger.info("sync.stopping", timeout_seconds=timeout)

        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "sync.stop_timeout",
                timeout_seconds=timeout,
                watermark=self.get_current_block(),
            )
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self.state = EngineState.STOPPED
            return False

        logger.info("sync.stopped", watermark=self.get_current_block())
        return True

    async def _sync_loop(self):
        """Main loop: one iteration, then back off, until stop is requested."""
        try:
            while not self._stop_event.is_set():
                result = await self.sync_once()
                if result["status"] in (SyncStatus.FAILED.value, SyncStatus.PARTIAL.value):
                    logger.info(
                        "sync.backing_off",
                        delay_seconds=self.config.poll_interval_seconds,
                        watermark=result["end_block"],
                    )
                await self._wait(self.config.poll_interval_seconds)
        finally:
            self.state = EngineState.STOPPED
            logger.info("sync.loop_exited", watermark=self.get_current_block())

    async def _wait(self, seconds: float):
        """Sleep for up to ``seconds``, returning early once stop is requested."""
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    # Synchronization

    async def sync_once(self) -> Dict[str, Any]:
        """
        Run one iteration: fetch the head and process every new block.

        Failures never propagate; they end the iteration early, with the
        watermark at the last block that was fully processed.

        Returns:
            Dictionary with the iteration outcome and counters
        """
        start_block = self.get_current_block()
        run_id = self.metrics.start_run(
            source=self.client.get_source_name(), start_block=start_block
        )
        result: Dict[str, Any] = {
            "run_id": run_id,
            "status": SyncStatus.SUCCESS.value,
            "head_block": None,
            "start_block": start_block,
            "end_block": start_block,
            "blocks_processed": 0,
            "transactions_indexed": 0,
            "transactions_skipped": 0,
            "error": None,
        }

        status = SyncStatus.SUCCESS
        try:
            head = await self._fetch_head()
            result["head_block"] = head
            self.metrics.record_head(head)

            if head <= self.get_current_block():
                logger.debug(
                    "sync.up_to_date", head=head, watermark=self.get_current_block()
                )
                status = SyncStatus.SKIPPED
            else:
                if self.store.initialize_watermark(head):
                    logger.info("sync.watermark_initialized", watermark=head - 1)
                await self._catch_up(head, result)

        except SyncError as e:
            status = SyncStatus.PARTIAL if result["blocks_processed"] else SyncStatus.FAILED
            result["error"] = str(e)
            self.metrics.record_error(str(e))
            logger.warning(
                "sync.iteration_failed",
                run_id=run_id,
                error=str(e),
                error_type=type(e).__name__,
                watermark=self.get_current_block(),
            )

        except Exception as e:
            status = SyncStatus.PARTIAL if result["blocks_processed"] else SyncStatus.FAILED
            result["error"] = str(e)
            self.metrics.record_error(str(e))
            logger.error(
                "sync.iteration_error",
                run_id=run_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )

        result["status"] = status.value
        result["end_block"] = self.get_current_block()
        self.metrics.end_run(status, end_block=result["end_block"])
        if status != SyncStatus.FAILED:
            self._last_sync_time = datetime.now(timezone.utc)
        return result

    async def _catch_up(self, head: int, result: Dict[str, Any]):
        """Process blocks (watermark, head] in order, stopping at the first failure."""
        watermark = self.get_current_block()
        logger.info(
            "sync.catching_up",
            from_block=watermark + 1,
            to_block=head,
            blocks=head - watermark,
        )

        for number in range(watermark + 1, head + 1):
            if self._stop_event.is_set():
                logger.info("sync.stop_requested", watermark=self.get_current_block())
                return

            indexed, skipped = await self.process_block(number)
            result["blocks_processed"] += 1
            result["transactions_indexed"] += indexed
            result["transactions_skipped"] += skipped

            await self._wait(self.config.block_interval_seconds)

    async def process_block(self, number: int) -> Tuple[int, int]:
        """
        Fetch, parse and index one block.

        Args:
            number: Block number, must be one above the watermark

        Returns:
            (transactions indexed, records skipped)

        Raises:
            TransientFetchError: If the node request failed
            EmptyBlockError: If the node returned no transactions
        """
        block_hex = int_to_hex(number)
        logger.debug("sync.processing_block", block=number)

        records = await self._rpc(
            "get_transactions", self.client.get_transactions(block_hex)
        )
        if not records:
            raise EmptyBlockError(number)

        transactions: List[Transaction] = []
        skipped = 0
        for raw in records:
            try:
                transactions.append(parse_transaction(raw, number))
            except FieldExtractionError as e:
                skipped += 1
                logger.warning(
                    "sync.transaction_skipped",
                    block=number,
                    field=e.field,
                    tx_hash=e.tx_hash,
                )

        indexed = self.store.record_block(number, transactions)
        self.metrics.record_block(indexed=indexed, skipped=skipped)
        logger.info(
            "sync.block_processed", block=number, transactions=indexed, skipped=skipped
        )
        return indexed, skipped

    async def _fetch_head(self) -> int:
        head_hex = await self._rpc("get_current_block", self.client.get_current_block())
        return hex_to_int(head_hex)

    async def _rpc(self, operation: str, call: Awaitable[T]) -> T:
        """Await a client call, timing it and folding foreign errors into TransientFetchError."""
        started = time.perf_counter()
        try:
            return await call
        except SyncError:
            raise
        except Exception as e:
            raise TransientFetchError(f"{operation} failed: {e}") from e
        finally:
            self.metrics.record_rpc_call(time.perf_counter() - started)

    def get_status(self) -> Dict[str, Any]:
        """
        Get current engine status and metrics.

        Returns:
            Status dictionary
        """
        current_run = self.metrics.get_current_run()
        last_run = self.metrics.get_last_run()
        aggregate = self.metrics.get_aggregate_metrics(hours=24)

        return {
            "state": self.state.value,
            "running": self.running,
            "current_block": self.get_current_block(),
            "subscriptions": self.store.subscription_count(),
            "indexed_addresses": self.store.indexed_address_count(),
            "last_sync_time": (
                self._last_sync_time.isoformat() if self._last_sync_time else None
            ),
            "current_run": current_run.to_dict() if current_run else None,
            "last_run": last_run.to_dict() if last_run else None,
            "metrics_24h": aggregate.to_dict(),
            "success_rate_24h": self.metrics.get_success_rate(hours=24),
            "recent_runs": [r.to_dict() for r in self.metrics.get_history(limit=5)],
            "config": {
                "poll_interval_seconds": self.config.poll_interval_seconds,
                "block_interval_seconds": self.config.block_interval_seconds,
                "stop_timeout_seconds": self.config.stop_timeout_seconds,
                "source": self.client.get_source_name(),
            },
        }
