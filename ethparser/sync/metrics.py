"""
Sync engine metrics and monitoring.

Tracks every loop iteration (head seen, blocks processed, transactions
indexed or skipped, node latency) and aggregates them for the status
endpoint and CLI.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class SyncStatus(str, Enum):
    """Outcome of one sync iteration."""

    SUCCESS = "success"
    PARTIAL = "partial"  # Some blocks processed before a block failed
    FAILED = "failed"
    SKIPPED = "skipped"  # Head not above the watermark


@dataclass
class SyncRunMetrics:
    """Metrics for a single sync iteration."""

    run_id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    status: SyncStatus = SyncStatus.SUCCESS

    # Chain position
    head_block: Optional[int] = None
    start_block: int = -1
    end_block: int = -1

    # Work done
    blocks_processed: int = 0
    transactions_indexed: int = 0
    transactions_skipped: int = 0

    # Performance metrics
    duration_seconds: float = 0.0
    rpc_calls: int = 0
    rpc_latency_seconds: float = 0.0

    # Error tracking
    errors: List[str] = field(default_factory=list)
    error_count: int = 0

    source: str = "unknown"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for status output."""
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["ended_at"] = self.ended_at.isoformat() if self.ended_at else None
        data["status"] = self.status.value
        return data


@dataclass
class AggregateMetrics:
    """Aggregated metrics across multiple sync iterations."""

    total_runs: int = 0
    successful_runs: int = 0
    partial_runs: int = 0
    failed_runs: int = 0
    skipped_runs: int = 0

    total_blocks: int = 0
    total_transactions: int = 0
    total_skipped_transactions: int = 0
    total_errors: int = 0

    avg_duration_seconds: float = 0.0
    avg_rpc_latency_seconds: float = 0.0

    last_run: Optional[datetime] = None
    last_success: Optional[datetime] = None
    last_failure: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        for key in ["last_run", "last_success", "last_failure"]:
            if data[key]:
                data[key] = data[key].isoformat()
        return data


class SyncMetrics:
    """
    In-memory metrics tracker for the sync engine.

    Only the loop task writes here, so no locking is needed; readers get
    snapshots via the ``to_dict`` conversions.
    """

    def __init__(self, history_size: int = 100):
        self.history_size = history_size
        self._current_run: Optional[SyncRunMetrics] = None
        self._history: List[SyncRunMetrics] = []
        self._run_counter = 0

    def start_run(self, source: str, start_block: int) -> str:
        """
        Start tracking a new sync iteration.

        Args:
            source: Block source identifier
            start_block: Watermark when the iteration began

        Returns:
            Run ID for this iteration
        """
        self._run_counter += 1
        now = datetime.now(timezone.utc)
        run_id = f"sync-{now.strftime('%Y%m%d-%H%M%S')}-{self._run_counter}"

        self._current_run = SyncRunMetrics(
            run_id=run_id,
            started_at=now,
            source=source,
            start_block=start_block,
            end_block=start_block,
        )
        return run_id

    def end_run(self, status: SyncStatus, end_block: int):
        """Close the current iteration and move it to history."""
        run = self._current_run
        if not run:
            return

        run.ended_at = datetime.now(timezone.utc)
        run.status = status
        run.end_block = end_block
        run.duration_seconds = (run.ended_at - run.started_at).total_seconds()

        self._history.append(run)
        if len(self._history) > self.history_size:
            self._history = self._history[-self.history_size :]

        self._current_run = None

    def record_head(self, head_block: int):
        if self._current_run:
            self._current_run.head_block = head_block

    def record_rpc_call(self, latency_seconds: float):
        if self._current_run:
            self._current_run.rpc_calls += 1
            self._current_run.rpc_latency_seconds += latency_seconds

    def record_block(self, indexed: int, skipped: int):
        """Record one successfully processed block."""
        if self._current_run:
            self._current_run.blocks_processed += 1
            self._current_run.transactions_indexed += indexed
            self._current_run.transactions_skipped += skipped

    def record_error(self, error: str):
        if self._current_run:
            self._current_run.errors.append(error)
            self._current_run.error_count += 1

    def get_current_run(self) -> Optional[SyncRunMetrics]:
        return self._current_run

    def get_last_run(self) -> Optional[SyncRunMetrics]:
        return self._history[-1] if self._history else None

    def get_history(self, limit: Optional[int] = None) -> List[SyncRunMetrics]:
        """Recent iterations, newest first."""
        history = list(reversed(self._history))
        if limit:
            history = history[:limit]
        return history

    def get_aggregate_metrics(self, hours: Optional[int] = None) -> AggregateMetrics:
        """
        Get aggregated metrics across recent iterations.

        Args:
            hours: Only include iterations from the last N hours (None = all history)
        """
        runs = self._history
        if hours:
            cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
            runs = [r for r in runs if r.started_at >= cutoff]

        metrics = AggregateMetrics()
        if not runs:
            return metrics

        metrics.total_runs = len(runs)
        for run in runs:
            if run.status == SyncStatus.SUCCESS:
                metrics.successful_runs += 1
            elif run.status == SyncStatus.PARTIAL:
                metrics.partial_runs += 1
            elif run.status == SyncStatus.FAILED:
                metrics.failed_runs += 1
            elif run.status == SyncStatus.SKIPPED:
                metrics.skipped_runs += 1

        metrics.total_blocks = sum(r.blocks_processed for r in runs)
        metrics.total_transactions = sum(r.transactions_indexed for r in runs)
        metrics.total_skipped_transactions = sum(r.transactions_skipped for r in runs)
        metrics.total_errors = sum(r.error_count for r in runs)
        metrics.avg_duration_seconds = (
            sum(r.duration_seconds for r in runs) / metrics.total_runs
        )
        metrics.avg_rpc_latency_seconds = (
            sum(r.rpc_latency_seconds for r in runs) / metrics.total_runs
        )

        metrics.last_run = runs[-1].started_at
        for run in reversed(runs):
            if run.status == SyncStatus.SUCCESS and not metrics.last_success:
                metrics.last_success = run.started_at
            if run.status == SyncStatus.FAILED and not metrics.last_failure:
                metrics.last_failure = run.started_at
            if metrics.last_success and metrics.last_failure:
                break

        return metrics

    def get_success_rate(self, hours: Optional[int] = None) -> float:
        """
        Fraction of iterations that did not fail (0.0 to 1.0).

        Skipped iterations count as healthy: the node was reachable and
        there was simply nothing new.
        """
        agg = self.get_aggregate_metrics(hours)
        if agg.total_runs == 0:
            return 0.0
        return (agg.total_runs - agg.failed_runs) / agg.total_runs
