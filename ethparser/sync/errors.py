"""Exceptions raised while synchronizing blocks.

None of these is fatal to the engine: the loop logs them and retries on a
later iteration, or (for a single bad record) skips and moves on.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for sync engine errors."""

    pass


class TransientFetchError(SyncError):
    """Raised when the node could not be asked for the head or a block."""

    pass


class ConversionError(SyncError, ValueError):
    """Raised when a hex quantity from the node can't be turned into a block number."""

    pass


class EmptyBlockError(SyncError):
    """Raised when the node returns zero transactions for a block."""

    def __init__(self, block_number: int):
        super().__init__(f"no transactions found in block {block_number}")
        self.block_number = block_number


class FieldExtractionError(SyncError):
    """Raised when a raw transaction record lacks a usable required field."""

    def __init__(self, field: str, value: object, tx_hash: str | None = None):
        super().__init__(f"invalid {field!r} in transaction {tx_hash or '<unknown>'}: {value!r}")
        self.field = field
        self.value = value
        self.tx_hash = tx_hash
