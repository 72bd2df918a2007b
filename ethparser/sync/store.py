"""
In-memory subscription registry and per-address transaction index.

One lock guards the subscription set, the index and the watermark. It is
a threading lock so that FastAPI sync handlers running on the threadpool
and coroutines on the event loop can share it; no critical section awaits.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Set

from ethparser.sync.models import Transaction, normalize_address

UNINITIALIZED_BLOCK = -1


class TransactionStore:
    """
    Holds everything the sync engine writes and the HTTP readers read.

    Transactions are indexed under both their ``from`` and ``to`` address
    whether or not anyone is subscribed to it; subscription only gates
    what ``get_transactions`` returns.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: Set[str] = set()
        self._index: Dict[str, List[Transaction]] = {}
        self._watermark = UNINITIALIZED_BLOCK

    def subscribe(self, address: str) -> bool:
        """Add an address. Returns False if it was already subscribed."""
        address = normalize_address(address)
        with self._lock:
            if address in self._subscriptions:
                return False
            self._subscriptions.add(address)
            return True

    def get_transactions(self, address: str) -> List[Transaction]:
        """Return a copy of the address history, or [] if it isn't subscribed."""
        address = normalize_address(address)
        with self._lock:
            if address not in self._subscriptions:
                return []
            return list(self._index.get(address, ()))

    def get_current_block(self) -> int:
        with self._lock:
            return self._watermark

    def initialize_watermark(self, head: int) -> bool:
        """
        Start tracking just below ``head`` if nothing has been processed yet.

        Returns:
            True if the watermark was initialized by this call
        """
        with self._lock:
            if self._watermark != UNINITIALIZED_BLOCK:
                return False
            self._watermark = head - 1
            return True

    def record_block(
        self, block_number: int, transactions: Iterable[Transaction]
    ) -> int:
        """
        Index a processed block and advance the watermark to it.

        Both happen in one critical section, so a reader never sees a
        block's transactions without the matching watermark.

        Returns:
            Number of transactions recorded

        Raises:
            ValueError: If block_number does not move the watermark forward
        """
        transactions = list(transactions)
        with self._lock:
            if block_number <= self._watermark:
                raise ValueError(
                    f"block {block_number} is not above watermark {self._watermark}"
                )
            for tx in transactions:
                self._index.setdefault(tx.from_address, []).append(tx)
                self._index.setdefault(tx.to_address, []).append(tx)
            self._watermark = block_number
        return len(transactions)

    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def indexed_address_count(self) -> int:
        with self._lock:
            return len(self._index)
