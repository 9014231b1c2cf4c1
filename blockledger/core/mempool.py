"""
Pending Transaction Pool

Transactions submitted to the ledger wait here until a block is produced.
The pool is first-in, first-out: the ledger has no fee market, so
submission order is the only fair ordering. Duplicates (same hash) are
rejected.
"""

import logging
from collections import deque
from typing import Iterable

from .transactions import Transaction

logger = logging.getLogger(__name__)


class TransactionPool:
    """FIFO pool of transactions not yet included in a block."""

    def __init__(self, max_size: int = 10000):
        """
        Initialize the pool.

        Args:
            max_size: Maximum number of transactions to hold
        """
        self.max_size = max_size
        self._queue: deque[Transaction] = deque()
        self._hashes: set[str] = set()

    def add_transaction(self, transaction: Transaction) -> bool:
        """
        Queue a transaction.

        Returns:
            True if the transaction was added, False if it was a duplicate
            or the pool is full
        """
        tx_hash = transaction.hash()
        if tx_hash in self._hashes:
            logger.debug("Duplicate transaction %s... ignored", tx_hash[:8])
            return False

        if len(self._queue) >= self.max_size:
            logger.warning("Transaction pool full (%d), rejecting %s...", self.max_size, tx_hash[:8])
            return False

        self._queue.append(transaction)
        self._hashes.add(tx_hash)
        return True

    def take_batch(self, max_count: int) -> list[Transaction]:
        """Remove and return up to max_count transactions, oldest first."""
        batch = []
        while self._queue and len(batch) < max_count:
            transaction = self._queue.popleft()
            self._hashes.discard(transaction.hash())
            batch.append(transaction)
        return batch

    def return_batch(self, transactions: Iterable[Transaction]) -> None:
        """Put a batch back at the front of the pool, keeping its order."""
        for transaction in reversed(list(transactions)):
            tx_hash = transaction.hash()
            if tx_hash in self._hashes:
                continue
            self._queue.appendleft(transaction)
            self._hashes.add(tx_hash)

    def pending(self) -> list[Transaction]:
        """Snapshot of pending transactions in submission order."""
        return list(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def __contains__(self, tx_hash: str) -> bool:
        return tx_hash in self._hashes
