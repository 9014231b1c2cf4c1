"""
Ledger Chain Controller

This is the only place that mutates the chain. Appending a block runs:
1. Validate the block against the current head (no state touched)
2. Snapshot the account table
3. Execute every transaction in order
4. On any failure, restore the snapshot and report which transaction failed
5. On success, append the block as the new head

A block either fully applies or leaves the ledger exactly as it was.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Optional

from ..config import LedgerConfig
from .accounts import Account, AccountStore
from .blocks import Block, BlockBuilder, BlockValidator
from .errors import BlockValidationError, ChainError, TransactionError, TransactionFailed
from .executor import TransactionExecutor
from .mempool import TransactionPool
from .transactions import Transaction

logger = logging.getLogger(__name__)


@dataclass
class ChainStats:
    """Ledger summary statistics."""
    height: int
    total_transactions: int
    total_accounts: int
    total_supply: int
    pending_transactions: int
    head_hash: Optional[str]


class Blockchain:
    """
    Single authoritative in-memory ledger.

    Owns the committed blocks and the account table. Writers are
    serialized behind one lock; readers who need a consistent view while
    writers run should use snapshot_accounts().
    """

    def __init__(self, config: Optional[LedgerConfig] = None):
        self.config = config or LedgerConfig()

        self.blocks: list[Block] = []
        self.accounts = AccountStore()
        self.pending = TransactionPool()

        self.validator = BlockValidator(self.config)
        self.executor = TransactionExecutor(self.config)

        self._block_index: dict[str, Block] = {}
        self._write_lock = threading.RLock()

    def append_block(self, candidate: Block) -> None:
        """
        Validate, execute and commit a block.

        Raises:
            BlockValidationError: the block is malformed or does not link
                to the head; nothing was executed
            TransactionFailed: a transaction was rejected; every change
                made by the block was rolled back
        """
        with self._write_lock:
            head = self.head
            try:
                self.validator.validate(candidate, head)
            except BlockValidationError as e:
                logger.warning("Block rejected: %s", e)
                raise

            is_genesis = head is None
            snapshot = self.accounts.snapshot()

            for index, transaction in enumerate(candidate.transactions, start=1):
                try:
                    self.executor.execute(self.accounts, transaction, is_genesis)
                except TransactionError as e:
                    self.accounts.restore(snapshot)
                    logger.warning("Block rolled back at transaction %d: %s", index, e)
                    raise TransactionFailed(index, e) from e
                except Exception:
                    self.accounts.restore(snapshot)
                    logger.exception("Block rolled back at transaction %d", index)
                    raise

            self.blocks.append(candidate)
            self._block_index[candidate.hash()] = candidate

            logger.info(
                "Block %d committed: %s... (%d transactions)",
                len(self.blocks), candidate.hash()[:16], len(candidate.transactions)
            )

    @property
    def head(self) -> Optional[Block]:
        """Get the most recent block."""
        return self.blocks[-1] if self.blocks else None

    @property
    def head_hash(self) -> Optional[str]:
        head = self.head
        return head.hash() if head else None

    @property
    def height(self) -> int:
        return len(self.blocks)

    def get_block_by_hash(self, block_hash: str) -> Optional[Block]:
        return self._block_index.get(block_hash)

    def get_account(self, account_id: str) -> Optional[Account]:
        """Read-only copy of an account, or None."""
        return self.accounts.get(account_id)

    def balance(self, account_id: str) -> int:
        """Token balance, 0 for unknown accounts."""
        account = self.accounts.get_mut(account_id)
        return account.tokens if account else 0

    def account_ids(self) -> set[str]:
        return self.accounts.list_ids()

    def snapshot_accounts(self) -> AccountStore:
        """Detached copy of the committed account table."""
        with self._write_lock:
            return self.accounts.copy()

    def new_block(self, transactions: Iterable[Transaction], nonce: int = 0) -> Block:
        """Build a block that extends the current head."""
        return BlockBuilder(self.head, nonce=nonce).add_transactions(transactions).build()

    def submit_transaction(self, transaction: Transaction) -> bool:
        """
        Queue transaction for the next produced block.

        Returns:
            True if transaction was accepted, False if rejected
        """
        with self._write_lock:
            accepted = self.pending.add_transaction(transaction)
        if accepted:
            logger.debug("Transaction %s... queued", transaction.hash()[:8])
        return accepted

    def produce_block(self, nonce: int = 0) -> Optional[Block]:
        """
        Build and commit a block from pending transactions.

        Returns the committed block, or None if nothing was pending. The
        batch never exceeds max_transactions_per_block. If a transaction
        fails, it is dropped, the rest of the batch goes back to the front
        of the pool and the error propagates.
        """
        with self._write_lock:
            batch = self.pending.take_batch(self._batch_limit())
            if not batch:
                return None

            try:
                block = self.new_block(batch, nonce=nonce)
                self.append_block(block)
            except TransactionFailed as e:
                dropped = batch.pop(e.index - 1)
                logger.warning("Dropped pending transaction %s...", dropped.hash()[:8])
                self.pending.return_batch(batch)
                raise
            except ChainError:
                self.pending.return_batch(batch)
                raise

            return block

    def _batch_limit(self) -> int:
        limit = self.config.max_transactions_per_block
        if limit is None:
            return self.config.pending_batch_size
        return min(self.config.pending_batch_size, limit)

    def validate_chain(self) -> bool:
        """Re-check linkage and content hashes of every committed block."""
        head: Optional[Block] = None
        for block in self.blocks:
            try:
                self.validator.validate(block, head)
            except BlockValidationError as e:
                logger.error("Chain audit failed at %s...: %s", block.hash()[:16], e)
                return False
            head = block
        return True

    def get_stats(self) -> ChainStats:
        return ChainStats(
            height=self.height,
            total_transactions=sum(len(block.transactions) for block in self.blocks),
            total_accounts=len(self.accounts),
            total_supply=self.accounts.total_tokens(),
            pending_transactions=len(self.pending),
            head_hash=self.head_hash
        )
