"""
Ledger Block Structure

A block is an ordered batch of transactions plus:
- prev_hash: content hash of the preceding block (None only for the first block)
- trans_hash: content hash committing to this block's transactions and nonce
- nonce: free-form number, no difficulty target

Content hash layout: SHA-256 hex over the canonical JSON of
{"nonce": ..., "prev_hash": ..., "transactions": [tx.to_dict(), ...]}.
Builder and validator both go through compute_content_hash, so they agree
bit for bit.
"""

import hashlib
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from ..config import LedgerConfig
from .errors import BrokenChainLink, EmptyBlock, HashMismatch, OversizedBlock
from .transactions import Transaction, canonical_json


def compute_content_hash(transactions: Sequence[Transaction], nonce: int,
                         prev_hash: Optional[str]) -> str:
    """Order-sensitive digest over a block's transactions, nonce and parent link."""
    content = {
        "nonce": nonce,
        "prev_hash": prev_hash,
        "transactions": [tx.to_dict() for tx in transactions],
    }
    return hashlib.sha256(canonical_json(content)).hexdigest()


@dataclass(frozen=True)
class Block:
    """
    Immutable batch of transactions.

    Blocks are normally made with Block.create or BlockBuilder, which
    fill in trans_hash. Constructing one directly with a stale or missing
    trans_hash is allowed; the validator will reject it.
    """
    transactions: tuple[Transaction, ...]
    prev_hash: Optional[str] = None
    trans_hash: Optional[str] = None
    nonce: int = 0

    def __post_init__(self):
        object.__setattr__(self, "transactions", tuple(self.transactions))

    @classmethod
    def create(cls, transactions: Iterable[Transaction], prev_hash: Optional[str] = None,
               nonce: int = 0) -> 'Block':
        """Build a block with its trans_hash computed."""
        transactions = tuple(transactions)
        return cls(
            transactions=transactions,
            prev_hash=prev_hash,
            trans_hash=compute_content_hash(transactions, nonce, prev_hash),
            nonce=nonce
        )

    def compute_hash(self) -> str:
        """Recompute the content hash from the block's own fields."""
        return compute_content_hash(self.transactions, self.nonce, self.prev_hash)

    def hash(self) -> str:
        """Hash used for chain linkage: the stored trans_hash if present."""
        return self.trans_hash if self.trans_hash is not None else self.compute_hash()

    def __len__(self) -> int:
        return len(self.transactions)


class BlockBuilder:
    """
    Builder for blocks that extend a given parent.

    Takes care of prev_hash and trans_hash so callers only supply
    transactions and a nonce.
    """

    def __init__(self, parent_block: Optional[Block], nonce: int = 0):
        """
        Initialize block builder.

        Args:
            parent_block: Current chain head (None for the first block)
            nonce: Free-form nonce for the new block
        """
        self.parent_block = parent_block
        self.nonce = nonce
        self.transactions: list[Transaction] = []
        self.prev_hash = parent_block.hash() if parent_block else None

    def add_transaction(self, transaction: Transaction) -> 'BlockBuilder':
        """Add a transaction to the block (fluent interface)."""
        self.transactions.append(transaction)
        return self

    def add_transactions(self, transactions: Iterable[Transaction]) -> 'BlockBuilder':
        self.transactions.extend(transactions)
        return self

    def build(self) -> Block:
        if not self.transactions:
            raise ValueError("Block must contain at least one transaction")
        return Block.create(self.transactions, prev_hash=self.prev_hash, nonce=self.nonce)


class BlockValidator:
    """
    Decides whether a candidate block may extend the chain.

    Runs before any state is touched. Checks, in order:
    - the block is non-empty (and within the configured size limit)
    - prev_hash links to the current head, or is None on an empty chain
    - trans_hash matches the recomputed content hash
    """

    def __init__(self, config: Optional[LedgerConfig] = None):
        self.config = config or LedgerConfig()

    def validate(self, block: Block, head: Optional[Block]) -> None:
        """Raise a BlockValidationError on the first failed check."""
        self._validate_structure(block)
        self._validate_parent_link(block, head)
        self._validate_content_hash(block)

    def _validate_structure(self, block: Block) -> None:
        if not block.transactions:
            raise EmptyBlock("Block contains no transactions")

        limit = self.config.max_transactions_per_block
        if limit is not None and len(block.transactions) > limit:
            raise OversizedBlock(
                f"Block has {len(block.transactions)} transactions, limit is {limit}"
            )

    @staticmethod
    def _validate_parent_link(block: Block, head: Optional[Block]) -> None:
        if head is None:
            if block.prev_hash is not None:
                raise BrokenChainLink("First block must not reference a previous block")
            return

        if block.prev_hash is None:
            raise BrokenChainLink("Only the first block may omit prev_hash")

        expected = head.hash()
        if block.prev_hash != expected:
            raise BrokenChainLink(
                f"prev_hash {block.prev_hash[:16]}... does not match head {expected[:16]}..."
            )

    @staticmethod
    def _validate_content_hash(block: Block) -> None:
        if block.trans_hash is None:
            raise HashMismatch("Block has no trans_hash")

        if block.trans_hash != block.compute_hash():
            raise HashMismatch("trans_hash does not match block contents")


def create_genesis_block(transactions: Iterable[Transaction], nonce: int = 0) -> Block:
    """
    Create the first block of a chain.

    This is the block that bootstraps accounts, validators and the
    initial token supply.
    """
    return BlockBuilder(parent_block=None, nonce=nonce).add_transactions(transactions).build()
