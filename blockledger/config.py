"""
Ledger engine configuration.

Policy knobs for the state-transition engine. The defaults impose no limits,
so a plain Blockchain() accepts any well-formed block.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class LedgerConfig:
    """Engine policy settings."""
    max_transactions_per_block: Optional[int] = None  # None = unlimited
    max_mint_amount: Optional[int] = None             # per CreateTokens, outside genesis
    pending_batch_size: int = 64                      # transactions per produced block

    def __post_init__(self):
        """Validate configuration values."""
        if self.max_transactions_per_block is not None and self.max_transactions_per_block < 1:
            raise ValueError("max_transactions_per_block must be at least 1")
        if self.max_mint_amount is not None and self.max_mint_amount < 0:
            raise ValueError("max_mint_amount cannot be negative")
        if self.pending_batch_size < 1:
            raise ValueError("pending_batch_size must be at least 1")
