"""
Append-only Account Ledger

An in-memory, single-process ledger: a hash-linked chain of blocks whose
transactions mutate a shared account table. The heart of it is the
state-transition engine:
- Blocks are validated (non-empty, hash-linked, self-hash intact) before execution
- Transactions create accounts, write key/value data, transfer and mint tokens
- A block applies completely or not at all; failures roll the accounts back

Signing helpers live in blockledger.core.signing; the engine itself never
checks signatures.
"""

__version__ = "1.0.0"

from .config import LedgerConfig
from .core import *
from .core import __all__ as _core_all

__all__ = ['LedgerConfig'] + list(_core_all)
