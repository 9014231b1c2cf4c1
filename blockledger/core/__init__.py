"""
Ledger Core Components

The state-transition engine of an append-only, account-based ledger:
accounts, transactions, blocks, the executor and the chain controller.
"""

from .accounts import Account, AccountKind, AccountStore, AccountType, ValidatorStats, WorldState
from .blocks import Block, BlockBuilder, BlockValidator, compute_content_hash, create_genesis_block
from .transactions import (
    Transaction,
    TransactionData,
    CreateUserAccount,
    CreateValidatorAccount,
    ChangeStoreValue,
    TransferTokens,
    CreateTokens,
)
from .executor import TransactionExecutor
from .mempool import TransactionPool
from .blockchain import Blockchain, ChainStats
from .errors import (
    ChainError,
    BlockValidationError,
    EmptyBlock,
    OversizedBlock,
    BrokenChainLink,
    HashMismatch,
    TransactionError,
    AccountExists,
    UnknownAccount,
    InsufficientFunds,
    UnauthorizedMint,
    UnauthorizedRegistration,
    MintLimitExceeded,
    TransactionFailed,
)

__all__ = [
    'Account', 'AccountKind', 'AccountStore', 'AccountType', 'ValidatorStats', 'WorldState',
    'Block', 'BlockBuilder', 'BlockValidator', 'compute_content_hash', 'create_genesis_block',
    'Transaction', 'TransactionData', 'CreateUserAccount', 'CreateValidatorAccount',
    'ChangeStoreValue', 'TransferTokens', 'CreateTokens',
    'TransactionExecutor',
    'TransactionPool',
    'Blockchain', 'ChainStats',
    'ChainError', 'BlockValidationError', 'EmptyBlock', 'OversizedBlock', 'BrokenChainLink',
    'HashMismatch', 'TransactionError', 'AccountExists', 'UnknownAccount', 'InsufficientFunds',
    'UnauthorizedMint', 'UnauthorizedRegistration', 'MintLimitExceeded', 'TransactionFailed',
]
