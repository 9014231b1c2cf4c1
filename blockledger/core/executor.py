"""
Transaction Executor

Applies one transaction to the world state. Each handler checks every
precondition before its first mutation, so a failing transaction leaves
no trace. Atomicity across a whole block is the chain controller's job.

Genesis context relaxes the privileged operations: in the first block
anyone may mint tokens or register validators, which is how the initial
supply and the initial validator set get bootstrapped.
"""

import logging
from typing import Optional

from ..config import LedgerConfig
from .accounts import Account, AccountType, WorldState
from .errors import (
    AccountExists,
    InsufficientFunds,
    MintLimitExceeded,
    UnauthorizedMint,
    UnauthorizedRegistration,
    UnknownAccount,
)
from .transactions import (
    ChangeStoreValue,
    CreateTokens,
    CreateUserAccount,
    CreateValidatorAccount,
    Transaction,
    TransferTokens,
)

logger = logging.getLogger(__name__)


class TransactionExecutor:
    """Applies transactions to a WorldState under the ledger's rules."""

    def __init__(self, config: Optional[LedgerConfig] = None):
        self.config = config or LedgerConfig()

    def execute(self, world: WorldState, transaction: Transaction, is_genesis: bool) -> None:
        """
        Apply a single transaction.

        Raises a TransactionError subclass if a precondition fails, in
        which case the world state is unchanged.
        """
        data = transaction.data

        if isinstance(data, CreateUserAccount):
            self._create_account(world, data.account_id, AccountType.user())
        elif isinstance(data, CreateValidatorAccount):
            if not is_genesis and not self._is_validator(world, transaction.sender):
                raise UnauthorizedRegistration(
                    f"{transaction.sender!r} is not a validator and cannot register validators"
                )
            self._create_account(world, data.account_id, AccountType.validator())
        elif isinstance(data, ChangeStoreValue):
            self._change_store_value(world, transaction.sender, data)
        elif isinstance(data, TransferTokens):
            self._transfer(world, transaction.sender, data)
        elif isinstance(data, CreateTokens):
            self._mint(world, transaction.sender, data, is_genesis)
        else:
            raise TypeError(f"Unhandled transaction payload: {data!r}")

        logger.debug("Applied %s (genesis=%s)", transaction, is_genesis)

    @staticmethod
    def _is_validator(world: WorldState, account_id: str) -> bool:
        account = world.get(account_id)
        return account is not None and account.account_type.is_validator

    @staticmethod
    def _create_account(world: WorldState, account_id: str, account_type: AccountType) -> None:
        if world.get(account_id) is not None:
            raise AccountExists(f"Account {account_id!r} already exists")
        world.create_account(account_id, account_type)

    @staticmethod
    def _change_store_value(world: WorldState, sender: str, data: ChangeStoreValue) -> None:
        account = world.get_mut(sender)
        if account is None:
            raise UnknownAccount(f"Sender {sender!r} has no account")
        account.store[data.key] = data.value

    @staticmethod
    def _transfer(world: WorldState, sender: str, data: TransferTokens) -> None:
        from_account = world.get_mut(sender)
        if from_account is None:
            raise UnknownAccount(f"Sender {sender!r} has no account")

        to_account = world.get_mut(data.to)
        if to_account is None:
            raise UnknownAccount(f"Recipient {data.to!r} has no account")

        if from_account.tokens < data.amount:
            raise InsufficientFunds(
                f"Insufficient funds: {sender!r} has {from_account.tokens}, needs {data.amount}"
            )

        from_account.debit(data.amount)
        to_account.credit(data.amount)

    def _mint(self, world: WorldState, sender: str, data: CreateTokens, is_genesis: bool) -> None:
        if not is_genesis:
            if not self._is_validator(world, sender):
                raise UnauthorizedMint(f"{sender!r} is not a validator and cannot create tokens")

            limit = self.config.max_mint_amount
            if limit is not None and data.amount > limit:
                raise MintLimitExceeded(f"Mint of {data.amount} exceeds limit of {limit}")

        receiver: Optional[Account] = world.get_mut(data.receiver)
        if receiver is None:
            receiver = world.create_account(data.receiver, AccountType.user())
        receiver.credit(data.amount)
