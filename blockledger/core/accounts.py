"""
Ledger Account Model

All ledger state lives in accounts keyed by a string identifier:
- Each account holds a key/value string store for application data
- Each account has a type: user, contract, or validator
- Token balances are non-negative integers
- Accounts are created once and never deleted

The AccountStore is plain CRUD. Deciding *whether* a mutation is allowed
belongs to the transaction executor, which only sees the WorldState
capability interface.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

from .errors import AccountExists


class AccountKind(Enum):
    USER = "user"
    CONTRACT = "contract"
    VALIDATOR = "validator"


@dataclass
class ValidatorStats:
    """Consensus bookkeeping carried by validator accounts."""
    correctly_validated_blocks: int = 0
    incorrectly_validated_blocks: int = 0


@dataclass
class AccountType:
    """
    Account type tag.

    Validators additionally carry ValidatorStats; for every other kind
    validator_stats is None.
    """
    kind: AccountKind
    validator_stats: Optional[ValidatorStats] = None

    def __post_init__(self):
        if self.kind is AccountKind.VALIDATOR and self.validator_stats is None:
            self.validator_stats = ValidatorStats()
        if self.kind is not AccountKind.VALIDATOR and self.validator_stats is not None:
            raise ValueError(f"{self.kind.value} accounts carry no validator stats")

    @classmethod
    def user(cls) -> 'AccountType':
        return cls(AccountKind.USER)

    @classmethod
    def contract(cls) -> 'AccountType':
        return cls(AccountKind.CONTRACT)

    @classmethod
    def validator(cls, correctly_validated_blocks: int = 0,
                  incorrectly_validated_blocks: int = 0) -> 'AccountType':
        return cls(AccountKind.VALIDATOR, ValidatorStats(
            correctly_validated_blocks, incorrectly_validated_blocks
        ))

    @property
    def is_validator(self) -> bool:
        return self.kind is AccountKind.VALIDATOR

    def copy(self) -> 'AccountType':
        stats = None
        if self.validator_stats is not None:
            stats = ValidatorStats(
                self.validator_stats.correctly_validated_blocks,
                self.validator_stats.incorrectly_validated_blocks
            )
        return AccountType(self.kind, stats)


@dataclass
class Account:
    """
    A single ledger account.

    The identifier is not stored here; it is the key under which the
    account lives in the AccountStore.
    """
    account_type: AccountType
    store: dict[str, str] = field(default_factory=dict)
    tokens: int = 0

    def __post_init__(self):
        """Validate account invariants."""
        if self.tokens < 0:
            raise ValueError("Token balance cannot be negative")

    def credit(self, amount: int) -> None:
        if amount < 0:
            raise ValueError("Cannot credit a negative amount")
        self.tokens += amount

    def debit(self, amount: int) -> None:
        if amount < 0:
            raise ValueError("Cannot debit a negative amount")
        if self.tokens < amount:
            raise ValueError(f"Debit of {amount} exceeds balance {self.tokens}")
        self.tokens -= amount

    def copy(self) -> 'Account':
        """Create a deep copy of this account."""
        return Account(
            account_type=self.account_type.copy(),
            store=dict(self.store),
            tokens=self.tokens
        )


class WorldState(Protocol):
    """
    What a transaction is allowed to do to the ledger.

    The executor is written against this narrow interface so it cannot
    reach around the store's own invariants.
    """

    def list_ids(self) -> set[str]: ...

    def get(self, account_id: str) -> Optional[Account]: ...

    def get_mut(self, account_id: str) -> Optional[Account]: ...

    def create_account(self, account_id: str, account_type: AccountType) -> Account: ...


class AccountStore:
    """
    Mapping from account identifier to Account.

    This is the ledger's single source of truth for account state.
    get() hands out detached copies; get_mut() hands out the live account.
    """

    def __init__(self):
        self._accounts: dict[str, Account] = {}

    def create_account(self, account_id: str, account_type: AccountType) -> Account:
        """Insert a fresh account with an empty store and zero balance."""
        if account_id in self._accounts:
            raise AccountExists(f"Account {account_id!r} already exists")

        account = Account(account_type=account_type)
        self._accounts[account_id] = account
        return account

    def get(self, account_id: str) -> Optional[Account]:
        """Read-only lookup; mutating the result does not touch the store."""
        account = self._accounts.get(account_id)
        return account.copy() if account is not None else None

    def get_mut(self, account_id: str) -> Optional[Account]:
        return self._accounts.get(account_id)

    def list_ids(self) -> set[str]:
        return set(self._accounts)

    def total_tokens(self) -> int:
        """Sum of all balances (the circulating supply)."""
        return sum(account.tokens for account in self._accounts.values())

    def snapshot(self) -> dict[str, Account]:
        """Full logical copy of the account table."""
        return {account_id: account.copy() for account_id, account in self._accounts.items()}

    def restore(self, snapshot: dict[str, Account]) -> None:
        """Replace the whole table with a snapshot taken earlier."""
        self._accounts = {account_id: account.copy() for account_id, account in snapshot.items()}

    def copy(self) -> 'AccountStore':
        clone = AccountStore()
        clone.restore(self._accounts)
        return clone

    def to_dict(self) -> dict[str, dict]:
        """Plain-data view of every account, for inspection and display."""
        return {
            account_id: {
                "type": account.account_type.kind.value,
                "tokens": account.tokens,
                "store": dict(account.store),
            }
            for account_id, account in sorted(self._accounts.items())
        }

    def __len__(self) -> int:
        """Number of accounts in the store."""
        return len(self._accounts)

    def __contains__(self, account_id: str) -> bool:
        """Check if account exists using 'in' operator."""
        return account_id in self._accounts

    def __getitem__(self, account_id: str) -> Account:
        """Read-only lookup using bracket notation."""
        account = self.get(account_id)
        if account is None:
            raise KeyError(f"Account {account_id} not found")
        return account

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccountStore):
            return NotImplemented
        return self._accounts == other._accounts
