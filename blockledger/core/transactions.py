"""
Ledger Transaction Model

A transaction is a sender, a creation timestamp, a nonce, an optional
signature, and exactly one payload out of a closed set:
- CreateUserAccount: register a new user account
- CreateValidatorAccount: register an account allowed to mint
- ChangeStoreValue: write into the sender's key/value store
- TransferTokens: move balance from sender to recipient
- CreateTokens: mint new balance (privileged)

Transactions serialize to canonical JSON so block hashes and signatures
are deterministic across processes.
"""

import hashlib
import json
import time
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Union

MAX_AMOUNT = 2 ** 128 - 1


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"Amount must be an integer, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError("Amount cannot be negative")
    if amount > MAX_AMOUNT:
        raise ValueError(f"Amount exceeds maximum of {MAX_AMOUNT}")


def _check_id(account_id: str, what: str) -> None:
    if not isinstance(account_id, str) or not account_id:
        raise ValueError(f"{what} must be a non-empty string")


@dataclass(frozen=True)
class CreateUserAccount:
    account_id: str

    def __post_init__(self):
        _check_id(self.account_id, "Account id")


@dataclass(frozen=True)
class CreateValidatorAccount:
    account_id: str

    def __post_init__(self):
        _check_id(self.account_id, "Account id")


@dataclass(frozen=True)
class ChangeStoreValue:
    key: str
    value: str

    def __post_init__(self):
        if not isinstance(self.key, str) or not isinstance(self.value, str):
            raise ValueError("Store keys and values must be strings")


@dataclass(frozen=True)
class TransferTokens:
    to: str
    amount: int

    def __post_init__(self):
        _check_id(self.to, "Recipient")
        _check_amount(self.amount)


@dataclass(frozen=True)
class CreateTokens:
    receiver: str
    amount: int

    def __post_init__(self):
        _check_id(self.receiver, "Receiver")
        _check_amount(self.amount)


TransactionData = Union[
    CreateUserAccount,
    CreateValidatorAccount,
    ChangeStoreValue,
    TransferTokens,
    CreateTokens,
]

PAYLOAD_TYPES: dict[str, type] = {
    cls.__name__: cls
    for cls in (CreateUserAccount, CreateValidatorAccount, ChangeStoreValue,
                TransferTokens, CreateTokens)
}
PAYLOAD_CLASSES = tuple(PAYLOAD_TYPES.values())


def payload_to_dict(data: TransactionData) -> dict[str, Any]:
    """Encode a payload as a plain dict tagged with its kind."""
    if not isinstance(data, PAYLOAD_CLASSES):
        raise TypeError(f"Unknown transaction payload: {data!r}")
    encoded = {"kind": type(data).__name__}
    encoded.update(vars(data))
    return encoded


def payload_from_dict(encoded: dict[str, Any]) -> TransactionData:
    fields = dict(encoded)
    kind = fields.pop("kind", None)
    if kind not in PAYLOAD_TYPES:
        raise ValueError(f"Unknown transaction kind: {kind!r}")
    return PAYLOAD_TYPES[kind](**fields)


def canonical_json(obj: Any) -> bytes:
    """Deterministic JSON encoding used for every hash and signature."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class Transaction:
    """
    Complete ledger transaction.

    The signature is opaque to the engine: an external verifier decides
    whether it is trustworthy. See signing.py for the companion helpers.
    """
    sender: str
    data: TransactionData
    nonce: int = 0
    timestamp: float = field(default_factory=time.time)
    signature: Optional[str] = None   # hex, set by sign_transaction

    def __post_init__(self):
        _check_id(self.sender, "Sender")
        if not isinstance(self.data, PAYLOAD_CLASSES):
            raise TypeError(f"Unknown transaction payload: {self.data!r}")

    def to_dict(self) -> dict[str, Any]:
        """Encode every field, signature included."""
        return {
            "sender": self.sender,
            "timestamp": self.timestamp,
            "nonce": self.nonce,
            "signature": self.signature,
            "data": payload_to_dict(self.data),
        }

    @classmethod
    def from_dict(cls, encoded: dict[str, Any]) -> 'Transaction':
        return cls(
            sender=encoded["sender"],
            data=payload_from_dict(encoded["data"]),
            nonce=encoded.get("nonce", 0),
            timestamp=encoded["timestamp"],
            signature=encoded.get("signature"),
        )

    def hash(self) -> str:
        """Compute deterministic transaction hash."""
        return hashlib.sha256(canonical_json(self.to_dict())).hexdigest()

    def signing_payload(self) -> bytes:
        """Bytes covered by the signature: everything except the signature."""
        unsigned = self.to_dict()
        del unsigned["signature"]
        return canonical_json(unsigned)

    def with_signature(self, signature: Optional[str]) -> 'Transaction':
        return replace(self, signature=signature)

    def __str__(self) -> str:
        return f"Transaction({type(self.data).__name__} from {self.sender}, nonce={self.nonce})"
