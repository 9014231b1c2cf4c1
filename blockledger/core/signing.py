"""
Transaction signing helpers.

The ledger engine never verifies signatures; these helpers are for the
signer/verifier that sits in front of it. Keys are SECP256k1, public keys
and signatures travel as hex strings.
"""

import hashlib

from ecdsa import SigningKey, VerifyingKey, SECP256k1
from ecdsa.keys import BadSignatureError, MalformedPointError

from .transactions import Transaction


def generate_keypair() -> tuple[SigningKey, str]:
    """
    Generate a new SECP256k1 keypair.

    Returns:
        Tuple of (private_key, public_key_hex)
    """
    private_key = SigningKey.generate(curve=SECP256k1)
    public_key_hex = private_key.verifying_key.to_string().hex()
    return private_key, public_key_hex


def sign_transaction(transaction: Transaction, private_key: SigningKey) -> Transaction:
    """Return a copy of the transaction carrying a signature over its payload."""
    signature = private_key.sign(transaction.signing_payload(), hashfunc=hashlib.sha256)
    return transaction.with_signature(signature.hex())


def verify_transaction(transaction: Transaction, public_key_hex: str) -> bool:
    """Check the transaction's signature against a hex public key."""
    if transaction.signature is None:
        return False

    try:
        verifying_key = VerifyingKey.from_string(bytes.fromhex(public_key_hex), curve=SECP256k1)
        return verifying_key.verify(
            bytes.fromhex(transaction.signature),
            transaction.signing_payload(),
            hashfunc=hashlib.sha256
        )
    except (BadSignatureError, MalformedPointError, ValueError):
        return False
