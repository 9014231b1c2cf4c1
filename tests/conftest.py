import pytest

from blockledger import (
    Block,
    Blockchain,
    CreateTokens,
    CreateUserAccount,
    CreateValidatorAccount,
    Transaction,
)

FIXED_TIMESTAMP = 1_700_000_000.0


def make_tx(sender, data, nonce=0):
    """Transaction with a fixed timestamp so hashes are reproducible."""
    return Transaction(sender=sender, data=data, nonce=nonce, timestamp=FIXED_TIMESTAMP)


@pytest.fixture
def chain():
    return Blockchain()


@pytest.fixture
def funded_chain():
    """
    Chain of height 1: alice is a user with 30 tokens, val is a validator.
    """
    blockchain = Blockchain()
    genesis = Block.create([
        make_tx("root", CreateUserAccount("alice")),
        make_tx("root", CreateTokens(receiver="alice", amount=30)),
        make_tx("root", CreateValidatorAccount("val")),
    ])
    blockchain.append_block(genesis)
    return blockchain
