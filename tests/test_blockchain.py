"""
Tests for the chain controller: commit, rollback and chain integrity.
"""

import logging
import threading
from dataclasses import replace

import pytest

from blockledger import (
    Block,
    Blockchain,
    BrokenChainLink,
    ChangeStoreValue,
    CreateTokens,
    CreateUserAccount,
    EmptyBlock,
    HashMismatch,
    InsufficientFunds,
    LedgerConfig,
    TransactionFailed,
    TransferTokens,
    UnauthorizedMint,
    UnknownAccount,
)

from conftest import make_tx


class TestScenarios:
    """End-to-end append scenarios."""

    def test_first_block_creates_account(self, chain):
        block = Block.create([make_tx("root", CreateUserAccount("alice"))])
        chain.append_block(block)

        assert chain.height == 1
        assert chain.head is block
        assert chain.get_account("alice").tokens == 0

    def test_non_validator_mint_rejected(self, funded_chain):
        before = funded_chain.accounts.copy()
        block = funded_chain.new_block([make_tx("alice", CreateTokens(receiver="alice", amount=100))])

        with pytest.raises(TransactionFailed) as exc_info:
            funded_chain.append_block(block)

        assert exc_info.value.index == 1
        assert isinstance(exc_info.value.cause, UnauthorizedMint)
        assert funded_chain.accounts == before
        assert funded_chain.height == 1

    def test_failed_transfer_rolls_back_account_creation(self, funded_chain):
        block = funded_chain.new_block([
            make_tx("alice", CreateUserAccount("bob")),
            make_tx("alice", TransferTokens(to="bob", amount=50)),
        ])

        with pytest.raises(TransactionFailed) as exc_info:
            funded_chain.append_block(block)

        assert exc_info.value.index == 2
        assert isinstance(exc_info.value.cause, InsufficientFunds)
        assert exc_info.value.__cause__ is exc_info.value.cause
        assert "bob" not in funded_chain.accounts
        assert funded_chain.balance("alice") == 30

    def test_validator_mint_after_genesis(self, funded_chain):
        funded_chain.append_block(funded_chain.new_block([
            make_tx("val", CreateTokens(receiver="alice", amount=70)),
            make_tx("alice", CreateUserAccount("bob")),
            make_tx("alice", TransferTokens(to="bob", amount=50)),
        ]))
        assert funded_chain.balance("alice") == 50
        assert funded_chain.balance("bob") == 50
        assert funded_chain.height == 2


class TestAtomicity:
    """A failing block leaves accounts exactly as they were."""

    def test_late_failure_undoes_all_earlier_effects(self, funded_chain):
        before = funded_chain.accounts.copy()
        block = funded_chain.new_block([
            make_tx("alice", ChangeStoreValue(key="status", value="rich")),
            make_tx("alice", CreateUserAccount("bob")),
            make_tx("alice", TransferTokens(to="bob", amount=30)),
            make_tx("val", CreateTokens(receiver="carol", amount=5)),
            make_tx("ghost", ChangeStoreValue(key="k", value="v")),
        ])

        with pytest.raises(TransactionFailed) as exc_info:
            funded_chain.append_block(block)

        assert exc_info.value.index == 5
        assert isinstance(exc_info.value.cause, UnknownAccount)
        assert funded_chain.accounts == before
        assert funded_chain.accounts.to_dict() == before.to_dict()

    def test_failed_genesis_leaves_chain_empty(self, chain):
        block = Block.create([
            make_tx("root", CreateUserAccount("alice")),
            make_tx("root", CreateUserAccount("alice")),
        ])
        with pytest.raises(TransactionFailed):
            chain.append_block(block)
        assert len(chain.accounts) == 0
        assert chain.head is None

    def test_unexpected_error_still_rolls_back(self, funded_chain, monkeypatch):
        before = funded_chain.accounts.copy()
        real_execute = funded_chain.executor.execute
        calls = []

        def flaky_execute(world, transaction, is_genesis):
            calls.append(transaction)
            if len(calls) == 2:
                raise RuntimeError("executor crashed")
            real_execute(world, transaction, is_genesis)

        monkeypatch.setattr(funded_chain.executor, "execute", flaky_execute)
        block = funded_chain.new_block([
            make_tx("alice", CreateUserAccount("bob")),
            make_tx("alice", CreateUserAccount("carol")),
        ])

        with pytest.raises(RuntimeError):
            funded_chain.append_block(block)

        assert funded_chain.accounts == before
        assert "bob" not in funded_chain.accounts
        assert funded_chain.height == 1

    def test_balances_never_negative(self, funded_chain):
        for amount in (10, 25, 20):
            try:
                funded_chain.append_block(funded_chain.new_block(
                    [make_tx("alice", TransferTokens(to="val", amount=amount))]
                ))
            except TransactionFailed as e:
                assert isinstance(e.cause, InsufficientFunds)
        assert funded_chain.balance("alice") == 0
        assert funded_chain.balance("val") == 30
        assert all(funded_chain.get_account(i).tokens >= 0 for i in funded_chain.account_ids())


class TestChainLinkage:
    """Hash-chain rules."""

    def test_first_block_needs_absent_prev_hash(self, chain):
        block = Block.create([make_tx("root", CreateUserAccount("a"))], prev_hash="00" * 32)
        with pytest.raises(BrokenChainLink):
            chain.append_block(block)

    def test_later_block_must_link_to_head(self, funded_chain):
        unlinked = Block.create([make_tx("root", CreateUserAccount("b"))])
        with pytest.raises(BrokenChainLink):
            funded_chain.append_block(unlinked)

        stale = Block.create([make_tx("root", CreateUserAccount("b"))], prev_hash="ab" * 32)
        with pytest.raises(BrokenChainLink):
            funded_chain.append_block(stale)

        funded_chain.append_block(
            Block.create([make_tx("root", CreateUserAccount("b"))], prev_hash=funded_chain.head_hash)
        )
        assert "b" in funded_chain.accounts

    def test_block_built_on_old_head_rejected(self, funded_chain):
        old_head_block = funded_chain.new_block([make_tx("root", CreateUserAccount("x"))])
        funded_chain.append_block(funded_chain.new_block([make_tx("root", CreateUserAccount("y"))]))
        with pytest.raises(BrokenChainLink):
            funded_chain.append_block(old_head_block)


class TestHashIntegrity:
    """Tampering without recomputing trans_hash is caught."""

    @pytest.fixture
    def block(self, funded_chain):
        return funded_chain.new_block([
            make_tx("alice", ChangeStoreValue(key="a", value="1")),
            make_tx("alice", ChangeStoreValue(key="b", value="2")),
        ], nonce=4)

    def test_changed_nonce(self, funded_chain, block):
        with pytest.raises(HashMismatch):
            funded_chain.append_block(replace(block, nonce=5))

    def test_reordered_transactions(self, funded_chain, block):
        with pytest.raises(HashMismatch):
            funded_chain.append_block(replace(block, transactions=block.transactions[::-1]))

    def test_changed_transaction(self, funded_chain, block):
        altered = replace(block.transactions[0], data=ChangeStoreValue(key="a", value="9"))
        with pytest.raises(HashMismatch):
            funded_chain.append_block(replace(block, transactions=(altered, block.transactions[1])))

    def test_untampered_block_accepted(self, funded_chain, block):
        funded_chain.append_block(block)
        assert funded_chain.get_account("alice").store == {"a": "1", "b": "2"}


class TestRejection:
    """Rejected blocks can be retried with the same result."""

    def test_idempotent_rejection(self, funded_chain):
        block = funded_chain.new_block([make_tx("alice", TransferTokens(to="val", amount=999))])
        errors = []
        for _ in range(2):
            with pytest.raises(TransactionFailed) as exc_info:
                funded_chain.append_block(block)
            errors.append((exc_info.value.index, type(exc_info.value.cause), str(exc_info.value)))
        assert errors[0] == errors[1]
        assert funded_chain.height == 1

    def test_empty_block_rejected(self, funded_chain):
        with pytest.raises(EmptyBlock):
            funded_chain.append_block(Block(transactions=(), prev_hash=funded_chain.head_hash))
        assert funded_chain.height == 1

    def test_rejection_is_logged(self, funded_chain, caplog):
        caplog.set_level(logging.WARNING, logger="blockledger.core.blockchain")
        with pytest.raises(EmptyBlock):
            funded_chain.append_block(Block(transactions=()))
        assert "Block rejected" in caplog.text


class TestPendingTransactions:
    """Block production from the transaction pool."""

    def test_produce_block(self, funded_chain):
        assert funded_chain.submit_transaction(make_tx("alice", CreateUserAccount("bob")))
        assert funded_chain.submit_transaction(make_tx("alice", TransferTokens(to="bob", amount=10)))
        block = funded_chain.produce_block(nonce=1)

        assert block is funded_chain.head
        assert len(block) == 2
        assert funded_chain.balance("bob") == 10
        assert len(funded_chain.pending) == 0

    def test_duplicate_submission_ignored(self, funded_chain):
        tx = make_tx("alice", CreateUserAccount("bob"))
        assert funded_chain.submit_transaction(tx)
        assert not funded_chain.submit_transaction(tx)
        assert len(funded_chain.pending) == 1

    def test_nothing_pending(self, funded_chain):
        assert funded_chain.produce_block() is None
        assert funded_chain.height == 1

    def test_failed_production_drops_offender(self, funded_chain):
        bad = make_tx("alice", TransferTokens(to="val", amount=999))
        good = make_tx("alice", CreateUserAccount("bob"))
        funded_chain.submit_transaction(bad)
        funded_chain.submit_transaction(good)

        with pytest.raises(TransactionFailed) as exc_info:
            funded_chain.produce_block()

        assert exc_info.value.index == 1
        assert funded_chain.pending.pending() == [good]
        assert "bob" not in funded_chain.accounts

        later = make_tx("alice", CreateUserAccount("carol"))
        funded_chain.submit_transaction(later)
        block = funded_chain.produce_block()
        assert block.transactions == (good, later)
        assert {"bob", "carol"} <= funded_chain.account_ids()
        assert len(funded_chain.pending) == 0

    def test_batch_respects_block_size_limit(self):
        chain = Blockchain(LedgerConfig(max_transactions_per_block=2))
        for name in ("a", "b", "c"):
            chain.submit_transaction(make_tx("root", CreateUserAccount(name)))

        assert len(chain.produce_block()) == 2
        assert len(chain.produce_block()) == 1
        assert chain.height == 2
        assert chain.account_ids() == {"a", "b", "c"}
        assert len(chain.pending) == 0

    def test_submit_waits_for_writer(self, funded_chain):
        tx = make_tx("alice", CreateUserAccount("bob"))
        submitter = threading.Thread(target=funded_chain.submit_transaction, args=(tx,))

        with funded_chain._write_lock:
            submitter.start()
            submitter.join(timeout=0.2)
            assert submitter.is_alive()
            assert len(funded_chain.pending) == 0

        submitter.join(timeout=5)
        assert not submitter.is_alive()
        assert tx.hash() in funded_chain.pending

    def test_batch_size(self):
        chain = Blockchain(LedgerConfig(pending_batch_size=2))
        for name in ("a", "b", "c"):
            chain.submit_transaction(make_tx("root", CreateUserAccount(name)))
        chain.produce_block()
        assert chain.account_ids() == {"a", "b"}
        chain.produce_block()
        assert chain.height == 2
        assert chain.head.prev_hash == chain.blocks[0].hash()


class TestQueries:
    """Read-side helpers."""

    def test_stats(self, funded_chain):
        stats = funded_chain.get_stats()
        assert stats.height == 1
        assert stats.total_transactions == 3
        assert stats.total_accounts == 2
        assert stats.total_supply == 30
        assert stats.head_hash == funded_chain.head.hash()

    def test_get_block_by_hash(self, funded_chain):
        head = funded_chain.head
        assert funded_chain.get_block_by_hash(head.hash()) is head
        assert funded_chain.get_block_by_hash("missing") is None

    def test_snapshot_is_detached(self, funded_chain):
        snapshot = funded_chain.snapshot_accounts()
        funded_chain.append_block(funded_chain.new_block(
            [make_tx("alice", TransferTokens(to="val", amount=30))]
        ))
        assert snapshot["alice"].tokens == 30
        assert funded_chain.balance("alice") == 0

    def test_validate_chain_detects_tampering(self, funded_chain):
        funded_chain.append_block(funded_chain.new_block([make_tx("root", CreateUserAccount("z"))]))
        assert funded_chain.validate_chain()

        genesis = funded_chain.blocks[0]
        funded_chain.blocks[0] = replace(genesis, nonce=genesis.nonce + 1)
        assert not funded_chain.validate_chain()

    def test_empty_chain(self, chain):
        assert chain.head is None
        assert chain.head_hash is None
        assert chain.balance("anyone") == 0
        assert chain.validate_chain()
