"""
Tests for TransactionService: creation rules, splits, transfers and the
reconciled-transaction lock.
"""

from datetime import date
from uuid import uuid4

import pytest

from envelope_kernel.domain.dtos import Split, TransactionStatus
from envelope_kernel.domain.values import Money
from envelope_kernel.exceptions import (
    AccountArchivedError,
    AccountNotFoundError,
    CategoryAndSplitsError,
    CategoryNotFoundError,
    InvalidAmountError,
    LockedError,
    SameAccountError,
    SplitsMismatchError,
    TransactionNotFoundError,
    TransactionNotLockedError,
)
from envelope_kernel.services.transaction_service import TransactionFilter


class TestCreate:
    def test_create_with_category(self, transactions, seeded, jan):
        txn = transactions.create(
            seeded.checking.id, jan(5), Money(-4500), payee_name=" Grocer ",
            category_id=seeded.groceries.id,
        )
        fetched = transactions.get(txn.id)
        assert fetched.payee_name == "Grocer"
        assert fetched.category_id == seeded.groceries.id
        assert fetched.status is TransactionStatus.PENDING

    def test_unknown_account(self, transactions, jan):
        with pytest.raises(AccountNotFoundError):
            transactions.create(uuid4(), jan(5), Money(-100))

    def test_unknown_category(self, transactions, seeded, jan):
        with pytest.raises(CategoryNotFoundError):
            transactions.create(seeded.checking.id, jan(5), Money(-100), category_id=uuid4())

    def test_archived_account(self, accounts, transactions, seeded, jan):
        accounts.archive(seeded.savings.id)
        with pytest.raises(AccountArchivedError):
            transactions.create(seeded.savings.id, jan(5), Money(-100))

    def test_split_mismatch_is_rejected_not_truncated(self, transactions, seeded, jan):
        splits = [Split(seeded.groceries.id, Money(-6000)), Split(seeded.dining.id, Money(-3000))]
        with pytest.raises(SplitsMismatchError):
            transactions.create(seeded.checking.id, jan(5), Money(-10000), splits=splits)
        assert transactions.list() == []

    def test_split_transaction_round_trips(self, transactions, seeded, jan):
        splits = [Split(seeded.groceries.id, Money(-6000)), Split(seeded.dining.id, Money(-4000), "lunch")]
        txn = transactions.create(seeded.checking.id, jan(5), Money(-10000), splits=splits)
        fetched = transactions.get(txn.id)
        assert fetched.splits == tuple(splits)

    def test_category_and_splits(self, transactions, seeded, jan):
        with pytest.raises(CategoryAndSplitsError):
            transactions.create(
                seeded.checking.id, jan(5), Money(-100),
                category_id=seeded.groceries.id,
                splits=[Split(seeded.dining.id, Money(-100))],
            )


class TestList:
    def test_filters(self, transactions, seeded, jan):
        a = transactions.create(seeded.checking.id, jan(2), Money(-100), category_id=seeded.rent.id)
        b = transactions.create(
            seeded.checking.id, jan(10), Money(-300),
            splits=[Split(seeded.rent.id, Money(-100)), Split(seeded.dining.id, Money(-200))],
        )
        c = transactions.create(seeded.savings.id, jan(20), Money(500))

        assert [t.id for t in transactions.list(TransactionFilter(account_id=seeded.checking.id))] == [a.id, b.id]
        assert {t.id for t in transactions.list(TransactionFilter(category_id=seeded.rent.id))} == {a.id, b.id}
        assert [t.id for t in transactions.list(TransactionFilter(start_date=jan(5)))] == [b.id, c.id]
        assert [t.id for t in transactions.list(TransactionFilter(end_date=jan(5)))] == [a.id]
        assert len(transactions.list(TransactionFilter(limit=2))) == 2

    def test_status_filters(self, transactions, seeded, jan):
        pending = transactions.create(seeded.checking.id, jan(2), Money(-100))
        cleared = transactions.create(seeded.checking.id, jan(3), Money(-200))
        transactions.clear(cleared.id)

        assert [t.id for t in transactions.list_uncleared(seeded.checking.id)] == [pending.id]
        assert [t.id for t in transactions.list_unreconciled(seeded.checking.id)] == [pending.id, cleared.id]


class TestUpdate:
    def test_update_fields(self, transactions, seeded, jan):
        txn = transactions.create(seeded.checking.id, jan(5), Money(-100))
        updated = transactions.update(
            txn.id, amount=Money(-250), memo="fixed", category_id=seeded.dining.id
        )
        assert updated.amount == Money(-250)
        assert updated.memo == "fixed"
        assert updated.category_id == seeded.dining.id
        assert updated.date == jan(5)

    def test_setting_category_drops_splits(self, transactions, seeded, jan):
        txn = transactions.create(
            seeded.checking.id, jan(5), Money(-300),
            splits=[Split(seeded.rent.id, Money(-100)), Split(seeded.dining.id, Money(-200))],
        )
        updated = transactions.update(txn.id, category_id=seeded.groceries.id)
        assert updated.splits == ()
        assert updated.category_id == seeded.groceries.id

    def test_amount_change_must_keep_splits_balanced(self, transactions, seeded, jan):
        txn = transactions.create(
            seeded.checking.id, jan(5), Money(-300),
            splits=[Split(seeded.rent.id, Money(-300))],
        )
        with pytest.raises(SplitsMismatchError):
            transactions.update(txn.id, amount=Money(-400))

    def test_set_and_clear_splits(self, transactions, seeded, jan):
        txn = transactions.create(seeded.checking.id, jan(5), Money(-300), category_id=seeded.rent.id)
        split = transactions.set_splits(
            txn.id, [Split(seeded.rent.id, Money(-100)), Split(seeded.dining.id, Money(-200))]
        )
        assert split.category_id is None
        assert len(split.splits) == 2
        assert transactions.clear_splits(txn.id).splits == ()

    def test_unknown_transaction(self, transactions):
        with pytest.raises(TransactionNotFoundError):
            transactions.update(uuid4(), memo="x")


class TestTransfers:
    def test_creates_linked_pair(self, transactions, seeded, jan):
        outflow, inflow = transactions.create_transfer(
            seeded.checking.id, seeded.savings.id, Money(20000), jan(8)
        )
        assert outflow.amount == Money(-20000)
        assert inflow.amount == Money(20000)
        assert outflow.transfer_transaction_id == inflow.id
        assert inflow.transfer_transaction_id == outflow.id
        assert outflow.payee_name == "Transfer to Savings"
        assert inflow.payee_name == "Transfer from Checking"
        assert transactions.get_linked(outflow.id).id == inflow.id

    @pytest.mark.parametrize("amount", [0, -100])
    def test_amount_must_be_positive(self, transactions, seeded, jan, amount):
        with pytest.raises(InvalidAmountError):
            transactions.create_transfer(seeded.checking.id, seeded.savings.id, Money(amount), jan(8))

    def test_same_account(self, transactions, seeded, jan):
        with pytest.raises(SameAccountError):
            transactions.create_transfer(seeded.checking.id, seeded.checking.id, Money(100), jan(8))

    def test_amount_edit_is_mirrored(self, transactions, seeded, jan):
        outflow, inflow = transactions.create_transfer(
            seeded.checking.id, seeded.savings.id, Money(20000), jan(8)
        )
        transactions.update(outflow.id, amount=Money(-15000), date=jan(9))
        mirrored = transactions.get(inflow.id)
        assert mirrored.amount == Money(15000)
        assert mirrored.date == jan(9)

    def test_delete_removes_both_sides(self, transactions, seeded, jan):
        outflow, inflow = transactions.create_transfer(
            seeded.checking.id, seeded.savings.id, Money(20000), jan(8)
        )
        transactions.delete(inflow.id)
        with pytest.raises(TransactionNotFoundError):
            transactions.get(outflow.id)

    def test_delete_refused_when_other_side_locked(self, transactions, seeded, jan):
        outflow, inflow = transactions.create_transfer(
            seeded.checking.id, seeded.savings.id, Money(20000), jan(8)
        )
        transactions.set_status(inflow.id, TransactionStatus.RECONCILED)
        with pytest.raises(LockedError):
            transactions.delete(outflow.id)
        assert transactions.get(outflow.id).amount == Money(-20000)


class TestLock:
    @pytest.fixture
    def locked(self, transactions, seeded, jan):
        txn = transactions.create(seeded.checking.id, jan(5), Money(-100), category_id=seeded.rent.id)
        return transactions.set_status(txn.id, TransactionStatus.RECONCILED)

    def test_edit_refused(self, transactions, locked):
        with pytest.raises(LockedError) as exc_info:
            transactions.update(locked.id, amount=Money(-200))
        assert exc_info.value.operation == "edited"
        assert exc_info.value.transaction_id == str(locked.id)

    @pytest.mark.parametrize("operation", ["delete", "clear", "unclear", "clear_splits"])
    def test_other_mutations_refused(self, transactions, locked, operation):
        with pytest.raises(LockedError):
            getattr(transactions, operation)(locked.id)

    def test_set_splits_refused(self, transactions, locked, seeded):
        with pytest.raises(LockedError):
            transactions.set_splits(locked.id, [Split(seeded.rent.id, Money(-100))])

    def test_unlock_then_edit(self, transactions, locked, captured_logs):
        unlocked = transactions.unlock(locked.id)
        assert unlocked.status is TransactionStatus.CLEARED

        edited = transactions.update(locked.id, amount=Money(-200))
        assert edited.amount == Money(-200)
        assert any(r["message"] == "transaction_unlocked" for r in captured_logs())

    def test_unlock_requires_lock(self, transactions, seeded, jan):
        txn = transactions.create(seeded.checking.id, jan(5), Money(-100))
        with pytest.raises(TransactionNotLockedError):
            transactions.unlock(txn.id)
