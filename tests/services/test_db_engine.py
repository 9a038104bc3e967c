"""Tests for engine lifecycle and the transactional session scope."""

import pytest
from sqlalchemy import select

from envelope_kernel.db.engine import (
    drop_tables,
    get_session,
    init_database,
    reset_engine,
    session_scope,
)
from envelope_kernel.domain.dtos import AccountType
from envelope_kernel.domain.values import Money
from envelope_kernel.models.account import AccountModel


@pytest.fixture
def database():
    init_database("sqlite:///:memory:")
    yield
    drop_tables()
    reset_engine()


def _account(name: str) -> AccountModel:
    return AccountModel(
        name=name,
        account_type=AccountType.CASH.value,
        starting_balance=Money(100),
    )


def test_uninitialized_engine():
    reset_engine()
    with pytest.raises(RuntimeError):
        get_session()


def test_scope_commits(database):
    with session_scope() as session:
        session.add(_account("Wallet"))

    with session_scope() as session:
        names = session.scalars(select(AccountModel.name)).all()
    assert names == ["Wallet"]


def test_scope_rolls_back_and_reraises(database, captured_logs):
    with pytest.raises(ValueError):
        with session_scope() as session:
            session.add(_account("Wallet"))
            session.flush()
            raise ValueError("boom")

    with session_scope() as session:
        assert session.scalars(select(AccountModel)).all() == []
    assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())
