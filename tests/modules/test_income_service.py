"""Tests for expected income per budget period."""

import pytest

from envelope_kernel.domain.period import BudgetPeriod
from envelope_kernel.domain.values import Money
from envelope_kernel.exceptions import InvalidAmountError
from envelope_modules.budget.income import IncomeService

JAN = BudgetPeriod.monthly(2025, 1)
FEB = BudgetPeriod.monthly(2025, 2)


@pytest.fixture
def income(session):
    return IncomeService(session)


def test_set_and_get(income):
    saved = income.set_expected_income(JAN, Money.parse("5000.00"), notes="salary")
    found = income.get_expected_income(JAN)
    assert found == saved
    assert found.expected_amount == Money(500000)
    assert found.notes == "salary"


def test_missing_period_is_none(income):
    assert income.get_expected_income(FEB) is None


def test_setting_again_overwrites(income):
    first = income.set_expected_income(JAN, Money(100))
    second = income.set_expected_income(JAN, Money(200))
    assert second.id == first.id
    assert income.get_expected_income(JAN).expected_amount == Money(200)
    assert len(income.list_expectations()) == 1


def test_zero_allowed(income):
    assert income.set_expected_income(JAN, Money.zero()).expected_amount.is_zero


def test_negative_rejected(income):
    with pytest.raises(InvalidAmountError):
        income.set_expected_income(JAN, Money(-1))
    assert income.get_expected_income(JAN) is None


def test_weekly_and_monthly_are_separate(income):
    income.set_expected_income(JAN, Money(100))
    income.set_expected_income(BudgetPeriod.weekly(2025, 1), Money(25))
    assert income.get_expected_income(JAN).expected_amount == Money(100)
    assert len(income.list_expectations()) == 2


def test_delete(income):
    income.set_expected_income(JAN, Money(100))
    assert income.delete_expected_income(JAN) is True
    assert income.delete_expected_income(JAN) is False
    assert income.get_expected_income(JAN) is None


def test_list_ordered_by_period(income):
    income.set_expected_income(FEB, Money(2))
    income.set_expected_income(JAN, Money(1))
    assert [e.period for e in income.list_expectations()] == [JAN, FEB]


def test_over_budget_helpers(income):
    expectation = income.set_expected_income(JAN, Money(1000))
    assert expectation.is_over_budget(Money(1001))
    assert not expectation.is_over_budget(Money(1000))
    assert expectation.remaining_to_budget(Money(1200)) == Money(-200)
