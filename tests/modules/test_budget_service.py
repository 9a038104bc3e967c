"""
Tests for BudgetService: allocations, Available to Budget, rollover
summaries, targets and income comparison.

Seed: Checking 1,000.00 and Savings 500.00 on budget, Brokerage 2,000.00
off budget.
"""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import event

from envelope_kernel.domain.dtos import Split
from envelope_kernel.domain.period import BudgetPeriod, PeriodKind
from envelope_kernel.domain.target import CadenceKind, TargetCadence
from envelope_kernel.domain.values import Money
from envelope_kernel.exceptions import (
    CategoryNotFoundError,
    InvalidAmountError,
    SameCategoryError,
)
from envelope_modules.budget import BudgetConfig, BudgetService

DEC = BudgetPeriod.monthly(2024, 12)
JAN = BudgetPeriod.monthly(2025, 1)
FEB = BudgetPeriod.monthly(2025, 2)
MAR = BudgetPeriod.monthly(2025, 3)


def _fresh_summary(session, category_id, period):
    with BudgetService(session) as service:
        return service.get_category_summary(category_id, period)


class TestAllocations:
    def test_assign_overwrites(self, budget, seeded):
        budget.assign_to_category(seeded.rent.id, JAN, Money(80000))
        budget.assign_to_category(seeded.rent.id, JAN, Money(85000))
        assert budget.get_allocation(seeded.rent.id, JAN) == Money(85000)
        assert budget.get_allocation(seeded.rent.id, FEB) == Money.zero()

    def test_negative_assignment_allowed(self, budget, seeded):
        budget.assign_to_category(seeded.rent.id, JAN, Money(-100))
        assert budget.get_allocation(seeded.rent.id, JAN) == Money(-100)

    def test_unknown_category(self, budget):
        with pytest.raises(CategoryNotFoundError):
            budget.assign_to_category(uuid4(), JAN, Money(100))

    def test_add_increments(self, budget, seeded):
        assert budget.add_to_category(seeded.dining.id, JAN, Money(1000)) == Money(1000)
        assert budget.add_to_category(seeded.dining.id, JAN, Money(500)) == Money(1500)
        assert budget.get_available_to_budget(JAN) == Money(150000 - 1500)

    def test_history(self, budget, seeded):
        budget.assign_to_category(seeded.rent.id, FEB, Money(2))
        budget.assign_to_category(seeded.rent.id, JAN, Money(1))
        assert budget.get_allocation_history(seeded.rent.id) == [(JAN, Money(1)), (FEB, Money(2))]

    def test_assign_logs_with_context(self, budget, seeded, captured_logs):
        budget.assign_to_category(seeded.rent.id, JAN, Money(80000))
        record = [r for r in captured_logs() if r["message"] == "budget_assigned"][0]
        assert record["category_id"] == str(seeded.rent.id)
        assert record["period"] == "2025-01"
        assert record["to_cents"] == 80000


class TestMove:
    def test_move_is_zero_sum(self, budget, seeded):
        budget.assign_to_category(seeded.groceries.id, JAN, Money(40000))
        atb_before = budget.get_available_to_budget(JAN)

        budget.move_between_categories(seeded.groceries.id, seeded.dining.id, JAN, Money(15000))

        assert budget.get_allocation(seeded.groceries.id, JAN) == Money(25000)
        assert budget.get_allocation(seeded.dining.id, JAN) == Money(15000)
        assert budget.get_available_to_budget(JAN) == atb_before

    def test_same_category(self, budget, seeded):
        with pytest.raises(SameCategoryError):
            budget.move_between_categories(seeded.rent.id, seeded.rent.id, JAN, Money(100))

    @pytest.mark.parametrize("cents", [0, -100])
    def test_amount_must_be_positive(self, budget, seeded, cents):
        with pytest.raises(InvalidAmountError):
            budget.move_between_categories(seeded.rent.id, seeded.dining.id, JAN, Money(cents))

    def test_unknown_destination_changes_nothing(self, budget, seeded):
        budget.assign_to_category(seeded.rent.id, JAN, Money(5000))
        with pytest.raises(CategoryNotFoundError):
            budget.move_between_categories(seeded.rent.id, uuid4(), JAN, Money(100))
        assert budget.get_allocation(seeded.rent.id, JAN) == Money(5000)


class TestAvailableToBudget:
    def test_starting_balances_of_on_budget_accounts(self, budget, seeded):
        assert budget.get_available_to_budget(JAN) == Money(150000)

    def test_allocations_reduce_current_and_later_periods(self, budget, seeded):
        budget.assign_to_category(seeded.rent.id, JAN, Money(80000))
        assert budget.get_available_to_budget(JAN) == Money(70000)
        assert budget.get_available_to_budget(FEB) == Money(70000)
        assert budget.get_available_to_budget(DEC) == Money(150000)

    def test_transactions_through_period_end(self, budget, transactions, seeded):
        transactions.create(seeded.checking.id, date(2025, 1, 2), Money(300000), payee_name="Payroll")
        transactions.create(seeded.checking.id, date(2025, 2, 5), Money(-1000))
        assert budget.get_available_to_budget(JAN) == Money(450000)
        assert budget.get_available_to_budget(FEB) == Money(449000)

    def test_off_budget_and_transfers_excluded(self, budget, transactions, seeded):
        transactions.create(seeded.brokerage.id, date(2025, 1, 2), Money(50000))
        transactions.create_transfer(seeded.checking.id, seeded.brokerage.id, Money(20000), date(2025, 1, 3))
        assert budget.get_available_to_budget(JAN) == Money(150000)

    def test_over_assigned_is_negative(self, budget, seeded):
        budget.assign_to_category(seeded.rent.id, JAN, Money(200000))
        assert budget.get_available_to_budget(JAN) == Money(-50000)


class TestCategorySummary:
    @pytest.fixture
    def spending(self, budget, transactions, seeded):
        budget.assign_to_category(seeded.groceries.id, JAN, Money(40000))
        transactions.create(
            seeded.checking.id, date(2025, 1, 5), Money(-12000), category_id=seeded.groceries.id
        )
        transactions.create(
            seeded.savings.id, date(2025, 1, 9), Money(-10000),
            splits=[Split(seeded.groceries.id, Money(-3000)), Split(seeded.dining.id, Money(-7000))],
        )
        return seeded

    def test_budgeted_activity_available(self, budget, spending):
        summary = budget.get_category_summary(spending.groceries.id, JAN)
        assert summary.budgeted == Money(40000)
        assert summary.activity == Money(-15000)
        assert summary.carried_in == Money.zero()
        assert summary.available == Money(25000)
        assert not summary.overspent

    def test_rolls_into_next_period(self, budget, spending):
        summary = budget.get_category_summary(spending.groceries.id, FEB)
        assert summary.carried_in == Money(25000)
        assert summary.budgeted == Money.zero()
        assert summary.available == Money(25000)

    def test_overspending_carries_forward(self, budget, spending):
        jan = budget.get_category_summary(spending.dining.id, JAN)
        assert jan.available == Money(-7000)
        assert jan.overspent

        budget.assign_to_category(spending.dining.id, FEB, Money(5000))
        feb = budget.get_category_summary(spending.dining.id, FEB)
        assert feb.available == Money(-2000)

    def test_off_budget_spending_counts_as_activity(self, budget, transactions, spending):
        transactions.create(
            spending.brokerage.id, date(2025, 1, 12), Money(-500), category_id=spending.groceries.id
        )
        assert budget.get_category_summary(spending.groceries.id, JAN).activity == Money(-15500)

    def test_unknown_category(self, budget):
        with pytest.raises(CategoryNotFoundError):
            budget.get_category_summary(uuid4(), JAN)

    def test_overspent_listing(self, budget, spending):
        overspent = budget.get_overspent_categories(JAN)
        assert [s.category_id for s in overspent] == [spending.dining.id]


class TestRolloverCacheInvalidation:
    """Cached balances must always equal a from-scratch recomputation."""

    @pytest.fixture
    def groceries_txn(self, budget, transactions, seeded):
        budget.assign_to_category(seeded.groceries.id, JAN, Money(40000))
        txn = transactions.create(
            seeded.checking.id, date(2025, 1, 5), Money(-12000), category_id=seeded.groceries.id
        )
        assert budget.get_category_summary(seeded.groceries.id, MAR).available == Money(28000)
        return txn

    def _assert_matches_fresh(self, session, budget, category_id, period):
        cached = budget.get_category_summary(category_id, period)
        assert cached == _fresh_summary(session, category_id, period)
        return cached

    def test_new_transaction(self, session, budget, transactions, seeded, groceries_txn):
        transactions.create(
            seeded.checking.id, date(2025, 1, 20), Money(-5000), category_id=seeded.groceries.id
        )
        summary = self._assert_matches_fresh(session, budget, seeded.groceries.id, MAR)
        assert summary.available == Money(23000)

    def test_edited_amount(self, session, budget, transactions, seeded, groceries_txn):
        transactions.update(groceries_txn.id, amount=Money(-30000))
        summary = self._assert_matches_fresh(session, budget, seeded.groceries.id, MAR)
        assert summary.available == Money(10000)

    def test_moved_date(self, session, budget, transactions, seeded, groceries_txn):
        transactions.update(groceries_txn.id, date=date(2025, 2, 3))
        assert budget.get_category_summary(seeded.groceries.id, JAN).available == Money(40000)
        summary = self._assert_matches_fresh(session, budget, seeded.groceries.id, FEB)
        assert summary.activity == Money(-12000)

    def test_recategorized(self, session, budget, transactions, seeded, groceries_txn):
        transactions.update(groceries_txn.id, category_id=seeded.dining.id)
        summary = self._assert_matches_fresh(session, budget, seeded.groceries.id, MAR)
        assert summary.available == Money(40000)

    def test_split_changes(self, session, budget, transactions, seeded, groceries_txn):
        transactions.set_splits(
            groceries_txn.id,
            [Split(seeded.groceries.id, Money(-2000)), Split(seeded.dining.id, Money(-10000))],
        )
        summary = self._assert_matches_fresh(session, budget, seeded.groceries.id, MAR)
        assert summary.available == Money(38000)

    def test_deleted_transaction(self, session, budget, transactions, seeded, groceries_txn):
        transactions.delete(groceries_txn.id)
        summary = self._assert_matches_fresh(session, budget, seeded.groceries.id, MAR)
        assert summary.available == Money(40000)

    def test_earlier_allocation(self, session, budget, seeded, groceries_txn):
        budget.assign_to_category(seeded.groceries.id, DEC, Money(1000))
        summary = self._assert_matches_fresh(session, budget, seeded.groceries.id, MAR)
        assert summary.available == Money(29000)


class TestTargets:
    def test_set_get_and_suggest(self, budget, seeded):
        target = budget.set_target(seeded.rent.id, Money(120000), TargetCadence.yearly(), notes="lease")
        assert budget.get_target(seeded.rent.id) == target
        assert target.cadence.kind is CadenceKind.YEARLY
        assert budget.get_suggested_budget(seeded.rent.id, JAN) == Money(10000)

    def test_replace_keeps_identity(self, budget, seeded):
        first = budget.set_target(seeded.rent.id, Money(12000), TargetCadence.monthly())
        second = budget.set_target(seeded.rent.id, Money(5000), TargetCadence.custom(14))
        assert second.id == first.id
        assert budget.get_target(seeded.rent.id).cadence == TargetCadence.custom(14)

    def test_remove(self, budget, seeded):
        budget.set_target(seeded.rent.id, Money(12000), TargetCadence.monthly())
        assert budget.remove_target(seeded.rent.id) is True
        assert budget.remove_target(seeded.rent.id) is False
        assert budget.get_target(seeded.rent.id) is None
        assert budget.get_suggested_budget(seeded.rent.id, JAN) is None

    def test_invalid_target(self, budget, seeded):
        with pytest.raises(InvalidAmountError):
            budget.set_target(seeded.rent.id, Money.zero(), TargetCadence.monthly())
        assert budget.get_target(seeded.rent.id) is None

    def test_unknown_category(self, budget):
        with pytest.raises(CategoryNotFoundError):
            budget.set_target(uuid4(), Money(100), TargetCadence.monthly())

    def test_by_date_target_persists_date(self, budget, seeded):
        budget.set_target(seeded.rent.id, Money(60000), TargetCadence.by_date(date(2025, 6, 15)))
        assert budget.get_suggested_budget(seeded.rent.id, JAN) == Money(12000)


class TestIncomeComparison:
    def test_no_expectation(self, budget, seeded):
        assert budget.is_over_expected_income(JAN) is False
        assert budget.remaining_to_budget_from_income(JAN) is None

    def test_over_expected(self, budget, seeded):
        budget.income.set_expected_income(JAN, Money(500000))
        budget.assign_to_category(seeded.rent.id, JAN, Money(300000))
        budget.assign_to_category(seeded.groceries.id, JAN, Money(250000))
        budget.assign_to_category(seeded.groceries.id, FEB, Money(999999))

        assert budget.total_budgeted(JAN) == Money(550000)
        assert budget.is_over_expected_income(JAN) is True
        assert budget.remaining_to_budget_from_income(JAN) == Money(-50000)

    def test_under_expected(self, budget, seeded):
        budget.income.set_expected_income(JAN, Money(500000))
        budget.assign_to_category(seeded.rent.id, JAN, Money(450000))
        assert budget.is_over_expected_income(JAN) is False
        assert budget.remaining_to_budget_from_income(JAN) == Money(50000)


class TestOverview:
    def test_totals(self, budget, transactions, seeded):
        budget.income.set_expected_income(JAN, Money(400000))
        budget.assign_to_category(seeded.rent.id, JAN, Money(80000))
        budget.assign_to_category(seeded.groceries.id, JAN, Money(30000))
        transactions.create(
            seeded.checking.id, date(2025, 1, 6), Money(-10000), category_id=seeded.groceries.id
        )

        overview = budget.get_budget_overview(JAN)
        assert len(overview.categories) == 4
        assert overview.total_budgeted == Money(110000)
        assert overview.total_activity == Money(-10000)
        assert overview.total_available == Money(100000)
        assert overview.available_to_budget == Money(150000 - 10000 - 110000)
        assert overview.expected_income == Money(400000)
        assert overview.overspent_categories == ()


class TestConfiguredPeriods:
    def test_weekly_budget(self, session, clock, seeded):
        service = BudgetService(session, clock, BudgetConfig(period_type=PeriodKind.WEEKLY))
        try:
            week = service.periods.current_period()
            assert week == BudgetPeriod.weekly(2025, 3)
            service.assign_to_category(seeded.rent.id, week, Money(2000))
            assert service.get_category_summary(seeded.rent.id, week.next()).available == Money(2000)
            assert service.get_allocation(seeded.rent.id, JAN) == Money.zero()
        finally:
            service.close()

    def test_custom_period_type_rejected(self):
        with pytest.raises(ValueError):
            BudgetConfig(period_type=PeriodKind.CUSTOM)


class TestServiceLifetime:
    def test_context_manager_detaches_listeners(self, session, clock, seeded):
        with BudgetService(session, clock) as service:
            service.assign_to_category(seeded.rent.id, JAN, Money(1000))
            assert event.contains(session, "after_flush", service._after_flush)

        assert not event.contains(session, "after_flush", service._after_flush)
        assert not event.contains(session, "after_rollback", service._after_rollback)

    def test_listeners_detached_when_block_raises(self, session, clock):
        with pytest.raises(RuntimeError):
            with BudgetService(session, clock) as service:
                raise RuntimeError("fail")
        assert not event.contains(session, "after_flush", service._after_flush)

    def test_close_twice_is_harmless(self, session, clock):
        service = BudgetService(session, clock)
        service.close()
        service.close()
        assert not event.contains(session, "after_rollback", service._after_rollback)


class TestOverviewText:
    def test_rows_and_overspent_marker(self, budget, transactions, seeded, jan):
        budget.assign_to_category(seeded.rent.id, JAN, Money.parse("1200.00"))
        transactions.create(
            seeded.checking.id, jan(4), Money.parse("-15.00"), "Cafe", seeded.dining.id
        )

        text = budget.render_overview(JAN)
        rent_line = next(line for line in text.splitlines() if line.startswith("Rent"))
        assert rent_line.split() == ["Rent", "$1200.00", "$0.00", "$1200.00"]
        assert any(line.startswith("! Dining") for line in text.splitlines())
        assert text.splitlines()[-1] == "Available to Budget: $285.00"

    def test_configured_symbol(self, session, clock, seeded):
        with BudgetService(session, clock, BudgetConfig(currency_symbol="EUR ")) as service:
            assert service.format_amount(Money(-5)) == "-EUR 0.05"
