"""Tests for BudgetTarget projection onto budget periods."""

import dataclasses
from datetime import date
from uuid import uuid4

import pytest

from envelope_kernel.domain.period import BudgetPeriod
from envelope_kernel.domain.target import BudgetTarget, TargetCadence, months_between
from envelope_kernel.domain.values import Money
from envelope_kernel.exceptions import InvalidAmountError, InvalidCustomIntervalError

JANUARY = BudgetPeriod.monthly(2025, 1)
WEEK = BudgetPeriod.weekly(2025, 3)
FORTNIGHT = BudgetPeriod.bi_weekly(date(2025, 1, 6))


def _target(amount: str, cadence: TargetCadence) -> BudgetTarget:
    return BudgetTarget(category_id=uuid4(), amount=Money.parse(amount), cadence=cadence)


class TestWeekly:
    def test_same_kind(self):
        assert _target("10.00", TargetCadence.weekly()).calculate_for_period(WEEK) == Money(1000)

    def test_bi_weekly_doubles(self):
        assert _target("10.00", TargetCadence.weekly()).calculate_for_period(FORTNIGHT) == Money(2000)

    def test_month_scales_by_days(self):
        # 1000 * 31 / 7 = 4428.57
        assert _target("10.00", TargetCadence.weekly()).calculate_for_period(JANUARY) == Money(4429)


class TestMonthly:
    def test_same_kind(self):
        assert _target("120.00", TargetCadence.monthly()).calculate_for_period(JANUARY) == Money(12000)

    def test_weekly_uses_average_weeks(self):
        # 10000 / 4.33 = 2309.47
        assert _target("100.00", TargetCadence.monthly()).calculate_for_period(WEEK) == Money(2309)

    def test_bi_weekly_halves_truncating(self):
        assert _target("100.01", TargetCadence.monthly()).calculate_for_period(FORTNIGHT) == Money(5000)

    def test_custom_scales_by_thirty_days(self):
        period = BudgetPeriod.custom(date(2025, 1, 1), date(2025, 1, 15))
        assert _target("100.00", TargetCadence.monthly()).calculate_for_period(period) == Money(5000)


class TestYearly:
    def test_month_is_twelfth(self):
        assert _target("1200.00", TargetCadence.yearly()).calculate_for_period(JANUARY) == Money(10000)

    def test_month_truncates(self):
        assert _target("1000.00", TargetCadence.yearly()).calculate_for_period(JANUARY) == Money(8333)

    def test_weekly_and_bi_weekly(self):
        target = _target("1000.00", TargetCadence.yearly())
        assert target.calculate_for_period(WEEK) == Money(1923)
        assert target.calculate_for_period(FORTNIGHT) == Money(3846)

    def test_custom_scales_by_days(self):
        period = BudgetPeriod.custom(date(2025, 1, 1), date(2025, 3, 14))
        assert period.days() == 73
        assert _target("1000.00", TargetCadence.yearly()).calculate_for_period(period) == Money(20000)


class TestCustomCadence:
    def test_scales_by_interval(self):
        assert _target("50.00", TargetCadence.custom(10)).calculate_for_period(JANUARY) == Money(15500)

    def test_rounds_half_away_from_zero(self):
        one_day = BudgetPeriod.custom(date(2025, 1, 1), date(2025, 1, 1))
        assert _target("0.01", TargetCadence.custom(2)).calculate_for_period(one_day) == Money(1)


class TestByDate:
    def test_spreads_over_remaining_months(self):
        target = _target("600.00", TargetCadence.by_date(date(2025, 6, 15)))
        assert target.calculate_for_period(JANUARY) == Money(12000)

    def test_rounds_up(self):
        target = _target("100.00", TargetCadence.by_date(date(2025, 4, 10)))
        assert target.calculate_for_period(JANUARY) == Money(3334)

    def test_due_within_period_is_full_amount(self):
        target = _target("100.00", TargetCadence.by_date(date(2025, 1, 20)))
        assert target.calculate_for_period(JANUARY) == Money(10000)

    def test_past_date_is_zero(self):
        target = _target("100.00", TargetCadence.by_date(date(2024, 12, 31)))
        assert target.calculate_for_period(JANUARY) == Money.zero()

    def test_months_between(self):
        assert months_between(date(2025, 1, 31), date(2025, 2, 1)) == 1
        assert months_between(date(2024, 11, 1), date(2025, 2, 1)) == 3


class TestTargetRecord:
    def test_inactive_projects_to_zero(self):
        target = dataclasses.replace(_target("120.00", TargetCadence.monthly()), active=False)
        assert target.calculate_for_period(JANUARY) == Money.zero()

    @pytest.mark.parametrize("amount", ["0", "-5.00"])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(InvalidAmountError):
            _target(amount, TargetCadence.monthly()).validate()

    def test_custom_interval_must_be_a_day_or_more(self):
        with pytest.raises(InvalidCustomIntervalError):
            _target("10.00", TargetCadence.custom(0)).validate()

    def test_descriptions(self):
        assert TargetCadence.weekly().description() == "Weekly"
        assert TargetCadence.yearly().description() == "Yearly"
        assert TargetCadence.custom(10).description() == "Every 10 days"
        assert str(TargetCadence.by_date(date(2025, 6, 15))) == "By 2025-06-15"
