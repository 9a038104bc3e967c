"""
BudgetPeriod -- Calendar window a budget is planned for.

Responsibility:
    A tagged value type covering the four period shapes a budget can use:
    calendar month, ISO week, 14-day window and an arbitrary inclusive date
    range. Provides boundaries, membership, adjacency and the text form used
    by every caller.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - ``start_date() <= end_date()`` for every constructed period.
    - ``next()`` and ``prev()`` are exact inverses and produce the adjacent
      period of the same kind, without gap or overlap.
    - Ordering between any two periods (any kinds) is by ``start_date()``.

Failure modes:
    - InvalidFormatError on unparseable text, a year outside 1..9999 (also
      when stepping past either end) or an ISO week outside its year.
    - InvalidMonthError on a month outside 1..12.
    - InvalidCustomIntervalError on a custom range ending before it starts.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from envelope_kernel.exceptions import (
    InvalidCustomIntervalError,
    InvalidFormatError,
    InvalidMonthError,
)

_WEEKLY_RE = re.compile(r"^(\d{4})-W(\d{1,2})$")
_CUSTOM_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})\.\.(\d{4}-\d{2}-\d{2})$")
_MONTHLY_RE = re.compile(r"^(\d{4})-(\d{1,2})$")

_BI_WEEKLY_DAYS = 14
MIN_YEAR = 1
MAX_YEAR = 9999


class PeriodKind(str, Enum):
    """Discriminator for BudgetPeriod."""

    MONTHLY = "monthly"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi_weekly"
    CUSTOM = "custom"


def _require_year(year: int, text: str) -> None:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidFormatError(text, "period", field="year")


def _shift(day: date, days: int) -> date:
    try:
        return day + timedelta(days=days)
    except OverflowError:
        raise InvalidFormatError(day.isoformat(), "period", field="year") from None


def iso_weeks_in_year(year: int) -> int:
    """Number of ISO weeks (52 or 53) in ``year``."""
    # Dec 28 always falls in the last ISO week of its year
    return date(year, 12, 28).isocalendar().week


@dataclass(frozen=True, slots=True)
class BudgetPeriod:
    """
    One budget period.

    Only the fields of the active ``kind`` are set:

    ========== ==========================
    kind       fields
    ========== ==========================
    MONTHLY    ``year``, ``number`` (month)
    WEEKLY     ``year``, ``number`` (ISO week)
    BI_WEEKLY  ``start``
    CUSTOM     ``start``, ``end``
    ========== ==========================

    Use the ``monthly``/``weekly``/``bi_weekly``/``custom`` factories rather
    than the constructor.
    """

    kind: PeriodKind
    year: int | None = None
    number: int | None = None
    start: date | None = None
    end: date | None = None

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def monthly(cls, year: int, month: int) -> BudgetPeriod:
        _require_year(year, f"{year:04d}-{month:02d}")
        if not 1 <= month <= 12:
            raise InvalidMonthError(month)
        return cls(PeriodKind.MONTHLY, year=year, number=month)

    @classmethod
    def weekly(cls, year: int, week: int) -> BudgetPeriod:
        _require_year(year, f"{year:04d}-W{week:02d}")
        if not 1 <= week <= iso_weeks_in_year(year):
            raise InvalidFormatError(f"{year:04d}-W{week:02d}", "period", field="week")
        if year == MAX_YEAR:
            # the last ISO week of 9999 ends after date.max
            _shift(date.fromisocalendar(year, week, 1), 6)
        return cls(PeriodKind.WEEKLY, year=year, number=week)

    @classmethod
    def bi_weekly(cls, start: date) -> BudgetPeriod:
        _shift(start, _BI_WEEKLY_DAYS - 1)
        return cls(PeriodKind.BI_WEEKLY, start=start)

    @classmethod
    def custom(cls, start: date, end: date) -> BudgetPeriod:
        if end < start:
            raise InvalidCustomIntervalError(
                f"{start.isoformat()}..{end.isoformat()}",
                "end date is before start date",
                field="period",
            )
        return cls(PeriodKind.CUSTOM, start=start, end=end)

    @classmethod
    def for_date(
        cls,
        kind: PeriodKind,
        day: date,
        anchor: date | None = None,
    ) -> BudgetPeriod:
        """
        The period of ``kind`` that contains ``day``.

        Bi-weekly windows are aligned to ``anchor``; without one, to the first
        Monday of ``day``'s year. Custom periods have no natural alignment and
        are rejected.
        """
        if kind is PeriodKind.MONTHLY:
            return cls.monthly(day.year, day.month)
        if kind is PeriodKind.WEEKLY:
            iso = day.isocalendar()
            return cls.weekly(iso.year, iso.week)
        if kind is PeriodKind.BI_WEEKLY:
            if anchor is None:
                anchor = first_monday(day.year)
            offset = (day - anchor).days // _BI_WEEKLY_DAYS
            return cls.bi_weekly(anchor + timedelta(days=offset * _BI_WEEKLY_DAYS))
        raise ValueError(f"No natural {kind.value} period for a date")

    # ------------------------------------------------------------------
    # Boundaries
    # ------------------------------------------------------------------

    def start_date(self) -> date:
        if self.kind is PeriodKind.MONTHLY:
            return date(self.year, self.number, 1)
        if self.kind is PeriodKind.WEEKLY:
            return date.fromisocalendar(self.year, self.number, 1)
        if self.kind is PeriodKind.BI_WEEKLY:
            return self.start
        if self.kind is PeriodKind.CUSTOM:
            return self.start
        raise AssertionError(f"unhandled period kind {self.kind}")

    def end_date(self) -> date:
        if self.kind is PeriodKind.MONTHLY:
            last_day = calendar.monthrange(self.year, self.number)[1]
            return date(self.year, self.number, last_day)
        if self.kind is PeriodKind.WEEKLY:
            return date.fromisocalendar(self.year, self.number, 7)
        if self.kind is PeriodKind.BI_WEEKLY:
            return self.start + timedelta(days=_BI_WEEKLY_DAYS - 1)
        if self.kind is PeriodKind.CUSTOM:
            return self.end
        raise AssertionError(f"unhandled period kind {self.kind}")

    def days(self) -> int:
        """Inclusive number of days in the period."""
        return (self.end_date() - self.start_date()).days + 1

    def contains(self, day: date) -> bool:
        return self.start_date() <= day <= self.end_date()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next(self) -> BudgetPeriod:
        if self.kind is PeriodKind.MONTHLY:
            if self.number == 12:
                return BudgetPeriod.monthly(self.year + 1, 1)
            return BudgetPeriod.monthly(self.year, self.number + 1)
        if self.kind is PeriodKind.WEEKLY:
            if self.number >= iso_weeks_in_year(self.year):
                return BudgetPeriod.weekly(self.year + 1, 1)
            return BudgetPeriod.weekly(self.year, self.number + 1)
        if self.kind is PeriodKind.BI_WEEKLY:
            return BudgetPeriod.bi_weekly(_shift(self.start, _BI_WEEKLY_DAYS))
        if self.kind is PeriodKind.CUSTOM:
            length = self.end - self.start
            new_start = _shift(self.end, 1)
            return BudgetPeriod.custom(new_start, _shift(new_start, length.days))
        raise AssertionError(f"unhandled period kind {self.kind}")

    def prev(self) -> BudgetPeriod:
        if self.kind is PeriodKind.MONTHLY:
            if self.number == 1:
                return BudgetPeriod.monthly(self.year - 1, 12)
            return BudgetPeriod.monthly(self.year, self.number - 1)
        if self.kind is PeriodKind.WEEKLY:
            if self.number == 1:
                _require_year(self.year - 1, f"{self.year - 1:04d}-W52")
                return BudgetPeriod.weekly(self.year - 1, iso_weeks_in_year(self.year - 1))
            return BudgetPeriod.weekly(self.year, self.number - 1)
        if self.kind is PeriodKind.BI_WEEKLY:
            return BudgetPeriod.bi_weekly(_shift(self.start, -_BI_WEEKLY_DAYS))
        if self.kind is PeriodKind.CUSTOM:
            length = self.end - self.start
            new_end = _shift(self.start, -1)
            return BudgetPeriod.custom(_shift(new_end, -length.days), new_end)
        raise AssertionError(f"unhandled period kind {self.kind}")

    # ------------------------------------------------------------------
    # Text form
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, text: str) -> BudgetPeriod:
        """
        Parse ``YYYY-Www`` (weekly), ``YYYY-MM-DD..YYYY-MM-DD`` (custom) or
        ``YYYY-MM`` (monthly), tried in that order.
        """
        s = text.strip() if isinstance(text, str) else ""

        m = _WEEKLY_RE.match(s)
        if m:
            return cls.weekly(int(m.group(1)), int(m.group(2)))

        m = _CUSTOM_RE.match(s)
        if m:
            try:
                start = date.fromisoformat(m.group(1))
                end = date.fromisoformat(m.group(2))
            except ValueError:
                raise InvalidFormatError(text, "period") from None
            return cls.custom(start, end)

        m = _MONTHLY_RE.match(s)
        if m:
            return cls.monthly(int(m.group(1)), int(m.group(2)))

        raise InvalidFormatError(str(text), "period")

    def format(self) -> str:
        if self.kind is PeriodKind.MONTHLY:
            return f"{self.year:04d}-{self.number:02d}"
        if self.kind is PeriodKind.WEEKLY:
            return f"{self.year:04d}-W{self.number:02d}"
        if self.kind is PeriodKind.BI_WEEKLY:
            return f"{self.start.isoformat()} - {self.end_date().isoformat()}"
        if self.kind is PeriodKind.CUSTOM:
            return f"{self.start.isoformat()}..{self.end.isoformat()}"
        raise AssertionError(f"unhandled period kind {self.kind}")

    def __str__(self) -> str:
        return self.format()

    # ------------------------------------------------------------------
    # Ordering by start date (equality stays structural)
    # ------------------------------------------------------------------

    def __lt__(self, other: BudgetPeriod) -> bool:
        if not isinstance(other, BudgetPeriod):
            return NotImplemented
        return self.start_date() < other.start_date()

    def __le__(self, other: BudgetPeriod) -> bool:
        if not isinstance(other, BudgetPeriod):
            return NotImplemented
        return self.start_date() <= other.start_date()

    def __gt__(self, other: BudgetPeriod) -> bool:
        if not isinstance(other, BudgetPeriod):
            return NotImplemented
        return self.start_date() > other.start_date()

    def __ge__(self, other: BudgetPeriod) -> bool:
        if not isinstance(other, BudgetPeriod):
            return NotImplemented
        return self.start_date() >= other.start_date()


def first_monday(year: int) -> date:
    """First Monday on or after January 1st of ``year``."""
    jan_1 = date(year, 1, 1)
    return jan_1 + timedelta(days=(7 - jan_1.weekday()) % 7)
