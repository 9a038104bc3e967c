"""
PeriodService -- resolves "which budget period" for the configured period type.

Responsibility:
    Maps dates, relative words ("last", "next") and month names onto
    BudgetPeriods of the user's configured kind, using an injected Clock for
    "today".

Architecture position:
    Kernel > Services -- stateless, no database access.

Failure modes:
    - InvalidFormatError / InvalidMonthError from ``parse`` on bad input.
    - ValueError when configured with the CUSTOM kind (no natural alignment).
"""

import re
from datetime import date

from envelope_kernel.domain.clock import Clock, SystemClock
from envelope_kernel.domain.period import BudgetPeriod, PeriodKind
from envelope_kernel.exceptions import InvalidFormatError

_MONTH_NAMES = (
    ("january", 1), ("jan", 1),
    ("february", 2), ("feb", 2),
    ("march", 3), ("mar", 3),
    ("april", 4), ("apr", 4),
    ("may", 5),
    ("june", 6), ("jun", 6),
    ("july", 7), ("jul", 7),
    ("august", 8), ("aug", 8),
    ("september", 9), ("sept", 9), ("sep", 9),
    ("october", 10), ("oct", 10),
    ("november", 11), ("nov", 11),
    ("december", 12), ("dec", 12),
)
_FULL_MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_MONTH_NAME_RE = re.compile(r"^([a-z]+)\s*(\d{4})?$")


class PeriodService:
    def __init__(
        self,
        period_type: PeriodKind = PeriodKind.MONTHLY,
        clock: Clock | None = None,
        biweekly_anchor: date | None = None,
    ):
        if period_type is PeriodKind.CUSTOM:
            raise ValueError("Budget period type cannot be custom")
        self._period_type = period_type
        self._clock = clock or SystemClock()
        self._anchor = biweekly_anchor

    @property
    def period_type(self) -> PeriodKind:
        return self._period_type

    def current_period(self) -> BudgetPeriod:
        return self.period_for_date(self._clock.today())

    def period_for_date(self, day: date) -> BudgetPeriod:
        return BudgetPeriod.for_date(self._period_type, day, anchor=self._anchor)

    def is_current(self, period: BudgetPeriod) -> bool:
        return period == self.current_period()

    def recent_periods(self, count: int) -> list[BudgetPeriod]:
        """The current period and the ``count - 1`` before it, oldest first."""
        periods: list[BudgetPeriod] = []
        current = self.current_period()
        for _ in range(count):
            periods.append(current)
            current = current.prev()
        periods.reverse()
        return periods

    def upcoming_periods(self, count: int) -> list[BudgetPeriod]:
        """The current period and the ``count - 1`` after it."""
        periods: list[BudgetPeriod] = []
        current = self.current_period()
        for _ in range(count):
            periods.append(current)
            current = current.next()
        return periods

    def parse(self, text: str) -> BudgetPeriod:
        """
        Parse user input into a period.

        Accepts ``current``/``now``/``this``, ``last``/``previous``/``prev``,
        ``next``, month names with an optional year (``Jan``, ``March 2025``)
        and every form ``BudgetPeriod.parse`` accepts. A month name without a
        year means its most recent occurrence.
        """
        lowered = text.strip().lower()
        if lowered in ("current", "now", "this"):
            return self.current_period()
        if lowered in ("last", "previous", "prev"):
            return self.current_period().prev()
        if lowered == "next":
            return self.current_period().next()

        by_name = self._parse_month_name(lowered)
        if by_name is not None:
            return by_name
        return BudgetPeriod.parse(text)

    def parse_or_current(self, text: str | None) -> BudgetPeriod:
        if text is None:
            return self.current_period()
        return self.parse(text)

    def _parse_month_name(self, lowered: str) -> BudgetPeriod | None:
        m = _MONTH_NAME_RE.match(lowered)
        if not m:
            return None
        word, year_text = m.group(1), m.group(2)
        for name, month in _MONTH_NAMES:
            if word != name:
                continue
            if year_text is not None:
                return BudgetPeriod.monthly(int(year_text), month)
            today = self._clock.today()
            year = today.year - 1 if month > today.month else today.year
            return BudgetPeriod.monthly(year, month)
        if year_text is not None:
            raise InvalidFormatError(lowered, "period")
        return None

    @staticmethod
    def format_friendly(period: BudgetPeriod) -> str:
        if period.kind is PeriodKind.MONTHLY:
            return f"{_FULL_MONTH_NAMES[period.number - 1]} {period.year}"
        if period.kind is PeriodKind.WEEKLY:
            return f"Week {period.number} of {period.year}"
        if period.kind is PeriodKind.BI_WEEKLY:
            start, end = period.start_date(), period.end_date()
            return f"{start:%b %d} - {end:%b %d, %Y}"
        return f"{period.start_date().isoformat()} to {period.end_date().isoformat()}"
