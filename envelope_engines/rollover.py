"""
Rollover -- carry-forward of category balances across budget periods.

Responsibility:
    Computes a category's available balance for a period as

        available(p) = available(prev(p)) + budgeted(p) + activity(p)

    where activity is negative for spending. Negative balances carry forward
    unchanged. The recursion ends before the category's earliest data.

Architecture position:
    Engines -- pure calculation, zero I/O. The caller supplies the per-period
    figures and the earliest relevant date as callables; the engine never
    touches the database.

Invariants enforced:
    - Conservation: ``available(p) - available(prev(p)) == budgeted(p) +
      activity(p)`` for every period, whatever the sign.
    - Cached results equal a from-scratch recomputation: the index is only
      ever filled by this calculator and entries at or after a mutated date
      are dropped by ``invalidate``.

Failure modes:
    - None of its own; exceptions raised by the supplied callables propagate.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from envelope_engines.tracer import traced_engine
from envelope_kernel.domain.period import BudgetPeriod
from envelope_kernel.domain.values import Money
from envelope_kernel.logging_config import get_logger

logger = get_logger("engines.rollover")


@dataclass(frozen=True, slots=True)
class PeriodFigures:
    """Raw inputs for one category in one period."""

    budgeted: Money
    activity: Money


@dataclass(frozen=True, slots=True)
class RolloverResult:
    carried_in: Money
    budgeted: Money
    activity: Money
    available: Money


class RolloverIndex:
    """
    Last known available balance per ``(category_id, period)``.

    Entries are keyed by the exact period value, so different period kinds
    never collide.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[UUID, BudgetPeriod], Money] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, category_id: UUID, period: BudgetPeriod) -> Money | None:
        return self._entries.get((category_id, period))

    def put(self, category_id: UUID, period: BudgetPeriod, available: Money) -> None:
        self._entries[(category_id, period)] = available

    def invalidate(self, from_date: date, category_id: UUID | None = None) -> int:
        """
        Drop every entry whose period ends on or after ``from_date``, for one
        category or for all. Returns the number of dropped entries.
        """
        stale = [
            key
            for key in self._entries
            if key[1].end_date() >= from_date
            and (category_id is None or key[0] == category_id)
        ]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug(
                "rollover_index_invalidated",
                extra={"from_date": from_date, "dropped": len(stale)},
            )
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()


class RolloverCalculator:
    """
    Walks back from the requested period to the nearest cached balance (or
    to before the category's earliest data), then folds forward, caching
    every intermediate balance.
    """

    def __init__(
        self,
        index: RolloverIndex,
        figures: Callable[[UUID, BudgetPeriod], PeriodFigures],
        earliest_date: Callable[[UUID], date | None],
    ):
        self._index = index
        self._figures = figures
        self._earliest_date = earliest_date

    def available(self, category_id: UUID, period: BudgetPeriod) -> Money:
        cached = self._index.get(category_id, period)
        if cached is not None:
            return cached

        earliest = self._earliest_date(category_id)
        pending: list[BudgetPeriod] = []
        carried = Money.zero()
        current = period
        while earliest is not None and current.end_date() >= earliest:
            hit = self._index.get(category_id, current)
            if hit is not None:
                carried = hit
                break
            pending.append(current)
            current = current.prev()

        for p in reversed(pending):
            f = self._figures(category_id, p)
            carried = carried + f.budgeted + f.activity
            self._index.put(category_id, p, carried)
        return carried

    @traced_engine("rollover", "1.0", fingerprint_fields=("category_id", "period"))
    def summarize(self, *, category_id: UUID, period: BudgetPeriod) -> RolloverResult:
        carried_in = self.available(category_id, period.prev())
        f = self._figures(category_id, period)
        available = carried_in + f.budgeted + f.activity
        self._index.put(category_id, period, available)
        return RolloverResult(
            carried_in=carried_in,
            budgeted=f.budgeted,
            activity=f.activity,
            available=available,
        )
