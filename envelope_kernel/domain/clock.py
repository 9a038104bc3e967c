"""
Clock -- Injectable source of the current date.

Responsibility:
    Lets services that depend on "today" (current budget period, reconciliation
    timestamps) receive time by constructor injection instead of calling
    ``date.today()`` themselves.

Architecture position:
    Kernel > Domain -- pure functional core. ``SystemClock`` is the one
    sanctioned I/O boundary for time.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``today()`` is the date of ``now()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Production clock returning the local system time."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value on repeated calls until ``advance()`` or
    ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | date | None = None):
        if fixed_time is None:
            fixed_time = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        self._fixed_time = _as_datetime(fixed_time)

    def now(self) -> datetime:
        return self._fixed_time

    def set_time(self, time: datetime | date) -> None:
        self._fixed_time = _as_datetime(time)

    def advance(self, *, days: int = 0, seconds: int = 0) -> None:
        self._fixed_time += timedelta(days=days, seconds=seconds)


def _as_datetime(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime(value.year, value.month, value.day, 12, 0, 0, tzinfo=timezone.utc)
