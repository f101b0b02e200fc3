"""
Clock -- injectable time source.

Services never call ``datetime.now()`` or ``date.today()``.  They receive a
Clock, which lets tests pin time and makes the attendance future-date rule
reproducible: "today" is the UTC date of ``now()``, whatever the server's
local zone.
"""

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, timedelta


class Clock(ABC):
    """``now()`` is always timezone-aware UTC."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Clock that stands still until advanced.

    Services stamp ``created_at`` from the clock, so tests that need a
    strict order between two records (FIFO ties on the same payment date)
    call ``advance()`` between them.
    """

    def __init__(self, fixed_time: datetime):
        if fixed_time.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware datetime")
        self._now = fixed_time.astimezone(UTC)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: int = 1) -> datetime:
        self._now += timedelta(seconds=seconds)
        return self._now
