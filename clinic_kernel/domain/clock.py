"""
Injectable time for the queue, ingestion and audit code.

Nothing outside this module calls ``datetime.now()`` or ``date.today()``;
services receive a Clock through their constructor.  ``SystemClock`` is
the only place real time enters the pipeline.

Business days:
    The portal reports and the enqueue tool work in the clinic's local
    calendar (Asia/Jakarta by default), so ``today(tz_name)`` converts
    before taking the date.  An unknown zone name raises
    ``ZoneInfoNotFoundError``.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware."""

    def today(self, tz_name: str = "UTC") -> date:
        """Calendar date of ``now()`` in the named timezone."""
        return self.now().astimezone(ZoneInfo(tz_name)).date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen time for tests.

    ``now()`` is stable until moved with ``advance``, ``tick`` or
    ``set_time``; queue ordering tests advance it between enqueues.
    """

    DEFAULT_START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or self.DEFAULT_START

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: float = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Advance one second and return the new time."""
        self.advance(1)
        return self._current
