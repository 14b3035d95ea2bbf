"""
Injectable time source.

Ledger, selector and service code read time only through a ``Clock``, so
every ``last_updated`` and every transaction ``timestamp`` (and therefore
every transaction id) comes from the clock the caller handed in.
``SystemClock`` is the only place the wall clock is read.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware current time."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.

    Returns the same instant until moved with ``advance()``, ``tick()`` or
    ``set_time()``.
    """

    def __init__(self, start: datetime | None = None):
        self._base = start or DEFAULT_TEST_TIME
        self._offset = timedelta()

    def now(self) -> datetime:
        return self._base + self._offset

    def set_time(self, time: datetime) -> None:
        self._base = time
        self._offset = timedelta()

    def advance(self, seconds: float = 1) -> None:
        self._offset += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Move one second forward and return the new time."""
        self.advance(1)
        return self.now()
