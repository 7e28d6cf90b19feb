"""
Clock -- injectable time source.

Responsibility:
    Lets services stamp ``updated_at`` and timeline ``date`` values without
    calling ``datetime.now()`` directly, so tests can pin and advance time.

Architecture position:
    Kernel > Domain -- pure, zero I/O (except SystemClock, the one sanctioned
    time boundary).

Audit relevance:
    Timeline ordering is by (date, seq).  A DeterministicClock that never
    advances produces equal dates, which is exactly the tie case the
    per-project ``seq`` exists to break.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        Services that stamp time receive a Clock via constructor injection.

    Guarantees:
        ``now()`` returns a timezone-aware UTC ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...


class SystemClock(Clock):
    """Production clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value until ``advance()``, ``tick()``
          or ``set_time()`` is called.
        - ``tick()`` advances by exactly 1 second and returns the new time.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._advance_seconds = 0

    def now(self) -> datetime:
        return self._fixed_time + timedelta(seconds=self._advance_seconds)

    def set_time(self, time: datetime) -> None:
        self._fixed_time = time
        self._advance_seconds = 0

    def advance(self, seconds: int = 1) -> None:
        self._advance_seconds += seconds

    def tick(self) -> datetime:
        self.advance(1)
        return self.now()
