"""
Clock -- Deterministic time abstraction.

Responsibility:
    Provides an injectable clock interface so that the state machine never
    calls ``datetime.now()`` directly.  The claim-window and lease-end gates
    are evaluated against ``Clock.now()`` at call time.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).

Failure modes:
    - DeterministicClock.set_time raises ValueError on a naive datetime.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        All services that need current time must receive a Clock instance
        via constructor injection.

    Guarantees:
        - ``now()`` returns a timezone-aware UTC ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...


class SystemClock(Clock):
    """
    Production clock that returns actual system time.

    Non-goals:
        Not suitable for deterministic replay or testing.
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` or ``set_time()`` is called.
        - ``tick()`` advances by exactly 1 second and returns the new time.
    """

    def __init__(self, fixed_time: datetime | None = None):
        """
        Initialize with optional fixed time.

        Args:
            fixed_time: If provided, clock starts at this time.
                       If None, uses a default epoch time.
        """
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        if self._fixed_time.tzinfo is None:
            raise ValueError("DeterministicClock requires an aware datetime")
        self._offset = timedelta(0)

    def now(self) -> datetime:
        return (self._fixed_time + self._offset).astimezone(timezone.utc)

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        if time.tzinfo is None:
            raise ValueError("DeterministicClock requires an aware datetime")
        self._fixed_time = time
        self._offset = timedelta(0)

    def advance(self, seconds: int = 0, *, delta: timedelta | None = None) -> datetime:
        """Advance the clock by ``seconds`` (or by ``delta``) and return the new time."""
        self._offset += delta if delta is not None else timedelta(seconds=seconds)
        return self.now()

    def tick(self) -> datetime:
        """Advance by 1 second and return new time."""
        return self.advance(1)
