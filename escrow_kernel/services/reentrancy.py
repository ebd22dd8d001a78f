"""
ReentrancyGuard -- non-blocking mutual exclusion for fund-moving operations.

Responsibility:
    Rejects any attempt to enter a guarded lease operation while another
    guarded operation is still in flight, including a call made from inside
    a transfer rail's callback.  A re-entrant caller is refused at once; it
    never waits.

Invariants enforced:
    - At most one of fund_deposit / resolve_claim / finalize_after_window /
      tenant_release_to_landlord executes at a time per guard.
    - The guard is released on every exit path, normal or exceptional.

Failure modes:
    - ReentrancyError: the guard is already held.
"""

import threading

from escrow_kernel.exceptions import ReentrancyError
from escrow_kernel.logging_config import get_logger

logger = get_logger("services.reentrancy")


class ReentrancyGuard:
    """
    Process-local guard around value-moving operations.

    Usage:
        with guard.guarded("resolve_claim"):
            ...
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._operation: str | None = None

    @property
    def is_held(self) -> bool:
        return self._lock.locked()

    @property
    def current_operation(self) -> str | None:
        return self._operation

    def acquire(self, operation: str) -> None:
        if not self._lock.acquire(blocking=False):
            logger.warning(
                "reentrant_call_rejected",
                extra={"operation": operation, "in_flight": self._operation},
            )
            raise ReentrancyError(operation)
        self._operation = operation

    def release(self) -> None:
        self._operation = None
        self._lock.release()

    def guarded(self, operation: str) -> "_GuardedSection":
        return _GuardedSection(self, operation)

    def __enter__(self) -> "ReentrancyGuard":
        self.acquire("guarded_operation")
        return self

    def __exit__(self, *exc) -> None:
        self.release()


class _GuardedSection:
    def __init__(self, guard: ReentrancyGuard, operation: str):
        self._guard = guard
        self._operation = operation

    def __enter__(self) -> ReentrancyGuard:
        self._guard.acquire(self._operation)
        return self._guard

    def __exit__(self, *exc) -> None:
        self._guard.release()


# Shared by every LeaseService that is not given its own guard.
PROCESS_GUARD = ReentrancyGuard()
