"""
Claim-window arithmetic (``escrow_kernel.domain.claim_window``).

Responsibility
--------------
Compute the single deadline that separates "a claim may still be raised"
from "the deposit may be auto-returned".  Both gates call
``claim_deadline`` so they can never disagree.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.

Invariants enforced
-------------------
* For any deadline D and time t exactly one of
  ``is_claim_window_open(t, D)`` and ``has_claim_window_elapsed(t, D)``
  is true.
"""

from datetime import datetime, timedelta


def claim_deadline(
    lease_end: datetime,
    window: timedelta,
    inspection_submitted_at: datetime | None = None,
) -> datetime:
    """
    Deadline for raising a claim.

    The window runs from the inspection submission when one exists, and
    from lease end otherwise, so a landlord may claim without an
    inspection up to ``lease_end + window``.
    """
    if window < timedelta(0):
        raise ValueError(f"Claim window must not be negative: {window}")
    anchor = inspection_submitted_at if inspection_submitted_at is not None else lease_end
    return anchor + window


def is_claim_window_open(now: datetime, deadline: datetime) -> bool:
    """Claims are accepted up to and including the deadline."""
    return now <= deadline


def has_claim_window_elapsed(now: datetime, deadline: datetime) -> bool:
    """Auto-finalization is allowed strictly after the deadline."""
    return now > deadline


def window_from_seconds(seconds: int) -> timedelta:
    if seconds < 0:
        raise ValueError(f"Claim window must not be negative: {seconds}s")
    return timedelta(seconds=seconds)


def window_to_seconds(window: timedelta | int) -> int:
    """Normalize a window given as timedelta or whole seconds."""
    if isinstance(window, timedelta):
        if window % timedelta(seconds=1):
            raise ValueError(f"Claim window must be whole seconds: {window}")
        seconds = int(window.total_seconds())
    elif isinstance(window, int) and not isinstance(window, bool):
        seconds = window
    else:
        raise TypeError(f"Unsupported claim window type {type(window).__name__}")
    if seconds < 0:
        raise ValueError(f"Claim window must not be negative: {seconds}s")
    return seconds
