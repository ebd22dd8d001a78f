"""
Value-transfer rail interface (``escrow_kernel.domain.custody``).

Responsibility
--------------
The kernel's only view of the external system that actually moves value.
A rail reports success or failure of every movement explicitly; the
kernel checks that flag after every call and never assumes success.

Contract
--------
* ``receive`` is called once when a tenant funds a deposit, inside the same
  unit of work as the state transition.
* ``transfer`` is called for each non-zero payout leg, after the lease
  state has already been moved to its post-transition value.
* ``reverse`` takes back a payout the rail already confirmed.  It is called
  when a later leg of the same operation fails, so a rolled-back operation
  leaves no value moved on the rail either.
* A rail must not raise for an ordinary refusal; it returns ``False``.
  Exceptions from a rail propagate and abort the operation like a refusal.

Architecture position
---------------------
**Kernel domain layer** -- abstract interface only.  Implementations live
in ``escrow_kernel.services.custody_ledger`` (database-backed) or are
supplied by the host environment.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from uuid import UUID


class TransferDirection(str, Enum):
    DEPOSIT = "deposit"
    PAYOUT = "payout"
    REVERSAL = "reversal"


class TransferRail(ABC):
    """Abstract value-transfer primitive with explicit success signalling."""

    @abstractmethod
    def receive(self, sender_id: UUID, amount: Decimal, *, lease_id: int) -> bool:
        """Take ``amount`` from ``sender_id`` into escrow for ``lease_id``."""
        ...

    @abstractmethod
    def transfer(self, recipient_id: UUID, amount: Decimal, *, lease_id: int) -> bool:
        """Pay ``amount`` out of escrow for ``lease_id`` to ``recipient_id``."""
        ...

    @abstractmethod
    def reverse(self, recipient_id: UUID, amount: Decimal, *, lease_id: int) -> bool:
        """Take back a confirmed payout of ``amount`` from ``recipient_id``."""
        ...
