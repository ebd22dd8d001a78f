"""
Module: escrow_kernel.selectors.lease_selector
Responsibility: Read-only queries over leases, their evidence, their event
    log and their custody balance.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Balances are derived from CustodyTransfer rows on every call; there is
      no stored balance to drift.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select

from escrow_kernel.domain.custody import TransferDirection
from escrow_kernel.domain.dtos import ClaimInfo, InspectionInfo, LeaseEventInfo, LeaseInfo
from escrow_kernel.domain.lifecycle import LeaseState
from escrow_kernel.exceptions import LeaseNotFoundError
from escrow_kernel.models.custody import CustodyTransfer
from escrow_kernel.models.lease import Lease
from escrow_kernel.models.lease_event import LeaseEvent
from escrow_kernel.selectors.base import BaseSelector


class LeaseSelector(BaseSelector[Lease]):
    """Read-side access to lease state."""

    def _lease(self, lease_id: int) -> Lease:
        lease = self.session.execute(
            select(Lease).where(Lease.lease_id == lease_id)
        ).scalar_one_or_none()
        if lease is None:
            raise LeaseNotFoundError(lease_id)
        return lease

    def get_lease(self, lease_id: int) -> LeaseInfo | None:
        """Lease snapshot, or None if no such lease exists."""
        lease = self.session.execute(
            select(Lease).where(Lease.lease_id == lease_id)
        ).scalar_one_or_none()
        return lease.to_dto() if lease else None

    def get_state(self, lease_id: int) -> LeaseState:
        return self._lease(lease_id).lease_state

    def get_inspection(self, lease_id: int) -> InspectionInfo | None:
        inspection = self._lease(lease_id).inspection
        return inspection.to_dto() if inspection else None

    def get_claim(self, lease_id: int) -> ClaimInfo | None:
        claim = self._lease(lease_id).claim
        return claim.to_dto() if claim else None

    def get_claim_deadline(self, lease_id: int) -> datetime:
        """Deadline shared by raise_claim and finalize_after_window."""
        return self._lease(lease_id).claim_deadline

    def leases_for_party(self, party_id: UUID) -> list[LeaseInfo]:
        """Every lease where ``party_id`` is landlord, tenant or inspector."""
        leases = self.session.execute(
            select(Lease)
            .where(
                or_(
                    Lease.landlord_id == party_id,
                    Lease.tenant_id == party_id,
                    Lease.inspector_id == party_id,
                )
            )
            .order_by(Lease.lease_id)
        ).scalars().all()
        return [lease.to_dto() for lease in leases]

    def events_for(self, lease_id: int) -> list[LeaseEventInfo]:
        events = self.session.execute(
            select(LeaseEvent)
            .where(LeaseEvent.lease_id == lease_id)
            .order_by(LeaseEvent.seq)
        ).scalars().all()
        return [
            LeaseEventInfo(
                seq=e.seq,
                lease_id=e.lease_id,
                event_type=e.event_type,
                actor_id=e.actor_id,
                occurred_at=e.occurred_at,
                payload=dict(e.payload),
                hash=e.hash,
            )
            for e in events
        ]

    def escrow_balance(self, lease_id: int) -> Decimal:
        rows = self.session.execute(
            select(CustodyTransfer.direction, CustodyTransfer.amount)
            .where(CustodyTransfer.lease_id == lease_id)
        ).all()
        balance = Decimal("0")
        for direction, amount in rows:
            if direction == TransferDirection.DEPOSIT.value:
                balance += amount
            else:
                balance -= amount
        return balance
