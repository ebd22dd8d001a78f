"""
Data Transfer Objects (``escrow_kernel.domain.dtos``).

Frozen snapshots returned by services and selectors.  Callers never hold
ORM entities, so nothing they do can mutate persisted lease state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from escrow_kernel.domain.authorization import LeaseParties
from escrow_kernel.domain.claim_window import claim_deadline
from escrow_kernel.domain.lifecycle import LeaseState


@dataclass(frozen=True)
class InspectionInfo:
    """Move-out inspection evidence.  ``photo_cids`` is a private copy."""
    photo_cids: tuple[str, ...]
    lock_attestation_cid: str
    submitted_at: datetime
    submitted_by: UUID


@dataclass(frozen=True)
class ClaimInfo:
    """Damage claim and, once resolved, its outcome."""
    amount_requested: Decimal
    evidence_cid: str
    claimant_id: UUID
    raised_at: datetime
    is_active: bool
    tenant_amount: Decimal | None = None
    landlord_amount: Decimal | None = None
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None


@dataclass(frozen=True)
class LeaseInfo:
    """Snapshot of one lease."""
    lease_id: int
    landlord_id: UUID
    tenant_id: UUID
    inspector_id: UUID | None
    deposit_amount: Decimal
    currency: str
    lease_end: datetime
    claim_window: timedelta
    state: LeaseState
    funded_amount: Decimal
    funded_at: datetime | None = None
    closed_at: datetime | None = None
    inspection: InspectionInfo | None = None
    claim: ClaimInfo | None = None

    @property
    def parties(self) -> LeaseParties:
        return LeaseParties(self.landlord_id, self.tenant_id, self.inspector_id)

    @property
    def claim_deadline(self) -> datetime:
        submitted_at = self.inspection.submitted_at if self.inspection else None
        return claim_deadline(self.lease_end, self.claim_window, submitted_at)

    @property
    def has_active_claim(self) -> bool:
        return self.claim is not None and self.claim.is_active


@dataclass(frozen=True)
class LeaseEventInfo:
    """One entry of a lease's append-only event log."""
    seq: int
    lease_id: int
    event_type: str
    actor_id: UUID
    occurred_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)
    hash: str = ""
