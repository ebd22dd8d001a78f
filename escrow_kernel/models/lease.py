"""
Module: escrow_kernel.models.lease
Responsibility: ORM persistence for leases and the two evidence records that
    hang off them (move-out inspection, damage claim).
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ value types only.

Invariants enforced:
    - ``lease_id`` is unique and allocated by SequenceService (never reused).
    - ``deposit_amount`` > 0 (validated by LeaseRegistry before insert).
    - At most one inspection and one claim per lease (unique FK).
    - Party, term and identity columns are immutable after insert and leases
      are never deleted (ORM listeners in db/immutability.py).
    - ``version`` is an optimistic-lock counter; concurrent writers to the
      same lease row fail with StaleDataError.

Audit relevance:
    A lease row is a permanent audit record.  It is mutated in place through
    its lifecycle but every transition is also written to LeaseEvent.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from escrow_kernel.db.base import Base, UUIDString
from escrow_kernel.domain.authorization import LeaseParties
from escrow_kernel.domain.claim_window import claim_deadline
from escrow_kernel.domain.dtos import ClaimInfo, InspectionInfo, LeaseInfo
from escrow_kernel.domain.lifecycle import LeaseState

# Columns fixed at creation.  Checked by db/immutability.py.
LEASE_IMMUTABLE_FIELDS = frozenset({
    "lease_id",
    "landlord_id",
    "tenant_id",
    "inspector_id",
    "deposit_amount",
    "currency",
    "lease_end",
    "claim_window_seconds",
    "created_by_id",
    "created_at",
})


class Lease(Base):
    """
    One rental term's escrow record.

    Guarantees:
        - ``state`` holds a LeaseState value; transitions are applied only by
          LeaseService after consulting DEPOSIT_LIFECYCLE.
        - ``funded_amount`` is 0 until the tenant funds, then equals
          ``deposit_amount``.
    """

    __tablename__ = "escrow_leases"

    __table_args__ = (
        CheckConstraint("claim_window_seconds >= 0", name="ck_lease_window_non_negative"),
        Index("idx_lease_landlord", "landlord_id"),
        Index("idx_lease_tenant", "tenant_id"),
        Index("idx_lease_inspector", "inspector_id"),
        Index("idx_lease_state", "state"),
    )

    lease_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    landlord_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    inspector_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    deposit_amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    lease_end: Mapped[datetime] = mapped_column(nullable=False)
    claim_window_seconds: Mapped[int] = mapped_column(BigInteger, nullable=False)

    state: Mapped[str] = mapped_column(
        String(32), nullable=False, default=LeaseState.CREATED.value
    )
    funded_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    funded_at: Mapped[datetime | None] = mapped_column(nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    created_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    version: Mapped[int] = mapped_column(BigInteger, nullable=False)

    inspection: Mapped["InspectionRecord | None"] = relationship(
        "InspectionRecord",
        back_populates="lease",
        uselist=False,
        lazy="selectin",
    )
    claim: Mapped["ClaimRecord | None"] = relationship(
        "ClaimRecord",
        back_populates="lease",
        uselist=False,
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Lease {self.lease_id} {self.state}>"

    @property
    def lease_state(self) -> LeaseState:
        return LeaseState(self.state)

    @property
    def parties(self) -> LeaseParties:
        return LeaseParties(self.landlord_id, self.tenant_id, self.inspector_id)

    @property
    def claim_window(self) -> timedelta:
        return timedelta(seconds=self.claim_window_seconds)

    @property
    def claim_deadline(self) -> datetime:
        submitted_at = self.inspection.submitted_at if self.inspection else None
        return claim_deadline(self.lease_end, self.claim_window, submitted_at)

    @property
    def has_active_claim(self) -> bool:
        return self.claim is not None and self.claim.is_active

    @property
    def is_funded(self) -> bool:
        return self.funded_amount > 0

    def to_dto(self) -> LeaseInfo:
        return LeaseInfo(
            lease_id=self.lease_id,
            landlord_id=self.landlord_id,
            tenant_id=self.tenant_id,
            inspector_id=self.inspector_id,
            deposit_amount=self.deposit_amount,
            currency=self.currency,
            lease_end=self.lease_end,
            claim_window=self.claim_window,
            state=self.lease_state,
            funded_amount=self.funded_amount,
            funded_at=self.funded_at,
            closed_at=self.closed_at,
            inspection=self.inspection.to_dto() if self.inspection else None,
            claim=self.claim.to_dto() if self.claim else None,
        )


class InspectionRecord(Base):
    """
    Move-out inspection evidence.

    ``photo_cids`` is stored as a fresh list built from the caller's
    sequence; the record never aliases the caller's buffer.  It is written
    once per lease, as a whole.
    """

    __tablename__ = "escrow_inspections"

    lease_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("escrow_leases.lease_id"),
        nullable=False,
        unique=True,
    )
    photo_cids: Mapped[list] = mapped_column(JSON, nullable=False)
    lock_attestation_cid: Mapped[str] = mapped_column(String(256), nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(nullable=False)
    submitted_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    lease: Mapped[Lease] = relationship("Lease", back_populates="inspection")

    def __repr__(self) -> str:
        return f"<InspectionRecord lease={self.lease_id} photos={len(self.photo_cids)}>"

    def to_dto(self) -> InspectionInfo:
        return InspectionInfo(
            photo_cids=tuple(self.photo_cids),
            lock_attestation_cid=self.lock_attestation_cid,
            submitted_at=self.submitted_at,
            submitted_by=self.submitted_by,
        )


class ClaimRecord(Base):
    """
    Damage claim raised by the landlord.

    ``is_active`` is True from creation until the claim is resolved, and is
    cleared exactly once.  ``amount_requested`` is advisory: the resolver's
    split is authoritative.
    """

    __tablename__ = "escrow_claims"

    lease_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("escrow_leases.lease_id"),
        nullable=False,
        unique=True,
    )
    amount_requested: Mapped[Decimal] = mapped_column(nullable=False)
    evidence_cid: Mapped[str] = mapped_column(String(256), nullable=False)
    claimant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    raised_at: Mapped[datetime] = mapped_column(nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    tenant_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    landlord_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    resolved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    lease: Mapped[Lease] = relationship("Lease", back_populates="claim")

    def __repr__(self) -> str:
        return f"<ClaimRecord lease={self.lease_id} active={self.is_active}>"

    def to_dto(self) -> ClaimInfo:
        return ClaimInfo(
            amount_requested=self.amount_requested,
            evidence_cid=self.evidence_cid,
            claimant_id=self.claimant_id,
            raised_at=self.raised_at,
            is_active=self.is_active,
            tenant_amount=self.tenant_amount,
            landlord_amount=self.landlord_amount,
            resolved_by=self.resolved_by,
            resolved_at=self.resolved_at,
        )
