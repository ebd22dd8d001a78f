"""
Module: escrow_kernel.models.lease_event
Responsibility: ORM persistence for the append-only, hash-chained lease
    event log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Rows are append-only; no UPDATE or DELETE (ORM listeners).
    - Hash chain: hash = H(lease_id | event_type | payload_hash | prev_hash).
      Validated by LeaseEventRecorder.validate_chain().
    - seq is monotonically increasing, allocated by SequenceService.

Audit relevance:
    LeaseEvent IS the audit trail of every custody decision.  Each
    successful lifecycle operation produces at least one row; a rolled-back
    operation produces none.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, BigInteger, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from escrow_kernel.db.base import Base, UUIDString


class LeaseEventType(str, Enum):
    """Events emitted by the deposit lifecycle."""

    LEASE_CREATED = "LeaseCreated"
    DEPOSIT_FUNDED = "DepositFunded"
    INSPECTION_SUBMITTED = "InspectionSubmitted"
    CLAIM_RAISED = "ClaimRaised"
    CLAIM_RESOLVED = "ClaimResolved"
    DEPOSIT_FINALIZED = "DepositFinalized"


class LeaseEvent(Base):
    """
    One entry in the lease event log.

    Guarantees:
        - seq is globally unique and monotonically increasing.
        - prev_hash is None only for the genesis event.
    """

    __tablename__ = "escrow_lease_events"

    __table_args__ = (
        Index("idx_lease_event_lease", "lease_id"),
        Index("idx_lease_event_type", "event_type"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    lease_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<LeaseEvent {self.seq} {self.event_type} lease={self.lease_id}>"

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None
