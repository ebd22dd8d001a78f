"""
Module: escrow_kernel.models.custody
Responsibility: ORM persistence for value moving into and out of escrow.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/custody.py only.

Invariants enforced:
    - Rows are append-only (ORM listeners).
    - amount > 0; zero-value legs are never booked.
    - Per lease: sum(payout) <= sum(deposit).  Checked by
      CustodyLedgerService before every payout.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from escrow_kernel.db.base import Base, UUIDString
from escrow_kernel.domain.custody import TransferDirection


class CustodyTransfer(Base):
    """One booked movement of value for a lease."""

    __tablename__ = "escrow_custody_transfers"

    __table_args__ = (
        Index("idx_custody_lease", "lease_id"),
        Index("idx_custody_counterparty", "counterparty_id"),
    )

    lease_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    direction: Mapped[str] = mapped_column(String(16), nullable=False)
    counterparty_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<CustodyTransfer {self.direction} {self.amount} "
            f"lease={self.lease_id} party={self.counterparty_id}>"
        )

    @property
    def transfer_direction(self) -> TransferDirection:
        return TransferDirection(self.direction)
