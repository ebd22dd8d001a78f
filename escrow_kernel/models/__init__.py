"""ORM models for the escrow kernel."""

from escrow_kernel.models.custody import CustodyTransfer
from escrow_kernel.models.lease import ClaimRecord, InspectionRecord, Lease
from escrow_kernel.models.lease_event import LeaseEvent, LeaseEventType

__all__ = [
    "ClaimRecord",
    "CustodyTransfer",
    "InspectionRecord",
    "Lease",
    "LeaseEvent",
    "LeaseEventType",
]
