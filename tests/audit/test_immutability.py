"""
Append-only persistence tests.

Verifies:
- Lease parties and terms never change and leases are never deleted
- Lifecycle columns of a lease do change
- Lease events, custody bookings and inspections are never updated or deleted
- Only the resolution columns of a claim change after it is raised
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from escrow_kernel.exceptions import ImmutabilityViolationError
from escrow_kernel.models.custody import CustodyTransfer
from escrow_kernel.models.lease_event import LeaseEvent


@pytest.fixture
def lease(funded_lease, lease_service):
    return lease_service.registry.get(funded_lease.lease_id)


class TestLeaseImmutability:
    @pytest.mark.parametrize(
        "field,value",
        [
            ("tenant_id", uuid4()),
            ("landlord_id", uuid4()),
            ("deposit_amount", Decimal("2.00")),
            ("claim_window_seconds", 0),
        ],
    )
    def test_terms_cannot_be_modified(self, lease, session, field, value):
        setattr(lease, field, value)
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert "Lease" in str(exc_info.value)
        session.rollback()

    def test_lease_end_cannot_be_moved(self, lease, session):
        lease.lease_end = lease.lease_end + timedelta(days=1)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_lease_cannot_be_deleted(self, lease, session):
        session.delete(lease)
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "Lease"
        session.rollback()

    def test_lifecycle_columns_may_change(self, lease, session):
        version = lease.version
        lease.state = "finalized"
        session.flush()
        assert lease.version == version + 1


class TestAppendOnlyRecords:
    def test_event_cannot_be_modified(self, lease, session):
        event = session.execute(select(LeaseEvent)).scalars().first()
        event.event_type = "Forged"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "LeaseEvent"
        session.rollback()

    def test_event_cannot_be_deleted(self, lease, session):
        event = session.execute(select(LeaseEvent)).scalars().first()
        session.delete(event)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_custody_booking_cannot_be_modified(self, lease, session):
        booking = session.execute(select(CustodyTransfer)).scalars().one()
        booking.amount = Decimal("0.01")
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "CustodyTransfer"
        session.rollback()

    def test_inspection_cannot_be_modified(self, lease, lease_service, tenant, clock, session):
        clock.set_time(lease.lease_end)
        lease_service.submit_inspection(lease.lease_id, tenant, ["bafyphoto"], "bafylock")

        lease.inspection.lock_attestation_cid = "bafyforged"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "InspectionRecord"
        session.rollback()


class TestClaimImmutability:
    @pytest.fixture
    def claim(self, lease, lease_service, landlord):
        lease_service.raise_claim(lease.lease_id, landlord, Decimal("0.30"), "bafydamage")
        return lease.claim

    def test_requested_amount_fixed(self, claim, session):
        claim.amount_requested = Decimal("0.90")
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "ClaimRecord"
        session.rollback()

    def test_evidence_fixed(self, claim, session):
        claim.evidence_cid = "bafyforged"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_resolution_columns_may_change(self, claim, lease_service, landlord):
        split = lease_service.resolve_claim(claim.lease_id, landlord, Decimal("0.70"))
        assert claim.tenant_amount == split.tenant_amount
        assert claim.is_active is False
