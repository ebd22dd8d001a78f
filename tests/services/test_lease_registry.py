"""Tests for LeaseRegistry: lease creation and lookup."""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from escrow_kernel.domain.lifecycle import LeaseState
from escrow_kernel.domain.policy import EscrowPolicy
from escrow_kernel.exceptions import (
    InvalidAmountError,
    InvalidPartyError,
    LeaseEndNotInFutureError,
    LeaseNotFoundError,
)
from escrow_kernel.models.lease import Lease
from escrow_kernel.models.lease_event import LeaseEvent, LeaseEventType
from escrow_kernel.services.lease_registry import LeaseRegistry
from escrow_kernel.services.sequence_service import SequenceService


@pytest.fixture
def registry(lease_service):
    return lease_service.registry


class TestCreateLease:
    def test_creates_lease_in_created_state(self, make_lease, landlord, tenant, lease_end):
        info = make_lease()

        assert info.state == LeaseState.CREATED
        assert info.landlord_id == landlord
        assert info.tenant_id == tenant
        assert info.inspector_id is None
        assert info.deposit_amount == Decimal("1.00")
        assert info.currency == "USD"
        assert info.lease_end == lease_end
        assert info.claim_window == timedelta(days=3)
        assert info.funded_amount == 0
        assert info.claim_deadline == lease_end + timedelta(days=3)

    def test_lease_ids_strictly_increase(self, make_lease):
        ids = [make_lease().lease_id for _ in range(3)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 3
        assert ids[0] >= 1

    def test_records_lease_created_event(self, make_lease, session, landlord, tenant):
        info = make_lease()
        events = session.execute(
            select(LeaseEvent).where(LeaseEvent.lease_id == info.lease_id)
        ).scalars().all()

        assert [e.event_type for e in events] == [LeaseEventType.LEASE_CREATED.value]
        payload = events[0].payload
        assert payload["landlord"] == str(landlord)
        assert payload["tenant"] == str(tenant)
        assert payload["deposit"] == "1"
        assert events[0].actor_id == landlord

    def test_zero_window_allowed(self, make_lease, lease_end):
        info = make_lease(window=0)
        assert info.claim_window == timedelta(0)
        assert info.claim_deadline == lease_end

    def test_default_window_from_policy(self, session, clock, landlord, tenant, lease_end):
        registry = LeaseRegistry(
            session, clock, EscrowPolicy(default_claim_window_seconds=3600)
        )
        info = registry.create_lease(landlord, tenant, Decimal("5"), lease_end)
        assert info.claim_window == timedelta(hours=1)

    def test_inspector_recorded(self, make_lease, inspector):
        info = make_lease(inspector_id=inspector)
        assert info.inspector_id == inspector
        assert info.parties.has_inspector


class TestCreateLeaseValidation:
    @pytest.mark.parametrize("deposit", [Decimal("0"), Decimal("-1")])
    def test_non_positive_deposit_rejected(self, make_lease, deposit):
        with pytest.raises(InvalidAmountError):
            make_lease(deposit=deposit)

    def test_deposit_precision_enforced(self, make_lease):
        with pytest.raises(InvalidAmountError):
            make_lease(deposit=Decimal("1.001"))

    def test_float_deposit_rejected(self, make_lease):
        with pytest.raises(InvalidAmountError):
            make_lease(deposit=1.5)

    def test_lease_end_must_be_in_future(self, make_lease, clock):
        with pytest.raises(LeaseEndNotInFutureError) as exc_info:
            make_lease(end=clock.now())
        assert exc_info.value.code == "LEASE_END_NOT_IN_FUTURE"

    def test_naive_lease_end_rejected(self, make_lease, lease_end):
        with pytest.raises(ValueError):
            make_lease(end=lease_end.replace(tzinfo=None))

    def test_tenant_must_differ_from_landlord(self, make_lease, landlord):
        with pytest.raises(InvalidPartyError) as exc_info:
            make_lease(tenant_id=landlord)
        assert exc_info.value.role == "tenant"

    def test_tenant_required(self, registry, landlord, lease_end):
        with pytest.raises(InvalidPartyError):
            registry.create_lease(landlord, None, Decimal("1"), lease_end)

    @pytest.mark.parametrize("who", ["landlord", "tenant"])
    def test_inspector_must_be_neutral(self, make_lease, landlord, tenant, who):
        with pytest.raises(InvalidPartyError) as exc_info:
            make_lease(inspector_id=landlord if who == "landlord" else tenant)
        assert exc_info.value.role == "inspector"

    def test_negative_window_rejected(self, make_lease):
        with pytest.raises(ValueError):
            make_lease(window=-1)

    def test_failed_creation_leaves_nothing_behind(self, make_lease, session, landlord):
        make_lease()
        before = SequenceService(session).current_value(SequenceService.LEASE)

        with pytest.raises(InvalidAmountError):
            make_lease(deposit=Decimal("0"))
        with pytest.raises(InvalidPartyError):
            make_lease(tenant_id=landlord)

        assert len(session.execute(select(Lease)).scalars().all()) == 1
        assert len(session.execute(select(LeaseEvent)).scalars().all()) == 1
        assert SequenceService(session).current_value(SequenceService.LEASE) == before
        assert make_lease().lease_id == before + 1


class TestLookup:
    def test_get_info_round_trip(self, make_lease, registry):
        info = make_lease()
        assert registry.get_info(info.lease_id) == info

    def test_unknown_lease(self, registry):
        with pytest.raises(LeaseNotFoundError) as exc_info:
            registry.get(999)
        assert exc_info.value.lease_id == 999
