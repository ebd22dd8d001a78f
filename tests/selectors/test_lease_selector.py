"""Tests for LeaseSelector read-side queries."""

from datetime import timedelta
from decimal import Decimal

import pytest

from escrow_kernel.domain.lifecycle import LeaseState
from escrow_kernel.exceptions import LeaseNotFoundError
from escrow_kernel.selectors import LeaseSelector


@pytest.fixture
def selector(session):
    return LeaseSelector(session)


class TestLeaseSelector:
    def test_unknown_lease_returns_none(self, selector):
        assert selector.get_lease(7) is None

    def test_unknown_lease_state_raises(self, selector):
        with pytest.raises(LeaseNotFoundError):
            selector.get_state(7)

    def test_snapshot_matches_service(self, funded_lease, selector):
        info = selector.get_lease(funded_lease.lease_id)
        assert info == funded_lease
        assert selector.get_state(funded_lease.lease_id) == LeaseState.FUNDED

    def test_inspection_and_claim(self, funded_lease, lease_service, selector, tenant, landlord, clock):
        lease_id = funded_lease.lease_id
        assert selector.get_inspection(lease_id) is None
        assert selector.get_claim(lease_id) is None

        clock.set_time(funded_lease.lease_end + timedelta(hours=1))
        lease_service.submit_inspection(lease_id, tenant, ["bafyphoto"], "bafylock")
        lease_service.raise_claim(lease_id, landlord, Decimal("0.25"), "bafydamage")

        inspection = selector.get_inspection(lease_id)
        assert inspection.photo_cids == ("bafyphoto",)
        claim = selector.get_claim(lease_id)
        assert claim.amount_requested == Decimal("0.25")
        assert claim.is_active

    def test_claim_deadline_follows_inspection(self, funded_lease, lease_service, selector, tenant, clock):
        lease_id = funded_lease.lease_id
        assert selector.get_claim_deadline(lease_id) == funded_lease.lease_end + timedelta(days=3)

        submitted_at = funded_lease.lease_end + timedelta(days=2)
        clock.set_time(submitted_at)
        lease_service.submit_inspection(lease_id, tenant, [], "bafylock")

        assert selector.get_claim_deadline(lease_id) == submitted_at + timedelta(days=3)

    def test_leases_for_party(self, make_lease, selector, landlord, tenant, inspector, outsider):
        first = make_lease()
        second = make_lease(inspector_id=inspector)
        make_lease(landlord_id=outsider)

        assert [i.lease_id for i in selector.leases_for_party(inspector)] == [second.lease_id]
        assert [i.lease_id for i in selector.leases_for_party(landlord)] == [
            first.lease_id,
            second.lease_id,
        ]
        assert len(selector.leases_for_party(tenant)) == 3

    def test_events_and_balance(self, funded_lease, selector, lease_service, tenant):
        events = selector.events_for(funded_lease.lease_id)
        assert [e.event_type for e in events] == ["LeaseCreated", "DepositFunded"]
        assert events[1].actor_id == tenant
        assert events[1].payload["amount"] == "1"
        assert selector.escrow_balance(funded_lease.lease_id) == Decimal("1.00")

        lease_service.tenant_release_to_landlord(funded_lease.lease_id, tenant)
        assert selector.escrow_balance(funded_lease.lease_id) == 0
