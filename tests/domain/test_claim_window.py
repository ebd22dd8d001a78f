"""Tests for claim-window arithmetic (escrow_kernel.domain.claim_window)."""

from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import given
from hypothesis import strategies as st

from escrow_kernel.domain.claim_window import (
    claim_deadline,
    has_claim_window_elapsed,
    is_claim_window_open,
    window_from_seconds,
    window_to_seconds,
)

LEASE_END = datetime(2024, 2, 1, tzinfo=timezone.utc)
THREE_DAYS = timedelta(days=3)


class TestClaimDeadline:
    def test_without_inspection_runs_from_lease_end(self):
        assert claim_deadline(LEASE_END, THREE_DAYS) == LEASE_END + THREE_DAYS

    def test_inspection_restarts_window(self):
        submitted = LEASE_END + timedelta(days=2)
        assert claim_deadline(LEASE_END, THREE_DAYS, submitted) == submitted + THREE_DAYS

    def test_zero_window_deadline_is_anchor(self):
        assert claim_deadline(LEASE_END, timedelta(0)) == LEASE_END

    def test_negative_window_rejected(self):
        with pytest.raises(ValueError):
            claim_deadline(LEASE_END, timedelta(seconds=-1))

    def test_boundary(self):
        deadline = claim_deadline(LEASE_END, THREE_DAYS)
        assert is_claim_window_open(deadline, deadline)
        assert not has_claim_window_elapsed(deadline, deadline)
        one_past = deadline + timedelta(seconds=1)
        assert not is_claim_window_open(one_past, deadline)
        assert has_claim_window_elapsed(one_past, deadline)


class TestWindowConversion:
    def test_seconds_round_trip(self):
        assert window_to_seconds(window_from_seconds(259200)) == 259200

    def test_int_accepted(self):
        assert window_to_seconds(0) == 0

    def test_fractional_seconds_rejected(self):
        with pytest.raises(ValueError):
            window_to_seconds(timedelta(milliseconds=1500))

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            window_to_seconds(-5)
        with pytest.raises(ValueError):
            window_from_seconds(-5)

    @pytest.mark.parametrize("value", [1.5, "3600", True])
    def test_unsupported_types_rejected(self, value):
        with pytest.raises(TypeError):
            window_to_seconds(value)


class TestMutualExclusion:
    @given(
        window_seconds=st.integers(min_value=0, max_value=60 * 60 * 24 * 365),
        offset_seconds=st.integers(min_value=-(10**7), max_value=10**7),
        inspected=st.booleans(),
    )
    def test_exactly_one_gate_open(self, window_seconds, offset_seconds, inspected):
        submitted = LEASE_END + timedelta(hours=5) if inspected else None
        deadline = claim_deadline(LEASE_END, timedelta(seconds=window_seconds), submitted)
        now = deadline + timedelta(seconds=offset_seconds)
        assert is_claim_window_open(now, deadline) != has_claim_window_elapsed(now, deadline)
