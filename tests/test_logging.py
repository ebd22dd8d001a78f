"""Tests for the kernel's JSON log envelope (escrow_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from escrow_kernel.exceptions import PaymentMismatchError, UnauthorizedCallerError
from escrow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def log_lines():
    """Fresh kernel logging into a buffer; returns a parser for what was written."""
    reset_logging()
    stream = StringIO()
    configure_logging(level=logging.DEBUG, stream=stream)

    def _lines() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield _lines
    reset_logging()


class TestLeaseEnvelope:
    def test_bound_fields_emitted_as_strings(self, log_lines):
        with LogContext.bind(lease_id="7", operation="fund_deposit", actor_id="abc"):
            get_logger("test").info("lease_transition")

        record = log_lines()[0]
        assert record["lease_id"] == "7"
        assert record["operation"] == "fund_deposit"
        assert record["actor_id"] == "abc"

    def test_unbound_fields_omitted(self, log_lines):
        get_logger("test").info("engine_initialized")

        record = log_lines()[0]
        assert set(record) == {"ts", "level", "logger", "message"}

    def test_extra_lease_id_overrides_context_and_is_stringified(self, log_lines):
        with LogContext.bind(lease_id="1", operation="tenant_release_to_landlord"):
            get_logger("test").info("custody_payout_completed", extra={"lease_id": 2})

        record = log_lines()[0]
        assert record["lease_id"] == "2"
        assert record["operation"] == "tenant_release_to_landlord"

    def test_amounts_serialized_as_decimal_strings(self, log_lines):
        get_logger("test").info("custody_deposit_accepted", extra={"amount": Decimal("0.30")})
        assert log_lines()[0]["amount"] == "0.30"

    def test_kernel_error_fields(self, log_lines):
        try:
            raise PaymentMismatchError(3, Decimal("1.00"), Decimal("0.50"))
        except PaymentMismatchError:
            get_logger("test").warning("funding_failed", exc_info=True)

        record = log_lines()[0]
        assert record["error_code"] == "PAYMENT_MISMATCH"
        assert record["error"]["lease_id"] == 3
        assert record["error"]["received"] == "0.50"
        assert record["exc_type"] == "PaymentMismatchError"


class TestLogContext:
    def test_nested_bind_restores_outer_lease(self):
        with LogContext.bind(lease_id="1", operation="tenant_release_to_landlord"):
            with LogContext.bind(lease_id="2", operation="raise_claim"):
                assert LogContext.get_all()["lease_id"] == "2"
            assert LogContext.get_all() == {
                "lease_id": "1",
                "operation": "tenant_release_to_landlord",
            }
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            with LogContext.bind(producer="x"):
                pass


class TestConfigureLogging:
    def test_second_configure_keeps_first_handler(self):
        reset_logging()
        first = logging.StreamHandler(StringIO())
        second = logging.StreamHandler(StringIO())

        configure_logging(handler=first)
        configure_logging(handler=second)

        handlers = logging.getLogger("escrow_kernel").handlers
        assert first in handlers
        assert second not in handlers
        assert isinstance(first.formatter, StructuredFormatter)
        reset_logging()


class TestOperationLogging:
    def test_transition_logged_with_context(self, captured_logs, make_lease, lease_service, tenant):
        info = make_lease()
        lease_service.fund_deposit(info.lease_id, tenant, Decimal("1.00"))

        transitions = [r for r in captured_logs() if r["message"] == "lease_transition"]
        assert len(transitions) == 1
        entry = transitions[0]
        assert entry["from_state"] == "created"
        assert entry["to_state"] == "funded"
        assert entry["lease_id"] == str(info.lease_id)
        assert entry["actor_id"] == str(tenant)
        assert entry["operation"] == "fund_deposit"

    def test_rejection_logged_with_code(self, captured_logs, make_lease, lease_service, outsider):
        info = make_lease()
        with pytest.raises(UnauthorizedCallerError):
            lease_service.fund_deposit(info.lease_id, outsider, Decimal("1.00"))

        logs = captured_logs()
        rejected = [r for r in logs if r["message"] == "lease_operation_rejected"]
        assert rejected[0]["error_code"] == "UNAUTHORIZED_CALLER"
        assert rejected[0]["level"] == "WARNING"
        assert not any(r["message"] == "lease_transition" for r in logs)

    def test_lease_creation_logged(self, captured_logs, make_lease, landlord):
        info = make_lease()
        created = [r for r in captured_logs() if r["message"] == "lease_created"]
        assert created[0]["lease_id"] == str(info.lease_id)
        assert created[0]["operation"] == "create_lease"
        assert created[0]["actor_id"] == str(landlord)
        assert created[0]["currency"] == "USD"
