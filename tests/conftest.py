"""
Shared fixtures for the escrow kernel test suite.

Every test gets its own in-memory SQLite database, so no test can observe
another's leases, events or sequence counters.  SQLite runs with SAVEPOINT
support enabled by ``init_engine_from_url`` so the per-operation rollback
behaviour under test is the real one.
"""

import json
import logging
from collections.abc import Generator
from datetime import timedelta
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from escrow_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from escrow_kernel.db.immutability import register_immutability_listeners
from escrow_kernel.domain.clock import DeterministicClock
from escrow_kernel.domain.policy import EscrowPolicy
from escrow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from escrow_kernel.services.custody_ledger import LedgerTransferRail
from escrow_kernel.services.lease_service import LeaseService
from escrow_kernel.services.reentrancy import ReentrancyGuard

DEPOSIT = Decimal("1.00")
CLAIM_WINDOW = timedelta(days=3)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture escrow_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, lease_service):
            ...
            logs = captured_logs()
            assert any(r["message"] == "lease_transition" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("escrow_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def _immutability_listeners():
    register_immutability_listeners()
    yield


@pytest.fixture
def db_engine():
    engine = init_engine_from_url("sqlite://")
    create_tables()
    yield engine
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """Session on a fresh in-memory database; rolled back at teardown."""
    sess = get_session()
    yield sess
    try:
        sess.rollback()
    finally:
        sess.close()


# =============================================================================
# Clock, parties, policy
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def landlord() -> UUID:
    return uuid4()


@pytest.fixture
def tenant() -> UUID:
    return uuid4()


@pytest.fixture
def inspector() -> UUID:
    return uuid4()


@pytest.fixture
def outsider() -> UUID:
    return uuid4()


@pytest.fixture
def policy() -> EscrowPolicy:
    return EscrowPolicy()


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def rail() -> LedgerTransferRail:
    return LedgerTransferRail()


@pytest.fixture
def guard() -> ReentrancyGuard:
    return ReentrancyGuard()


@pytest.fixture
def lease_service(session, rail, clock, guard, policy) -> LeaseService:
    return LeaseService(session, rail=rail, clock=clock, guard=guard, policy=policy)


@pytest.fixture
def lease_end(clock):
    return clock.now() + timedelta(days=30)


@pytest.fixture
def make_lease(lease_service, landlord, tenant, lease_end):
    """Create a lease with the standard test terms; keyword overrides allowed."""

    def _create(
        *,
        deposit=DEPOSIT,
        end=None,
        window=CLAIM_WINDOW,
        inspector_id=None,
        landlord_id=None,
        tenant_id=None,
    ):
        return lease_service.registry.create_lease(
            landlord_id=landlord_id or landlord,
            tenant_id=tenant_id or tenant,
            deposit_amount=deposit,
            lease_end=end or lease_end,
            claim_window=window,
            inspector_id=inspector_id,
        )

    return _create


@pytest.fixture
def funded_lease(make_lease, lease_service, tenant):
    """A lease funded with the standard deposit."""
    info = make_lease()
    return lease_service.fund_deposit(info.lease_id, tenant, DEPOSIT)
