"""
LeaseRegistry -- creation and lookup of leases.

Responsibility:
    Validates new lease terms, allocates the lease identifier, stores the
    lease in ``created`` and records ``LeaseCreated``.  Also the single
    lookup path used by every lease operation.

Architecture position:
    Kernel > Services -- imperative shell.  Called directly by hosts for
    creation, and by LeaseService for lookups.

Invariants enforced:
    - Lease identifiers come from the ``lease`` sequence counter, strictly
      increasing and never reused.
    - ``deposit_amount > 0`` and no finer than the configured precision.
    - ``lease_end`` strictly after the clock's now.
    - Tenant is present and distinct from the landlord; an inspector, when
      named, is distinct from both.
    - All-or-nothing: creation runs in a SAVEPOINT, so a failed call leaves
      no lease, event or counter advance behind.

Failure modes:
    - InvalidPartyError, InvalidAmountError, LeaseEndNotInFutureError.
    - LeaseNotFoundError on lookup of an unknown identifier.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from escrow_kernel.db.types import require_amount
from escrow_kernel.domain.claim_window import window_to_seconds
from escrow_kernel.domain.clock import Clock, SystemClock
from escrow_kernel.domain.dtos import LeaseInfo
from escrow_kernel.domain.lifecycle import DEPOSIT_LIFECYCLE, LeaseState
from escrow_kernel.domain.policy import DEFAULT_POLICY, EscrowPolicy
from escrow_kernel.exceptions import (
    EscrowKernelError,
    InvalidPartyError,
    LeaseEndNotInFutureError,
    LeaseNotFoundError,
)
from escrow_kernel.logging_config import LogContext, get_logger
from escrow_kernel.models.lease import Lease
from escrow_kernel.services.base import BaseService
from escrow_kernel.services.lease_event_recorder import LeaseEventRecorder
from escrow_kernel.services.sequence_service import SequenceService

logger = get_logger("services.lease_registry")


def _validate_parties(
    landlord_id: UUID | None,
    tenant_id: UUID | None,
    inspector_id: UUID | None,
) -> None:
    if landlord_id is None:
        raise InvalidPartyError("landlord", "landlord identity is required")
    if tenant_id is None:
        raise InvalidPartyError("tenant", "tenant identity is required")
    if tenant_id == landlord_id:
        raise InvalidPartyError("tenant", "tenant must differ from the landlord")
    if inspector_id is not None and inspector_id in (landlord_id, tenant_id):
        raise InvalidPartyError(
            "inspector", "inspector must differ from both landlord and tenant"
        )


class LeaseRegistry(BaseService[Lease]):
    """
    Creates leases and looks them up.

    Guarantees:
        - ``create_lease`` returns a frozen ``LeaseInfo``; ORM entities are
          only handed to other kernel services via ``get``.
        - Session is flushed but never committed.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: EscrowPolicy = DEFAULT_POLICY,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._policy = policy
        self._sequence_service = SequenceService(session)
        self._events = LeaseEventRecorder(session, self._clock)

    def create_lease(
        self,
        landlord_id: UUID,
        tenant_id: UUID,
        deposit_amount: Decimal | int | str,
        lease_end: datetime,
        claim_window: timedelta | int | None = None,
        inspector_id: UUID | None = None,
    ) -> LeaseInfo:
        """
        Open a lease in ``created``.  The caller becomes the landlord.

        Args:
            landlord_id: Creating party; becomes the landlord.
            tenant_id: Tenant who will fund the deposit.
            deposit_amount: Exact amount the tenant must pay.
            lease_end: End of the rental term (timezone-aware).
            claim_window: Grace period as a timedelta or whole seconds;
                None uses the configured default.  Zero is allowed.
            inspector_id: Optional neutral inspector.

        Returns:
            LeaseInfo of the stored lease.
        """
        with LogContext.bind(actor_id=str(landlord_id), operation="create_lease"):
            try:
                with self.atomic():
                    lease = self._create(
                        landlord_id,
                        tenant_id,
                        deposit_amount,
                        lease_end,
                        claim_window,
                        inspector_id,
                    )
            except EscrowKernelError as exc:
                logger.warning(
                    "lease_operation_rejected",
                    extra={"error_code": exc.code, "error": str(exc)},
                )
                raise

            logger.info(
                "lease_created",
                extra={
                    "lease_id": lease.lease_id,
                    "deposit_amount": str(lease.deposit_amount),
                    "currency": lease.currency,
                    "has_inspector": lease.inspector_id is not None,
                },
            )
        return lease.to_dto()

    def _create(
        self,
        landlord_id,
        tenant_id,
        deposit_amount,
        lease_end,
        claim_window,
        inspector_id,
    ) -> Lease:
        _validate_parties(landlord_id, tenant_id, inspector_id)

        deposit = require_amount(
            "deposit_amount", deposit_amount, self._policy.amount_decimal_places
        )

        if lease_end.tzinfo is None:
            raise ValueError(f"lease_end must be timezone-aware: {lease_end!r}")
        now = self._clock.now()
        if lease_end <= now:
            raise LeaseEndNotInFutureError(lease_end, now)

        if claim_window is None:
            window_seconds = self._policy.default_claim_window_seconds
        else:
            window_seconds = window_to_seconds(claim_window)

        lease_id = self._sequence_service.next_value(SequenceService.LEASE)

        lease = Lease(
            lease_id=lease_id,
            landlord_id=landlord_id,
            tenant_id=tenant_id,
            inspector_id=inspector_id,
            deposit_amount=deposit,
            currency=self._policy.currency,
            lease_end=lease_end,
            claim_window_seconds=window_seconds,
            state=DEPOSIT_LIFECYCLE.initial_state,
            funded_amount=Decimal("0"),
            created_at=now,
            created_by_id=landlord_id,
        )
        self.session.add(lease)
        self.session.flush()

        self._events.record_lease_created(
            lease_id=lease_id,
            landlord_id=landlord_id,
            tenant_id=tenant_id,
            deposit=deposit,
            lease_end=lease_end,
            actor_id=landlord_id,
        )
        return lease

    def get(self, lease_id: int) -> Lease:
        """ORM lease for kernel services.  Raises LeaseNotFoundError."""
        lease = self.session.execute(
            select(Lease).where(Lease.lease_id == lease_id)
        ).scalar_one_or_none()
        if lease is None:
            raise LeaseNotFoundError(lease_id)
        return lease

    def get_info(self, lease_id: int) -> LeaseInfo:
        return self.get(lease_id).to_dto()

    def get_state(self, lease_id: int) -> LeaseState:
        return self.get(lease_id).lease_state
