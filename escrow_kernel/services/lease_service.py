"""
LeaseService -- the deposit lifecycle state machine.

Responsibility:
    Executes the six lifecycle operations against one lease: funding,
    inspection, claim, resolution, automatic return after the claim window,
    and voluntary release to the landlord.  Each operation checks its
    preconditions, applies the transition, moves value and records events
    as one all-or-nothing unit.

Architecture position:
    Kernel > Services -- imperative shell.  Pure rules come from
    ``domain.lifecycle`` (transition graph), ``domain.authorization``
    (roles), ``domain.claim_window`` (deadline) and ``domain.settlement``
    (split).  Value moves through ``CustodyLedgerService``.

Invariants enforced:
    - Forward-only: the target state is looked up in DEPOSIT_LIFECYCLE;
      an action with no transition from the current state is rejected, so
      no settlement path can run twice.
    - Single settlement: resolved and finalized are terminal.
    - Effects before interactions: the lease is flushed in its
      post-transition state before any transfer is attempted.
    - Non-reentrant payout: fund-moving operations hold the ReentrancyGuard
      for their whole duration.
    - All-or-nothing: every operation runs in a SAVEPOINT.  Any exception,
      including a transfer failure, rolls back the lease, claim, inspection,
      events and custody bookings of that call.
      Payout legs the rail already confirmed are reversed on the rail.

Validation order:
    lease lookup, state, role, timing, then amounts and evidence.

Failure modes:
    Every error in ``escrow_kernel.exceptions`` except the immutability and
    audit families.  Errors are logged as ``lease_operation_rejected`` and
    re-raised; nothing is retried or swallowed.
"""

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from escrow_kernel.db.types import require_amount
from escrow_kernel.domain.authorization import (
    AuthorizationResult,
    LeaseParties,
    authorize_finalize_after_window,
    authorize_fund_deposit,
    authorize_raise_claim,
    authorize_resolve_claim,
    authorize_submit_inspection,
    authorize_tenant_release,
)
from escrow_kernel.domain.claim_window import has_claim_window_elapsed, is_claim_window_open
from escrow_kernel.domain.clock import Clock, SystemClock
from escrow_kernel.domain.custody import TransferRail
from escrow_kernel.domain.dtos import LeaseInfo
from escrow_kernel.domain.evidence import copy_photo_references, validate_reference
from escrow_kernel.domain.lifecycle import (
    LeaseAction,
    LeaseState,
    is_terminal,
    moves_funds,
    next_state,
)
from escrow_kernel.domain.policy import DEFAULT_POLICY, EscrowPolicy
from escrow_kernel.domain.settlement import SettlementSplit, split_deposit
from escrow_kernel.exceptions import (
    ClaimAlreadyExistsError,
    ClaimAmountExceedsDepositError,
    ClaimWindowClosedError,
    ClaimWindowOpenError,
    EscrowKernelError,
    IllegalTransitionError,
    LeaseNotEndedError,
    NoActiveClaimError,
    UnauthorizedCallerError,
)
from escrow_kernel.logging_config import LogContext, get_logger
from escrow_kernel.models.lease import ClaimRecord, InspectionRecord, Lease
from escrow_kernel.services.base import BaseService
from escrow_kernel.services.custody_ledger import CustodyLedgerService, LedgerTransferRail
from escrow_kernel.services.lease_event_recorder import LeaseEventRecorder
from escrow_kernel.services.lease_registry import LeaseRegistry
from escrow_kernel.services.reentrancy import PROCESS_GUARD, ReentrancyGuard

logger = get_logger("services.lease")

Authorizer = Callable[[LeaseParties, UUID], AuthorizationResult]


@dataclass
class _Transition:
    """The state change one operation applied; set by ``_apply``."""

    from_state: str | None = None
    to_state: str | None = None


class LeaseService(BaseService[Lease]):
    """
    Drives one lease at a time through the deposit lifecycle.

    Contract:
        Mutating operations return a frozen ``LeaseInfo`` (or the
        ``SettlementSplit`` for ``resolve_claim``) describing the lease
        after the call.  On any error the lease is exactly as it was.

    Non-goals:
        - Does NOT call ``session.commit()``; the caller owns the outer
          transaction (``session_scope()``).
        - Does NOT interpret evidence references.
    """

    def __init__(
        self,
        session: Session,
        rail: TransferRail | None = None,
        clock: Clock | None = None,
        guard: ReentrancyGuard = PROCESS_GUARD,
        policy: EscrowPolicy = DEFAULT_POLICY,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._rail = rail if rail is not None else LedgerTransferRail()
        self._guard = guard
        self._policy = policy
        self._registry = LeaseRegistry(session, self._clock, policy)
        self._ledger = CustodyLedgerService(session, self._rail, self._clock)
        self._events = LeaseEventRecorder(session, self._clock)

    @property
    def registry(self) -> LeaseRegistry:
        return self._registry

    @property
    def ledger(self) -> CustodyLedgerService:
        return self._ledger

    @property
    def events(self) -> LeaseEventRecorder:
        return self._events

    # ------------------------------------------------------------------
    # Operation scaffolding
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(
        self,
        action: LeaseAction,
        lease_id: int,
        caller_id: UUID,
    ) -> Iterator[_Transition]:
        step = _Transition()
        guard = self._guard.guarded(action.value) if moves_funds(action) else nullcontext()
        with LogContext.bind(
            lease_id=str(lease_id),
            actor_id=str(caller_id),
            operation=action.value,
        ):
            try:
                with guard, self.atomic():
                    yield step
            except EscrowKernelError as exc:
                logger.warning(
                    "lease_operation_rejected",
                    extra={"error_code": exc.code, "error": str(exc)},
                )
                raise
            if step.to_state is not None:
                logger.info(
                    "lease_transition",
                    extra={
                        "from_state": step.from_state,
                        "to_state": step.to_state,
                        "action": action.value,
                    },
                )

    def _require_transition(self, lease: Lease, action: LeaseAction) -> LeaseState:
        target = next_state(lease.lease_state, action)
        if target is None:
            raise IllegalTransitionError(lease.lease_id, action.value, lease.state)
        return target

    def _authorize(
        self,
        lease: Lease,
        caller_id: UUID,
        action: LeaseAction,
        authorizer: Authorizer,
    ) -> None:
        result = authorizer(lease.parties, caller_id)
        if not result.allowed:
            raise UnauthorizedCallerError(
                lease.lease_id, action.value, str(caller_id), result.required_role
            )

    def _apply(self, lease: Lease, target: LeaseState, step: _Transition) -> None:
        """Move ``lease`` to ``target`` and flush, before any transfer."""
        step.from_state = lease.state
        lease.state = target.value
        if is_terminal(target):
            lease.closed_at = self._clock.now()
        self.session.flush()
        step.to_state = target.value

    def _payout(
        self,
        lease: Lease,
        legs: list[tuple[UUID, Decimal]],
        actor_id: UUID,
    ) -> None:
        for recipient_id, amount in self._ledger.disburse_all(lease, legs):
            self._events.record_deposit_finalized(
                lease_id=lease.lease_id,
                recipient_id=recipient_id,
                amount=amount,
                actor_id=actor_id,
            )

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    def fund_deposit(
        self,
        lease_id: int,
        caller_id: UUID,
        payment: Decimal | int | str,
    ) -> LeaseInfo:
        """
        Tenant pays the deposit into escrow.

        Preconditions:
            - Lease is ``created``; caller is the tenant.
            - ``payment`` equals the deposit exactly.

        Raises:
            IllegalTransitionError, UnauthorizedCallerError,
            InvalidAmountError, PaymentMismatchError, TransferFailedError,
            ReentrancyError.
        """
        action = LeaseAction.FUND_DEPOSIT
        with self._operation(action, lease_id, caller_id) as step:
            lease = self._registry.get(lease_id)
            target = self._require_transition(lease, action)
            self._authorize(lease, caller_id, action, authorize_fund_deposit)
            amount = require_amount("payment", payment, self._policy.amount_decimal_places)

            lease.funded_amount = amount
            lease.funded_at = self._clock.now()
            self._apply(lease, target, step)

            self._ledger.accept_deposit(lease, caller_id, amount)
            self._events.record_deposit_funded(lease.lease_id, caller_id, amount)

        return lease.to_dto()

    def submit_inspection(
        self,
        lease_id: int,
        caller_id: UUID,
        photo_cids: Sequence[str],
        lock_attestation_cid: str,
    ) -> LeaseInfo:
        """
        Record the move-out inspection.

        The photo list is copied on entry; the stored record never shares
        the caller's buffer.  Submission restarts the claim window from the
        submission time.

        Preconditions:
            - Lease is ``created`` or ``funded``.
            - Caller is the inspector, or landlord / tenant when none was
              named.
            - Now is at or after lease end.
        """
        action = LeaseAction.SUBMIT_INSPECTION
        with self._operation(action, lease_id, caller_id) as step:
            lease = self._registry.get(lease_id)
            target = self._require_transition(lease, action)
            self._authorize(lease, caller_id, action, authorize_submit_inspection)

            now = self._clock.now()
            if now < lease.lease_end:
                raise LeaseNotEndedError(lease.lease_id, lease.lease_end, now)

            photos = copy_photo_references(
                photo_cids,
                self._policy.max_photo_references,
                self._policy.max_reference_length,
            )
            attestation = validate_reference(
                "lock_attestation_cid",
                lock_attestation_cid,
                self._policy.max_reference_length,
            )

            lease.inspection = InspectionRecord(
                lease_id=lease.lease_id,
                photo_cids=photos,
                lock_attestation_cid=attestation,
                submitted_at=now,
                submitted_by=caller_id,
            )
            self._apply(lease, target, step)
            self._events.record_inspection_submitted(lease.lease_id, caller_id, now)

        return lease.to_dto()

    def raise_claim(
        self,
        lease_id: int,
        caller_id: UUID,
        amount_requested: Decimal | int | str,
        evidence_cid: str,
    ) -> LeaseInfo:
        """
        Landlord raises a damage claim within the claim window.

        Preconditions:
            - Lease is ``created``, ``funded`` or ``inspection_submitted``
              and has no claim.
            - Caller is the landlord.
            - Now is at or before the claim deadline.
            - ``0 <= amount_requested <= deposit``.
        """
        action = LeaseAction.RAISE_CLAIM
        with self._operation(action, lease_id, caller_id) as step:
            lease = self._registry.get(lease_id)
            target = self._require_transition(lease, action)
            if lease.claim is not None:
                raise ClaimAlreadyExistsError(lease.lease_id)
            self._authorize(lease, caller_id, action, authorize_raise_claim)

            now = self._clock.now()
            deadline = lease.claim_deadline
            if not is_claim_window_open(now, deadline):
                raise ClaimWindowClosedError(lease.lease_id, deadline, now)

            amount = require_amount(
                "amount_requested",
                amount_requested,
                self._policy.amount_decimal_places,
                allow_zero=True,
            )
            if amount > lease.deposit_amount:
                raise ClaimAmountExceedsDepositError(
                    lease.lease_id, amount, lease.deposit_amount
                )
            evidence = validate_reference(
                "evidence_cid", evidence_cid, self._policy.max_reference_length
            )

            lease.claim = ClaimRecord(
                lease_id=lease.lease_id,
                amount_requested=amount,
                evidence_cid=evidence,
                claimant_id=caller_id,
                raised_at=now,
                is_active=True,
            )
            self._apply(lease, target, step)
            self._events.record_claim_raised(lease.lease_id, caller_id, amount)

        return lease.to_dto()

    def resolve_claim(
        self,
        lease_id: int,
        caller_id: UUID,
        tenant_return: Decimal | int | str,
    ) -> SettlementSplit:
        """
        Arbitrate the active claim and pay out both shares.

        ``tenant_return`` goes to the tenant and the rest of the deposit to
        the landlord.  The claim's requested amount is advisory only.
        ``ClaimResolved`` is always recorded; each non-zero share that is
        actually paid records ``DepositFinalized``.  A lease that was never
        funded holds nothing, so nothing is paid.

        Preconditions:
            - Lease is ``claim_raised`` with an active claim.
            - Caller is the inspector, or the landlord when none was named.
            - ``0 <= tenant_return <= deposit``.
        """
        action = LeaseAction.RESOLVE_CLAIM
        with self._operation(action, lease_id, caller_id) as step:
            lease = self._registry.get(lease_id)
            target = self._require_transition(lease, action)
            self._authorize(lease, caller_id, action, authorize_resolve_claim)
            if not lease.has_active_claim:
                raise NoActiveClaimError(lease.lease_id)

            returned = require_amount(
                "tenant_return",
                tenant_return,
                self._policy.amount_decimal_places,
                allow_zero=True,
            )
            split = split_deposit(lease.deposit_amount, returned)

            now = self._clock.now()
            claim = lease.claim
            claim.is_active = False
            claim.tenant_amount = split.tenant_amount
            claim.landlord_amount = split.landlord_amount
            claim.resolved_by = caller_id
            claim.resolved_at = now
            self._apply(lease, target, step)

            self._events.record_claim_resolved(
                lease.lease_id, split.tenant_amount, split.landlord_amount, caller_id
            )
            if lease.is_funded:
                self._payout(
                    lease,
                    [
                        (lease.tenant_id, split.tenant_amount),
                        (lease.landlord_id, split.landlord_amount),
                    ],
                    caller_id,
                )
            else:
                logger.info("settlement_without_custody", extra={"action": action.value})

        return split

    def finalize_after_window(self, lease_id: int, caller_id: UUID) -> LeaseInfo:
        """
        Return the full custody balance to the tenant once the window closes.

        Anyone may call this.  It is the complement of ``raise_claim``: for
        a given deadline exactly one of the two is permitted at any instant.

        Preconditions:
            - Lease is ``created``, ``funded`` or ``inspection_submitted``
              with no active claim.
            - Now is strictly after the claim deadline.
        """
        action = LeaseAction.FINALIZE_AFTER_WINDOW
        with self._operation(action, lease_id, caller_id) as step:
            lease = self._registry.get(lease_id)
            target = self._require_transition(lease, action)
            self._authorize(lease, caller_id, action, authorize_finalize_after_window)
            if lease.has_active_claim:
                raise IllegalTransitionError(lease.lease_id, action.value, lease.state)

            now = self._clock.now()
            deadline = lease.claim_deadline
            if not has_claim_window_elapsed(now, deadline):
                raise ClaimWindowOpenError(lease.lease_id, deadline, now)

            held = self._ledger.balance(lease.lease_id)
            self._apply(lease, target, step)
            self._payout(lease, [(lease.tenant_id, held)], caller_id)

        return lease.to_dto()

    def tenant_release_to_landlord(self, lease_id: int, caller_id: UUID) -> LeaseInfo:
        """
        Tenant voluntarily releases the full custody balance to the landlord.

        Preconditions:
            - Lease is ``created``, ``funded`` or ``inspection_submitted``.
            - Caller is the tenant.
        """
        action = LeaseAction.TENANT_RELEASE_TO_LANDLORD
        with self._operation(action, lease_id, caller_id) as step:
            lease = self._registry.get(lease_id)
            target = self._require_transition(lease, action)
            self._authorize(lease, caller_id, action, authorize_tenant_release)

            held = self._ledger.balance(lease.lease_id)
            self._apply(lease, target, step)
            self._payout(lease, [(lease.landlord_id, held)], caller_id)

        return lease.to_dto()

    # ------------------------------------------------------------------
    # Queries and refusals
    # ------------------------------------------------------------------

    def get_lease_state(self, lease_id: int) -> LeaseState:
        return self._registry.get_state(lease_id)

    def get_lease(self, lease_id: int) -> LeaseInfo:
        return self._registry.get_info(lease_id)

    def receive_direct_payment(self, sender_id: UUID, amount: Decimal) -> None:
        """Value sent to escrow outside of ``fund_deposit`` is always refused."""
        self._ledger.reject_unsolicited(sender_id, amount)
