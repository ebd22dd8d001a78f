"""Deposit escrow lifecycle.

State machine for one lease's security deposit: funding, move-out
inspection, optional damage claim, and one of three settlement paths.
"""

from enum import Enum

from escrow_kernel.domain.workflow import Guard, Transition, Workflow
from escrow_kernel.logging_config import get_logger

logger = get_logger("domain.lifecycle")


class LeaseState(str, Enum):
    """Lease lifecycle states."""
    CREATED = "created"
    FUNDED = "funded"
    INSPECTION_SUBMITTED = "inspection_submitted"
    CLAIM_RAISED = "claim_raised"
    RESOLVED = "resolved"
    FINALIZED = "finalized"


class LeaseAction(str, Enum):
    """Operations that drive the lifecycle."""
    FUND_DEPOSIT = "fund_deposit"
    SUBMIT_INSPECTION = "submit_inspection"
    RAISE_CLAIM = "raise_claim"
    RESOLVE_CLAIM = "resolve_claim"
    FINALIZE_AFTER_WINDOW = "finalize_after_window"
    TENANT_RELEASE_TO_LANDLORD = "tenant_release_to_landlord"


CALLER_IS_TENANT = Guard("caller_is_tenant", "Only the tenant may act")
CALLER_IS_LANDLORD = Guard("caller_is_landlord", "Only the landlord may act")
CALLER_MAY_INSPECT = Guard(
    "caller_may_inspect", "Inspector if set, else landlord or tenant"
)
CALLER_MAY_RESOLVE = Guard("caller_may_resolve", "Inspector if set, else landlord")
EXACT_PAYMENT = Guard("exact_payment", "Payment equals the deposit exactly")
LEASE_ENDED = Guard("lease_ended", "Current time is at or after lease end")
CLAIM_WINDOW_OPEN = Guard("claim_window_open", "Current time is at or before the claim deadline")
CLAIM_WINDOW_ELAPSED = Guard("claim_window_elapsed", "Current time is after the claim deadline")
CLAIM_WITHIN_DEPOSIT = Guard("claim_within_deposit", "Requested amount does not exceed the deposit")
CLAIM_ACTIVE = Guard("claim_active", "An unresolved claim exists")
RETURN_WITHIN_DEPOSIT = Guard("return_within_deposit", "Tenant return does not exceed the deposit")

_PRE_SETTLEMENT = (
    LeaseState.CREATED.value,
    LeaseState.FUNDED.value,
    LeaseState.INSPECTION_SUBMITTED.value,
)


def _from_each(states, to_state, action, guards=(), moves_funds=False):
    return tuple(
        Transition(s, to_state, action=action, guards=guards, moves_funds=moves_funds)
        for s in states
    )


DEPOSIT_LIFECYCLE = Workflow(
    name="deposit_escrow_lifecycle",
    description="Residential security deposit custody",
    initial_state=LeaseState.CREATED.value,
    states=tuple(s.value for s in LeaseState),
    transitions=(
        Transition(
            LeaseState.CREATED.value,
            LeaseState.FUNDED.value,
            action=LeaseAction.FUND_DEPOSIT.value,
            guards=(CALLER_IS_TENANT, EXACT_PAYMENT),
            moves_funds=True,
        ),
        *_from_each(
            (LeaseState.CREATED.value, LeaseState.FUNDED.value),
            LeaseState.INSPECTION_SUBMITTED.value,
            LeaseAction.SUBMIT_INSPECTION.value,
            guards=(CALLER_MAY_INSPECT, LEASE_ENDED),
        ),
        *_from_each(
            _PRE_SETTLEMENT,
            LeaseState.CLAIM_RAISED.value,
            LeaseAction.RAISE_CLAIM.value,
            guards=(CALLER_IS_LANDLORD, CLAIM_WINDOW_OPEN, CLAIM_WITHIN_DEPOSIT),
        ),
        Transition(
            LeaseState.CLAIM_RAISED.value,
            LeaseState.RESOLVED.value,
            action=LeaseAction.RESOLVE_CLAIM.value,
            guards=(CALLER_MAY_RESOLVE, CLAIM_ACTIVE, RETURN_WITHIN_DEPOSIT),
            moves_funds=True,
        ),
        *_from_each(
            _PRE_SETTLEMENT,
            LeaseState.FINALIZED.value,
            LeaseAction.FINALIZE_AFTER_WINDOW.value,
            guards=(CLAIM_WINDOW_ELAPSED,),
            moves_funds=True,
        ),
        *_from_each(
            _PRE_SETTLEMENT,
            LeaseState.FINALIZED.value,
            LeaseAction.TENANT_RELEASE_TO_LANDLORD.value,
            guards=(CALLER_IS_TENANT,),
            moves_funds=True,
        ),
    ),
    terminal_states=(LeaseState.RESOLVED.value, LeaseState.FINALIZED.value),
)


def next_state(current: LeaseState, action: LeaseAction) -> LeaseState | None:
    """Target state of ``action`` from ``current``, or None if illegal."""
    transition = DEPOSIT_LIFECYCLE.find(current.value, action.value)
    if transition is None:
        return None
    return LeaseState(transition.to_state)


def is_terminal(state: LeaseState) -> bool:
    return state.value in DEPOSIT_LIFECYCLE.terminal_states


def moves_funds(action: LeaseAction) -> bool:
    """True if any transition for ``action`` moves value into or out of custody."""
    return any(
        t.moves_funds for t in DEPOSIT_LIFECYCLE.transitions if t.action == action.value
    )


logger.debug(
    "deposit_lifecycle_registered",
    extra={
        "workflow_name": DEPOSIT_LIFECYCLE.name,
        "state_count": len(DEPOSIT_LIFECYCLE.states),
        "transition_count": len(DEPOSIT_LIFECYCLE.transitions),
    },
)
