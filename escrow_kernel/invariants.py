"""
Kernel Invariants Contract.

These invariants are structural law. They are enforced by LeaseService,
CustodyLedgerService, the ORM immutability listeners and the pure domain
functions. No configuration set may override them.

This module exists solely to declare these invariants explicitly.
"""

from enum import Enum, unique


@unique
class EscrowInvariant(str, Enum):
    """Non-configurable invariants enforced by the escrow kernel."""

    POSITIVE_DEPOSIT = "positive_deposit"
    """Every lease holds a deposit strictly greater than zero. Enforced by
    LeaseRegistry at creation; the column is immutable afterwards."""

    CLAIM_BOUNDED = "claim_bounded"
    """A claim never requests more than the deposit. Enforced by
    LeaseService.raise_claim."""

    FORWARD_ONLY = "forward_only"
    """Lease state only advances along DEPOSIT_LIFECYCLE. Enforced by the
    workflow lookup in LeaseService before any mutation."""

    SINGLE_SETTLEMENT = "single_settlement"
    """Exactly one of auto-finalize, claim resolution or voluntary release
    settles a lease. Terminal states have no outgoing transitions."""

    CUSTODY_CONSERVATION = "custody_conservation"
    """Value paid out of a lease never exceeds the value funded into it,
    and a resolution split sums to exactly the deposit. Enforced by
    split_deposit and CustodyLedgerService."""

    NON_REENTRANT_PAYOUT = "non_reentrant_payout"
    """No fund-moving operation executes while another one is in flight.
    Enforced by ReentrancyGuard."""

    APPEND_ONLY_EVENTS = "append_only_events"
    """Lease events and custody transfers are never updated or deleted.
    Enforced by ORM listeners (escrow_kernel.db.immutability)."""


# All invariants as a frozenset for programmatic checks.
ALL_ESCROW_INVARIANTS: frozenset[EscrowInvariant] = frozenset(EscrowInvariant)

# The kernel package may not import from these packages.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "escrow_config",
)
