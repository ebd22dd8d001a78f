"""
Typed Exception Hierarchy for the Escrow Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Custody errors decide whether value moves between parties who do not trust
each other. Callers must be able to tell an authorization failure from a
closed claim window without parsing message strings, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        lease_service.raise_claim(lease_id, landlord, amount, cid)
    except ClaimWindowClosedError as e:
        api_response(code=e.code, deadline=e.deadline)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from EscrowKernelError:

    EscrowKernelError (base)
    |
    +-- AuthorizationError
    |   +-- UnauthorizedCallerError
    |
    +-- LeaseStateError
    |   +-- LeaseNotFoundError
    |   +-- IllegalTransitionError
    |   +-- NoActiveClaimError
    |   +-- ClaimAlreadyExistsError
    |
    +-- TimingError
    |   +-- LeaseEndNotInFutureError
    |   +-- LeaseNotEndedError
    |   +-- ClaimWindowClosedError
    |   +-- ClaimWindowOpenError
    |
    +-- AmountError
    |   +-- InvalidAmountError
    |   +-- PaymentMismatchError
    |   +-- ClaimAmountExceedsDepositError
    |   +-- ReturnAmountExceedsDepositError
    |
    +-- TransferError
    |   +-- TransferFailedError
    |   +-- UnsolicitedPaymentError
    |   +-- CustodyInvariantError
    |
    +-- PartyError
    |   +-- InvalidPartyError
    |
    +-- EvidenceError
    |   +-- InvalidEvidenceReferenceError
    |
    +-- ConcurrencyError
    |   +-- ReentrancyError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- AuditError
        +-- EventChainBrokenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Authorization   | UNAUTHORIZED_CALLER           | Caller lacks the role for the operation
----------------|-------------------------------|---------------------------------------
State           | LEASE_NOT_FOUND               | Unknown lease identifier
                | ILLEGAL_TRANSITION            | Operation not legal from current state
                | NO_ACTIVE_CLAIM               | Resolution without an active claim
                | CLAIM_ALREADY_EXISTS          | Second claim on the same lease
----------------|-------------------------------|---------------------------------------
Timing          | LEASE_END_NOT_IN_FUTURE       | Creation with lease end <= now
                | LEASE_NOT_ENDED               | Inspection before lease end
                | CLAIM_WINDOW_CLOSED           | Claim after the deadline
                | CLAIM_WINDOW_OPEN             | Auto-finalize at or before the deadline
----------------|-------------------------------|---------------------------------------
Amount          | INVALID_AMOUNT                | Non-positive / negative / over-precise
                | PAYMENT_MISMATCH              | Funding payment != deposit
                | CLAIM_EXCEEDS_DEPOSIT         | Claim requests more than the deposit
                | RETURN_EXCEEDS_DEPOSIT        | Tenant return larger than the deposit
----------------|-------------------------------|---------------------------------------
Transfer        | TRANSFER_FAILED               | Value-transfer rail reported failure
                | UNSOLICITED_PAYMENT           | Direct payment outside fund_deposit
                | CUSTODY_INVARIANT_VIOLATED    | Payout would exceed the funded balance
----------------|-------------------------------|---------------------------------------
Party           | INVALID_PARTY                 | Missing / duplicated party identity
----------------|-------------------------------|---------------------------------------
Evidence        | INVALID_EVIDENCE_REFERENCE    | Empty, oversized or too many CIDs
----------------|-------------------------------|---------------------------------------
Concurrency     | REENTRANT_CALL                | Guarded operation re-entered
----------------|-------------------------------|---------------------------------------
Immutability    | IMMUTABILITY_VIOLATION        | Update/delete of an append-only record
----------------|-------------------------------|---------------------------------------
Audit           | EVENT_CHAIN_BROKEN            | Lease event hash chain mismatch

===============================================================================
HANDLING PATTERNS
===============================================================================

1. No error is retried automatically. A failed operation leaves the lease
   exactly as it was; an authorized caller may call it again.

2. TransferFailedError means the payout could not be confirmed. The state
   transition that preceded it has been rolled back with it.

3. ReentrancyError and ImmutabilityViolationError indicate a hostile or
   buggy caller -- log and investigate, never suppress.
"""

from datetime import datetime
from decimal import Decimal


class EscrowKernelError(Exception):
    """
    Base exception for all escrow kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ESCROW_KERNEL_ERROR"


# Authorization exceptions


class AuthorizationError(EscrowKernelError):
    """Base exception for role check failures."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedCallerError(AuthorizationError):
    """Caller does not hold the role required for the operation."""

    code: str = "UNAUTHORIZED_CALLER"

    def __init__(self, lease_id: int, operation: str, caller_id: str, required_role: str):
        self.lease_id = lease_id
        self.operation = operation
        self.caller_id = caller_id
        self.required_role = required_role
        super().__init__(
            f"Caller {caller_id} may not {operation} lease {lease_id}: "
            f"requires {required_role}"
        )


# State exceptions


class LeaseStateError(EscrowKernelError):
    """Base exception for lifecycle state errors."""

    code: str = "LEASE_STATE_ERROR"


class LeaseNotFoundError(LeaseStateError):
    """No lease exists with the given identifier."""

    code: str = "LEASE_NOT_FOUND"

    def __init__(self, lease_id: int):
        self.lease_id = lease_id
        super().__init__(f"Lease not found: {lease_id}")


class IllegalTransitionError(LeaseStateError):
    """Operation is not legal from the lease's current state."""

    code: str = "ILLEGAL_TRANSITION"

    def __init__(self, lease_id: int, operation: str, current_state: str):
        self.lease_id = lease_id
        self.operation = operation
        self.current_state = current_state
        super().__init__(
            f"Cannot {operation} lease {lease_id} in state '{current_state}'"
        )


class NoActiveClaimError(LeaseStateError):
    """Resolution requested but the lease has no active claim."""

    code: str = "NO_ACTIVE_CLAIM"

    def __init__(self, lease_id: int):
        self.lease_id = lease_id
        super().__init__(f"Lease {lease_id} has no active claim")


class ClaimAlreadyExistsError(LeaseStateError):
    """A claim was already raised against this lease."""

    code: str = "CLAIM_ALREADY_EXISTS"

    def __init__(self, lease_id: int):
        self.lease_id = lease_id
        super().__init__(f"Lease {lease_id} already has a claim")


# Timing exceptions


class TimingError(EscrowKernelError):
    """Base exception for time-gate violations."""

    code: str = "TIMING_ERROR"


class LeaseEndNotInFutureError(TimingError):
    """Lease end must be strictly after the current time at creation."""

    code: str = "LEASE_END_NOT_IN_FUTURE"

    def __init__(self, lease_end: datetime, now: datetime):
        self.lease_end = lease_end
        self.now = now
        super().__init__(
            f"Lease end {lease_end.isoformat()} is not after {now.isoformat()}"
        )


class LeaseNotEndedError(TimingError):
    """Inspection submitted before the lease term ended."""

    code: str = "LEASE_NOT_ENDED"

    def __init__(self, lease_id: int, lease_end: datetime, now: datetime):
        self.lease_id = lease_id
        self.lease_end = lease_end
        self.now = now
        super().__init__(
            f"Lease {lease_id} ends at {lease_end.isoformat()}; "
            f"it is only {now.isoformat()}"
        )


class ClaimWindowClosedError(TimingError):
    """Claim raised after the claim-window deadline."""

    code: str = "CLAIM_WINDOW_CLOSED"

    def __init__(self, lease_id: int, deadline: datetime, now: datetime):
        self.lease_id = lease_id
        self.deadline = deadline
        self.now = now
        super().__init__(
            f"Claim window for lease {lease_id} closed at {deadline.isoformat()}"
        )


class ClaimWindowOpenError(TimingError):
    """Auto-finalization attempted while the claim window is still open."""

    code: str = "CLAIM_WINDOW_OPEN"

    def __init__(self, lease_id: int, deadline: datetime, now: datetime):
        self.lease_id = lease_id
        self.deadline = deadline
        self.now = now
        super().__init__(
            f"Claim window for lease {lease_id} is open until {deadline.isoformat()}"
        )


# Amount exceptions


class AmountError(EscrowKernelError):
    """Base exception for amount validation errors."""

    code: str = "AMOUNT_ERROR"


class InvalidAmountError(AmountError):
    """Amount is negative, zero where positive is required, or over-precise."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, amount: Decimal | str, reason: str):
        self.field = field
        self.amount = str(amount)
        self.reason = reason
        super().__init__(f"Invalid {field} {amount}: {reason}")


class PaymentMismatchError(AmountError):
    """Funding payment differs from the deposit (over- or under-payment)."""

    code: str = "PAYMENT_MISMATCH"

    def __init__(self, lease_id: int, expected: Decimal, received: Decimal):
        self.lease_id = lease_id
        self.expected = str(expected)
        self.received = str(received)
        super().__init__(
            f"Lease {lease_id} requires exactly {expected}, received {received}"
        )


class ClaimAmountExceedsDepositError(AmountError):
    """Claim requests more than the deposit."""

    code: str = "CLAIM_EXCEEDS_DEPOSIT"

    def __init__(self, lease_id: int, requested: Decimal, deposit: Decimal):
        self.lease_id = lease_id
        self.requested = str(requested)
        self.deposit = str(deposit)
        super().__init__(
            f"Claim of {requested} exceeds deposit {deposit} on lease {lease_id}"
        )


class ReturnAmountExceedsDepositError(AmountError):
    """Tenant return in a resolution is larger than the deposit."""

    code: str = "RETURN_EXCEEDS_DEPOSIT"

    def __init__(self, tenant_return: Decimal, deposit: Decimal):
        self.tenant_return = str(tenant_return)
        self.deposit = str(deposit)
        super().__init__(
            f"Tenant return {tenant_return} exceeds deposit {deposit}"
        )


# Transfer exceptions


class TransferError(EscrowKernelError):
    """Base exception for value-transfer errors."""

    code: str = "TRANSFER_ERROR"


class TransferFailedError(TransferError):
    """The value-transfer rail reported failure."""

    code: str = "TRANSFER_FAILED"

    def __init__(self, lease_id: int, recipient_id: str, amount: Decimal):
        self.lease_id = lease_id
        self.recipient_id = recipient_id
        self.amount = str(amount)
        super().__init__(
            f"Transfer of {amount} to {recipient_id} for lease {lease_id} failed"
        )


class UnsolicitedPaymentError(TransferError):
    """Direct payment to escrow outside of fund_deposit."""

    code: str = "UNSOLICITED_PAYMENT"

    def __init__(self, sender_id: str, amount: Decimal):
        self.sender_id = sender_id
        self.amount = str(amount)
        super().__init__(
            f"Unsolicited payment of {amount} from {sender_id} rejected"
        )


class CustodyInvariantError(TransferError):
    """A payout would take more out of a lease than was funded into it."""

    code: str = "CUSTODY_INVARIANT_VIOLATED"

    def __init__(self, lease_id: int, balance: Decimal, requested: Decimal):
        self.lease_id = lease_id
        self.balance = str(balance)
        self.requested = str(requested)
        super().__init__(
            f"Lease {lease_id} holds {balance}; cannot pay out {requested}"
        )


# Party exceptions


class PartyError(EscrowKernelError):
    """Base exception for party identity errors."""

    code: str = "PARTY_ERROR"


class InvalidPartyError(PartyError):
    """Party identity is missing or collides with another role."""

    code: str = "INVALID_PARTY"

    def __init__(self, role: str, reason: str):
        self.role = role
        self.reason = reason
        super().__init__(f"Invalid {role}: {reason}")


# Evidence exceptions


class EvidenceError(EscrowKernelError):
    """Base exception for evidence reference errors."""

    code: str = "EVIDENCE_ERROR"


class InvalidEvidenceReferenceError(EvidenceError):
    """Evidence reference (CID) list or value is malformed."""

    code: str = "INVALID_EVIDENCE_REFERENCE"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid evidence reference {field}: {reason}")


# Concurrency exceptions


class ConcurrencyError(EscrowKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ReentrancyError(ConcurrencyError):
    """A guarded operation was invoked while another was still in flight."""

    code: str = "REENTRANT_CALL"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Re-entrant call to {operation} rejected: a guarded operation is in flight"
        )


# Immutability exceptions


class ImmutabilityError(EscrowKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Audit exceptions


class AuditError(EscrowKernelError):
    """Base exception for event log errors."""

    code: str = "AUDIT_ERROR"


class EventChainBrokenError(AuditError):
    """Lease event hash chain validation failed."""

    code: str = "EVENT_CHAIN_BROKEN"

    def __init__(self, seq: int, expected_hash: str, actual_hash: str):
        self.seq = seq
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Lease event chain broken at seq {seq}: "
            f"expected {expected_hash}, got {actual_hash}"
        )
