"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

A lease is a permanent audit record of who agreed to what.  Once written,
its parties and terms must never change, it must never be deleted, and the
event log and custody bookings that describe its history are append-only.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events and check our invariants:

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |                                                        ^
         v                                                        |
    [before_delete event] --> _check_*_delete() -----------------+
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | When Immutable              | What
--------------------|-----------------------------|-------------------------------
Lease               | ALWAYS                      | Parties, terms, identity; no DELETE
InspectionRecord    | ALWAYS                      | No UPDATE, no DELETE
LeaseEvent          | ALWAYS                      | No UPDATE, no DELETE
CustodyTransfer     | ALWAYS                      | No UPDATE, no DELETE

Lifecycle columns of Lease (state, funded_amount, funded_at, closed_at,
version) and the resolution columns of ClaimRecord are the only fields that
change after insert.
"""

from sqlalchemy import event, inspect

from escrow_kernel.exceptions import ImmutabilityViolationError
from escrow_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# ClaimRecord fields that may change (on resolution).  Everything else is fixed.
CLAIM_MUTABLE_FIELDS = frozenset({
    "is_active",
    "tenant_amount",
    "landlord_amount",
    "resolved_by",
    "resolved_at",
})


def _blocked(entity_type: str, entity_id: str, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


def _changed_fields(target) -> set[str]:
    state = inspect(target)
    changed = set()
    for attr in state.mapper.column_attrs:
        history = state.attrs[attr.key].history
        if history.has_changes():
            changed.add(attr.key)
    return changed


def _check_lease_immutability(mapper, connection, target):
    """Parties, terms and identity of a lease never change."""
    from escrow_kernel.models.lease import LEASE_IMMUTABLE_FIELDS

    touched = _changed_fields(target) & LEASE_IMMUTABLE_FIELDS
    if touched:
        _blocked(
            "Lease",
            str(target.lease_id),
            "UPDATE",
            f"Lease fields are fixed at creation: {sorted(touched)}",
        )


def _check_lease_delete(mapper, connection, target):
    _blocked("Lease", str(target.lease_id), "DELETE", "Leases are never deleted")


def _check_claim_immutability(mapper, connection, target):
    touched = _changed_fields(target) - CLAIM_MUTABLE_FIELDS
    if touched:
        _blocked(
            "ClaimRecord",
            str(target.lease_id),
            "UPDATE",
            f"Claim fields are fixed once raised: {sorted(touched)}",
        )


def _check_claim_delete(mapper, connection, target):
    _blocked("ClaimRecord", str(target.lease_id), "DELETE", "Claims cannot be deleted")


def _check_inspection_immutability(mapper, connection, target):
    _blocked(
        "InspectionRecord",
        str(target.lease_id),
        "UPDATE",
        "Inspection records are written once, as a whole",
    )


def _check_inspection_delete(mapper, connection, target):
    _blocked("InspectionRecord", str(target.lease_id), "DELETE", "Inspections cannot be deleted")


def _check_lease_event_immutability(mapper, connection, target):
    _blocked("LeaseEvent", str(target.seq), "UPDATE", "Lease events are immutable")


def _check_lease_event_delete(mapper, connection, target):
    _blocked("LeaseEvent", str(target.seq), "DELETE", "Lease events cannot be deleted")


def _check_custody_transfer_immutability(mapper, connection, target):
    _blocked("CustodyTransfer", str(target.id), "UPDATE", "Custody bookings are immutable")


def _check_custody_transfer_delete(mapper, connection, target):
    _blocked("CustodyTransfer", str(target.id), "DELETE", "Custody bookings cannot be deleted")


def _listeners():
    from escrow_kernel.models.custody import CustodyTransfer
    from escrow_kernel.models.lease import ClaimRecord, InspectionRecord, Lease
    from escrow_kernel.models.lease_event import LeaseEvent

    return (
        (Lease, "before_update", _check_lease_immutability),
        (Lease, "before_delete", _check_lease_delete),
        (ClaimRecord, "before_update", _check_claim_immutability),
        (ClaimRecord, "before_delete", _check_claim_delete),
        (InspectionRecord, "before_update", _check_inspection_immutability),
        (InspectionRecord, "before_delete", _check_inspection_delete),
        (LeaseEvent, "before_update", _check_lease_event_immutability),
        (LeaseEvent, "before_delete", _check_lease_event_delete),
        (CustodyTransfer, "before_update", _check_custody_transfer_immutability),
        (CustodyTransfer, "before_delete", _check_custody_transfer_delete),
    )


def register_immutability_listeners():
    """Register all immutability enforcement event listeners (idempotent)."""
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
