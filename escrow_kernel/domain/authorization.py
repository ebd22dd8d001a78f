"""
Role preconditions (``escrow_kernel.domain.authorization``).

Responsibility
--------------
One precondition function per lifecycle operation, each returning a typed
``AuthorizationResult`` instead of raising.  The service turns a denied
result into ``UnauthorizedCallerError``.

Role substitution
-----------------
When no inspector was named at creation, inspector duties fall to a fixed
substitute set: landlord or tenant may submit the inspection, the landlord
alone resolves a claim.  ``substitute_actors`` is the only place this
fallback is written down; it is not configurable.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class PartyRole(str, Enum):
    LANDLORD = "landlord"
    TENANT = "tenant"
    INSPECTOR = "inspector"
    ANY = "any"


class InspectorDuty(str, Enum):
    SUBMIT_INSPECTION = "submit_inspection"
    RESOLVE_CLAIM = "resolve_claim"


@dataclass(frozen=True)
class LeaseParties:
    """The three identities bound to a lease at creation."""
    landlord_id: UUID
    tenant_id: UUID
    inspector_id: UUID | None = None

    @property
    def has_inspector(self) -> bool:
        return self.inspector_id is not None


@dataclass(frozen=True)
class AuthorizationResult:
    """Outcome of a role precondition.

    ``required_role`` names the role set the caller had to belong to,
    e.g. ``"inspector"`` or ``"landlord|tenant"``.
    """
    allowed: bool
    required_role: str
    reason: str = ""

    @classmethod
    def allow(cls, required_role: str) -> AuthorizationResult:
        return cls(allowed=True, required_role=required_role)

    @classmethod
    def deny(cls, required_role: str, reason: str) -> AuthorizationResult:
        return cls(allowed=False, required_role=required_role, reason=reason)


_SUBSTITUTES: dict[InspectorDuty, tuple[PartyRole, ...]] = {
    InspectorDuty.SUBMIT_INSPECTION: (PartyRole.LANDLORD, PartyRole.TENANT),
    InspectorDuty.RESOLVE_CLAIM: (PartyRole.LANDLORD,),
}


def substitute_actors(parties: LeaseParties, duty: InspectorDuty) -> tuple[PartyRole, ...]:
    """Roles that perform ``duty`` on this lease.

    The named inspector when there is one; otherwise the fixed substitute
    set for that duty.
    """
    if parties.has_inspector:
        return (PartyRole.INSPECTOR,)
    return _SUBSTITUTES[duty]


def inspection_submitters(parties: LeaseParties) -> tuple[PartyRole, ...]:
    return substitute_actors(parties, InspectorDuty.SUBMIT_INSPECTION)


def claim_resolvers(parties: LeaseParties) -> tuple[PartyRole, ...]:
    return substitute_actors(parties, InspectorDuty.RESOLVE_CLAIM)


def _identity(parties: LeaseParties, role: PartyRole) -> UUID | None:
    if role is PartyRole.LANDLORD:
        return parties.landlord_id
    if role is PartyRole.TENANT:
        return parties.tenant_id
    if role is PartyRole.INSPECTOR:
        return parties.inspector_id
    return None


def _check(parties: LeaseParties, caller_id: UUID, roles: tuple[PartyRole, ...]) -> AuthorizationResult:
    required = "|".join(r.value for r in roles)
    if caller_id is None:
        return AuthorizationResult.deny(required, "caller identity missing")
    for role in roles:
        if _identity(parties, role) == caller_id:
            return AuthorizationResult.allow(required)
    return AuthorizationResult.deny(required, f"caller is not {required}")


def authorize_fund_deposit(parties: LeaseParties, caller_id: UUID) -> AuthorizationResult:
    return _check(parties, caller_id, (PartyRole.TENANT,))


def authorize_submit_inspection(parties: LeaseParties, caller_id: UUID) -> AuthorizationResult:
    return _check(parties, caller_id, inspection_submitters(parties))


def authorize_raise_claim(parties: LeaseParties, caller_id: UUID) -> AuthorizationResult:
    return _check(parties, caller_id, (PartyRole.LANDLORD,))


def authorize_resolve_claim(parties: LeaseParties, caller_id: UUID) -> AuthorizationResult:
    return _check(parties, caller_id, claim_resolvers(parties))


def authorize_finalize_after_window(parties: LeaseParties, caller_id: UUID) -> AuthorizationResult:
    """Anyone may trigger the automatic return once the window has elapsed."""
    return AuthorizationResult.allow(PartyRole.ANY.value)


def authorize_tenant_release(parties: LeaseParties, caller_id: UUID) -> AuthorizationResult:
    return _check(parties, caller_id, (PartyRole.TENANT,))
