"""
Resolution split (``escrow_kernel.domain.settlement``).

Responsibility
--------------
Divide a deposit between tenant and landlord when a claim is resolved.
The resolver names the tenant's share; the landlord receives the rest.
The claim's requested amount is advisory and plays no part in the split.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.

Invariants enforced
-------------------
* ``tenant_amount + landlord_amount == deposit`` exactly.
* Both shares are >= 0.
"""

from dataclasses import dataclass
from decimal import Decimal

from escrow_kernel.exceptions import InvalidAmountError, ReturnAmountExceedsDepositError


@dataclass(frozen=True)
class SettlementSplit:
    """How a resolved deposit is paid out."""
    deposit: Decimal
    tenant_amount: Decimal
    landlord_amount: Decimal

    @property
    def legs(self) -> tuple[tuple[str, Decimal], ...]:
        """Non-zero payout legs in payment order (tenant first)."""
        return tuple(
            (role, amount)
            for role, amount in (
                ("tenant", self.tenant_amount),
                ("landlord", self.landlord_amount),
            )
            if amount > 0
        )


def split_deposit(deposit: Decimal, tenant_return: Decimal) -> SettlementSplit:
    """
    Split ``deposit`` so the tenant receives ``tenant_return``.

    Raises:
        InvalidAmountError: tenant_return is negative or deposit is not positive.
        ReturnAmountExceedsDepositError: tenant_return > deposit.
    """
    if deposit <= 0:
        raise InvalidAmountError("deposit", deposit, "must be positive")
    if tenant_return < 0:
        raise InvalidAmountError("tenant_return", tenant_return, "must not be negative")
    if tenant_return > deposit:
        raise ReturnAmountExceedsDepositError(tenant_return, deposit)

    return SettlementSplit(
        deposit=deposit,
        tenant_amount=tenant_return,
        landlord_amount=deposit - tenant_return,
    )
