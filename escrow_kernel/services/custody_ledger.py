"""
CustodyLedgerService -- value held in escrow, lease by lease.

Responsibility:
    Books every movement of value into and out of escrow as a
    ``CustodyTransfer`` row and drives the ``TransferRail`` that actually
    moves it.  The booked rows are the kernel's own record of custody; the
    rail is the outside world.

Architecture position:
    Kernel > Services -- imperative shell, called by LeaseService inside its
    SAVEPOINT, so a failed operation also rolls back its bookings.

Invariants enforced:
    - Exact funding: the inbound payment equals the deposit, neither more
      nor less.
    - Custody conservation: per lease, ``sum(payout) <= sum(deposit)``;
      the balance is never negative.
    - Explicit success: every rail call's boolean is checked.  ``False``
      raises TransferFailedError; nothing is assumed to have moved.
    - Zero-amount legs perform no transfer and book nothing.

Failure modes:
    - PaymentMismatchError: over- or under-payment on funding.
    - CustodyInvariantError: payout larger than the lease's balance.
    - TransferFailedError: rail reported failure.
    - A failed leg of a multi-leg payout reverses the legs the rail
      already confirmed before the error propagates.
    - UnsolicitedPaymentError: value offered outside of funding.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from escrow_kernel.domain.clock import Clock, SystemClock
from escrow_kernel.domain.custody import TransferDirection, TransferRail
from escrow_kernel.exceptions import (
    CustodyInvariantError,
    InvalidAmountError,
    PaymentMismatchError,
    TransferFailedError,
    UnsolicitedPaymentError,
)
from escrow_kernel.logging_config import get_logger
from escrow_kernel.models.custody import CustodyTransfer
from escrow_kernel.models.lease import Lease

logger = get_logger("services.custody")


@dataclass(frozen=True)
class RailMovement:
    """One movement a LedgerTransferRail has accepted."""

    direction: TransferDirection
    counterparty_id: UUID
    amount: Decimal
    lease_id: int


class LedgerTransferRail(TransferRail):
    """
    In-process rail that accepts every movement.

    Value never leaves the kernel's books: the CustodyTransfer rows written
    by CustodyLedgerService are the whole record.  ``movements`` keeps what
    the rail was asked to do, for inspection by hosts and tests.
    """

    def __init__(self) -> None:
        self.movements: list[RailMovement] = []

    def receive(self, sender_id: UUID, amount: Decimal, *, lease_id: int) -> bool:
        self.movements.append(
            RailMovement(TransferDirection.DEPOSIT, sender_id, amount, lease_id)
        )
        return True

    def transfer(self, recipient_id: UUID, amount: Decimal, *, lease_id: int) -> bool:
        self.movements.append(
            RailMovement(TransferDirection.PAYOUT, recipient_id, amount, lease_id)
        )
        return True

    def reverse(self, recipient_id: UUID, amount: Decimal, *, lease_id: int) -> bool:
        self.movements.append(
            RailMovement(TransferDirection.REVERSAL, recipient_id, amount, lease_id)
        )
        return True

    def paid_to(self, party_id: UUID) -> Decimal:
        """Net value paid to ``party_id``: payouts less reversed payouts."""
        total = Decimal("0")
        for m in self.movements:
            if m.counterparty_id != party_id:
                continue
            if m.direction is TransferDirection.PAYOUT:
                total += m.amount
            elif m.direction is TransferDirection.REVERSAL:
                total -= m.amount
        return total


class CustodyLedgerService:
    """
    Moves value for a lease and keeps the custody books.

    Non-goals:
        - Does NOT change lease state; LeaseService has already moved the
          lease to its post-transition state before any payout.
        - Does NOT call ``session.commit()``.
    """

    def __init__(
        self,
        session: Session,
        rail: TransferRail,
        clock: Clock | None = None,
    ):
        self._session = session
        self._rail = rail
        self._clock = clock or SystemClock()

    def _book(
        self,
        lease_id: int,
        direction: TransferDirection,
        counterparty_id: UUID,
        amount: Decimal,
    ) -> CustodyTransfer:
        booking = CustodyTransfer(
            lease_id=lease_id,
            direction=direction.value,
            counterparty_id=counterparty_id,
            amount=amount,
            occurred_at=self._clock.now(),
        )
        self._session.add(booking)
        self._session.flush()
        return booking

    def _totals(self, lease_id: int) -> tuple[Decimal, Decimal]:
        rows = self._session.execute(
            select(CustodyTransfer.direction, CustodyTransfer.amount)
            .where(CustodyTransfer.lease_id == lease_id)
        ).all()
        deposited = Decimal("0")
        paid_out = Decimal("0")
        for direction, amount in rows:
            if direction == TransferDirection.DEPOSIT.value:
                deposited += amount
            else:
                paid_out += amount
        return deposited, paid_out

    def balance(self, lease_id: int) -> Decimal:
        """Value currently held in escrow for ``lease_id``."""
        deposited, paid_out = self._totals(lease_id)
        return deposited - paid_out

    def total_paid_out(self, lease_id: int) -> Decimal:
        return self._totals(lease_id)[1]

    def accept_deposit(self, lease: Lease, sender_id: UUID, payment: Decimal) -> CustodyTransfer:
        """
        Take the tenant's funding payment into custody.

        Preconditions:
            - ``payment`` is exactly ``lease.deposit_amount``.

        Raises:
            PaymentMismatchError: payment differs from the deposit.
            TransferFailedError: the rail refused the inbound movement.
        """
        if payment != lease.deposit_amount:
            raise PaymentMismatchError(lease.lease_id, lease.deposit_amount, payment)

        booking = self._book(lease.lease_id, TransferDirection.DEPOSIT, sender_id, payment)

        if not self._rail.receive(sender_id, payment, lease_id=lease.lease_id):
            logger.error(
                "custody_receive_failed",
                extra={"lease_id": lease.lease_id, "amount": str(payment)},
            )
            raise TransferFailedError(lease.lease_id, str(sender_id), payment)

        logger.info(
            "custody_deposit_accepted",
            extra={"lease_id": lease.lease_id, "amount": str(payment)},
        )
        return booking

    def disburse(self, lease: Lease, recipient_id: UUID, amount: Decimal) -> bool:
        """
        Pay ``amount`` out of the lease's custody balance.

        Postconditions:
            - Returns False and does nothing when ``amount`` is zero.
            - Returns True after the payout is booked and the rail
              confirmed it.

        Raises:
            InvalidAmountError: amount is negative.
            CustodyInvariantError: amount exceeds the lease's balance.
            TransferFailedError: the rail reported failure.
        """
        if amount < 0:
            raise InvalidAmountError("payout", amount, "must not be negative")
        if amount == 0:
            return False

        held = self.balance(lease.lease_id)
        if amount > held:
            logger.critical(
                "custody_invariant_violated",
                extra={
                    "lease_id": lease.lease_id,
                    "balance": str(held),
                    "requested": str(amount),
                },
            )
            raise CustodyInvariantError(lease.lease_id, held, amount)

        # Booked before the rail call so a callback sees the reduced balance
        self._book(lease.lease_id, TransferDirection.PAYOUT, recipient_id, amount)

        if not self._rail.transfer(recipient_id, amount, lease_id=lease.lease_id):
            logger.error(
                "custody_transfer_failed",
                extra={
                    "lease_id": lease.lease_id,
                    "recipient_id": str(recipient_id),
                    "amount": str(amount),
                },
            )
            raise TransferFailedError(lease.lease_id, str(recipient_id), amount)

        logger.info(
            "custody_payout_completed",
            extra={
                "lease_id": lease.lease_id,
                "recipient_id": str(recipient_id),
                "amount": str(amount),
            },
        )
        return True

    def disburse_all(
        self, lease: Lease, legs: list[tuple[UUID, Decimal]]
    ) -> list[tuple[UUID, Decimal]]:
        """
        Pay every ``(recipient_id, amount)`` leg in order, all or nothing.

        If a leg fails, the legs the rail already confirmed are reversed on
        the rail, newest first, before the error propagates.  Their bookings
        go with the caller's SAVEPOINT.

        Returns:
            The legs that actually moved value (zero legs are skipped).
        """
        paid: list[tuple[UUID, Decimal]] = []
        try:
            for recipient_id, amount in legs:
                if self.disburse(lease, recipient_id, amount):
                    paid.append((recipient_id, amount))
        except Exception:
            for recipient_id, amount in reversed(paid):
                self._reverse(lease.lease_id, recipient_id, amount)
            raise
        return paid

    def _reverse(self, lease_id: int, recipient_id: UUID, amount: Decimal) -> None:
        fields = {
            "lease_id": lease_id,
            "recipient_id": str(recipient_id),
            "amount": str(amount),
        }
        if self._rail.reverse(recipient_id, amount, lease_id=lease_id):
            logger.warning("custody_payout_reversed", extra=fields)
        else:
            logger.critical("custody_reversal_failed", extra=fields)

    def reconcile(self, lease: Lease) -> Decimal:
        """
        Check the custody books of one lease against its funded amount.

        Returns:
            The current balance.

        Raises:
            CustodyInvariantError: payouts exceed what was funded.
        """
        deposited, paid_out = self._totals(lease.lease_id)
        if deposited != lease.funded_amount or paid_out > deposited:
            raise CustodyInvariantError(lease.lease_id, deposited - paid_out, paid_out)
        return deposited - paid_out

    def reject_unsolicited(self, sender_id: UUID, amount: Decimal) -> None:
        """Value offered to escrow outside of funding is always refused."""
        logger.warning(
            "unsolicited_payment_rejected",
            extra={"sender_id": str(sender_id), "amount": str(amount)},
        )
        raise UnsolicitedPaymentError(str(sender_id), amount)
