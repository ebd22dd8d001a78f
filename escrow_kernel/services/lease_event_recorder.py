"""
LeaseEventRecorder -- append-only, hash-chained lease event log.

Responsibility:
    Writes one ``LeaseEvent`` row for every lifecycle fact (lease created,
    deposit funded, inspection submitted, claim raised, claim resolved,
    deposit finalized) and verifies the chain on demand.

Architecture position:
    Kernel > Services -- imperative shell, called by LeaseRegistry and
    LeaseService inside their SAVEPOINT.  A rolled-back operation leaves
    no event behind.

Invariants enforced:
    - Sequence monotonicity via SequenceService (never max+1).
    - Chain integrity: ``hash = H(lease_id | event_type | payload_hash |
      prev_hash)`` where prev_hash is the previous event's hash in global
      ``seq`` order.
    - Append-only: LeaseEvent rows are protected by ORM listeners.

Failure modes:
    - EventChainBrokenError: a stored payload, hash or link no longer
      matches its recomputed value.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from escrow_kernel.domain.clock import Clock, SystemClock
from escrow_kernel.domain.dtos import LeaseEventInfo
from escrow_kernel.exceptions import EventChainBrokenError
from escrow_kernel.logging_config import get_logger
from escrow_kernel.models.lease_event import LeaseEvent, LeaseEventType
from escrow_kernel.services.sequence_service import SequenceService
from escrow_kernel.utils.hashing import hash_lease_event, hash_payload, to_json_payload

logger = get_logger("services.lease_events")


def _to_info(event: LeaseEvent) -> LeaseEventInfo:
    return LeaseEventInfo(
        seq=event.seq,
        lease_id=event.lease_id,
        event_type=event.event_type,
        actor_id=event.actor_id,
        occurred_at=event.occurred_at,
        payload=dict(event.payload),
        hash=event.hash,
    )


class LeaseEventRecorder:
    """
    Records and validates lease lifecycle events.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT decide whether an event should happen; callers record
          facts after they have been applied.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self) -> str | None:
        last_event = self._session.execute(
            select(LeaseEvent)
            .order_by(LeaseEvent.seq.desc())
            .limit(1)
        ).scalar_one_or_none()

        return last_event.hash if last_event else None

    def _record(
        self,
        lease_id: int,
        event_type: LeaseEventType,
        actor_id: UUID,
        payload: dict[str, Any],
    ) -> LeaseEvent:
        seq = self._sequence_service.next_value(SequenceService.LEASE_EVENT)
        prev_hash = self._get_last_hash()

        stored_payload = to_json_payload(payload)
        payload_hash = hash_payload(stored_payload)
        event_hash = hash_lease_event(
            lease_id=lease_id,
            event_type=event_type.value,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
        )

        event = LeaseEvent(
            seq=seq,
            lease_id=lease_id,
            event_type=event_type.value,
            actor_id=actor_id,
            occurred_at=self._clock.now(),
            payload=stored_payload,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
            hash=event_hash,
        )
        self._session.add(event)
        self._session.flush()

        logger.info(
            "lease_event_recorded",
            extra={
                "lease_id": lease_id,
                "event_type": event_type.value,
                "seq": seq,
            },
        )
        return event

    # Domain-specific recording methods

    def record_lease_created(
        self,
        lease_id: int,
        landlord_id: UUID,
        tenant_id: UUID,
        deposit: Decimal,
        lease_end: datetime,
        actor_id: UUID,
    ) -> LeaseEvent:
        return self._record(
            lease_id,
            LeaseEventType.LEASE_CREATED,
            actor_id,
            {
                "landlord": landlord_id,
                "tenant": tenant_id,
                "deposit": deposit,
                "lease_end": lease_end,
            },
        )

    def record_deposit_funded(
        self,
        lease_id: int,
        tenant_id: UUID,
        amount: Decimal,
    ) -> LeaseEvent:
        return self._record(
            lease_id,
            LeaseEventType.DEPOSIT_FUNDED,
            tenant_id,
            {"tenant": tenant_id, "amount": amount},
        )

    def record_inspection_submitted(
        self,
        lease_id: int,
        inspector_id: UUID,
        submitted_at: datetime,
    ) -> LeaseEvent:
        """``inspector_id`` is whoever actually submitted, substitute or not."""
        return self._record(
            lease_id,
            LeaseEventType.INSPECTION_SUBMITTED,
            inspector_id,
            {"inspector": inspector_id, "submitted_at": submitted_at},
        )

    def record_claim_raised(
        self,
        lease_id: int,
        landlord_id: UUID,
        amount_requested: Decimal,
    ) -> LeaseEvent:
        return self._record(
            lease_id,
            LeaseEventType.CLAIM_RAISED,
            landlord_id,
            {"landlord": landlord_id, "amount_requested": amount_requested},
        )

    def record_claim_resolved(
        self,
        lease_id: int,
        tenant_amount: Decimal,
        landlord_amount: Decimal,
        actor_id: UUID,
    ) -> LeaseEvent:
        return self._record(
            lease_id,
            LeaseEventType.CLAIM_RESOLVED,
            actor_id,
            {"tenant_amount": tenant_amount, "landlord_amount": landlord_amount},
        )

    def record_deposit_finalized(
        self,
        lease_id: int,
        recipient_id: UUID,
        amount: Decimal,
        actor_id: UUID,
    ) -> LeaseEvent:
        """One event per non-zero payout leg."""
        return self._record(
            lease_id,
            LeaseEventType.DEPOSIT_FINALIZED,
            actor_id,
            {"recipient": recipient_id, "amount": amount},
        )

    # Queries

    def events_for(self, lease_id: int) -> tuple[LeaseEventInfo, ...]:
        """All events of one lease in the order they were recorded."""
        events = self._session.execute(
            select(LeaseEvent)
            .where(LeaseEvent.lease_id == lease_id)
            .order_by(LeaseEvent.seq)
        ).scalars().all()
        return tuple(_to_info(e) for e in events)

    def validate_chain(self) -> bool:
        """
        Validate the entire lease event chain.

        Postconditions:
            - Returns ``True`` only if every stored payload hashes to its
              ``payload_hash``, every ``hash`` matches its recomputed value
              and every ``prev_hash`` matches its predecessor's ``hash``.

        Raises:
            EventChainBrokenError: at the first event that fails.
        """
        events = self._session.execute(
            select(LeaseEvent).order_by(LeaseEvent.seq)
        ).scalars().all()

        if not events:
            return True

        if events[0].prev_hash is not None:
            logger.critical("lease_event_chain_broken", extra={"seq": events[0].seq})
            raise EventChainBrokenError(events[0].seq, "GENESIS", events[0].prev_hash)

        for i, event in enumerate(events):
            payload_hash = hash_payload(event.payload)
            if payload_hash != event.payload_hash:
                logger.critical("lease_event_chain_broken", extra={"seq": event.seq})
                raise EventChainBrokenError(event.seq, payload_hash, event.payload_hash)

            expected_hash = hash_lease_event(
                lease_id=event.lease_id,
                event_type=event.event_type,
                payload_hash=event.payload_hash,
                prev_hash=event.prev_hash,
            )
            if event.hash != expected_hash:
                logger.critical("lease_event_chain_broken", extra={"seq": event.seq})
                raise EventChainBrokenError(event.seq, expected_hash, event.hash)

            if i > 0 and event.prev_hash != events[i - 1].hash:
                logger.critical("lease_event_chain_broken", extra={"seq": event.seq})
                raise EventChainBrokenError(
                    event.seq,
                    events[i - 1].hash,
                    event.prev_hash or "None",
                )

        logger.info("lease_event_chain_valid", extra={"event_count": len(events)})
        return True
