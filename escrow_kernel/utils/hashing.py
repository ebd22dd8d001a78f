"""
Deterministic hashing utilities.

All hashing in the escrow kernel must be deterministic and reproducible so
that the lease event chain can be re-verified from stored rows alone.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    """
    JSON serializer for Decimal, datetime, date and UUID.

    Raises:
        TypeError: If object type is not supported.
    """
    if isinstance(obj, Decimal):
        # Trailing zeros removed so 0.30 and 0.3 hash alike
        return str(obj.normalize())
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: dict | list | Any) -> str:
    """
    Convert data to canonical JSON string: sorted keys, no whitespace,
    consistent handling of Decimal, datetime and UUID.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def to_json_payload(data: dict) -> dict:
    """Round-trip ``data`` through canonical JSON so it can be stored in a JSON column."""
    return json.loads(canonicalize_json(data))


def hash_payload(payload: dict) -> str:
    """Hex-encoded SHA-256 of the canonical JSON form of ``payload``."""
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hash_lease_event(
    lease_id: int,
    event_type: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Compute the chained hash of a lease event.

    The hash covers the lease, the event type, the payload hash and the
    previous event's hash, so altering or removing any stored event breaks
    every hash after it.
    """
    components = [
        str(lease_id),
        event_type,
        payload_hash,
        prev_hash or "GENESIS",
    ]
    data = "|".join(components)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
