"""
Evidence references (``escrow_kernel.domain.evidence``).

Photo and attestation references are opaque content identifiers.  The
kernel never interprets them; it only checks that they are non-empty
strings of bounded length and that a photo list is a bounded, ordered
sequence.  The stored list is always a fresh copy of the caller's input.
"""

from collections.abc import Iterable

from escrow_kernel.exceptions import InvalidEvidenceReferenceError


def validate_reference(field: str, value: str, max_length: int) -> str:
    if not isinstance(value, str):
        raise InvalidEvidenceReferenceError(field, f"expected str, got {type(value).__name__}")
    if not value.strip():
        raise InvalidEvidenceReferenceError(field, "must not be empty")
    if len(value) > max_length:
        raise InvalidEvidenceReferenceError(field, f"longer than {max_length} characters")
    return value


def copy_photo_references(
    photo_cids: Iterable[str],
    max_count: int,
    max_length: int,
) -> list[str]:
    """
    Validated, independent copy of ``photo_cids`` in the caller's order.

    Later changes to the caller's sequence never reach the copy.
    """
    if isinstance(photo_cids, (str, bytes)):
        raise InvalidEvidenceReferenceError("photo_cids", "expected a sequence of references")
    copied = [
        validate_reference(f"photo_cids[{i}]", cid, max_length)
        for i, cid in enumerate(photo_cids)
    ]
    if len(copied) > max_count:
        raise InvalidEvidenceReferenceError(
            "photo_cids", f"more than {max_count} references"
        )
    return copied
