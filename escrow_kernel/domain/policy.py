"""
Escrow policy values (``escrow_kernel.domain.policy``).

Kernel-side, frozen view of the operational settings the services need.
Built from configuration by ``escrow_config.bridges``; the kernel never
reads configuration files itself.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class EscrowPolicy:
    """Operational limits applied at the lease boundary.

    These bound caller input (precision, evidence list sizes, default
    window); they never relax a kernel invariant.
    """
    currency: str = "USD"
    amount_decimal_places: int = 2
    default_claim_window_seconds: int = 3 * 24 * 60 * 60
    max_photo_references: int = 64
    max_reference_length: int = 128

    def __post_init__(self) -> None:
        if not (0 <= self.amount_decimal_places <= 9):
            raise ValueError(
                f"amount_decimal_places must be 0..9, got {self.amount_decimal_places}"
            )
        if self.default_claim_window_seconds < 0:
            raise ValueError("default_claim_window_seconds must not be negative")
        if self.max_photo_references < 1:
            raise ValueError("max_photo_references must be at least 1")
        if self.max_reference_length < 1:
            raise ValueError("max_reference_length must be at least 1")


DEFAULT_POLICY = EscrowPolicy()
