"""
Configuration bridges (``escrow_config.bridges``).

Translate a loaded ``EscrowConfig`` into the kernel's own input types.
The kernel never imports ``escrow_config``; hosts call these functions and
pass the results in.
"""

from __future__ import annotations

import logging

from escrow_config.schema import EscrowConfig
from escrow_kernel.domain.policy import EscrowPolicy
from escrow_kernel.logging_config import configure_logging


def build_escrow_policy(config: EscrowConfig) -> EscrowPolicy:
    """Kernel policy values for ``LeaseRegistry`` and ``LeaseService``."""
    return EscrowPolicy(
        currency=config.currency,
        amount_decimal_places=config.amount_decimal_places,
        default_claim_window_seconds=config.default_claim_window_seconds,
        max_photo_references=config.evidence.max_photo_references,
        max_reference_length=config.evidence.max_reference_length,
    )


def log_level(config: EscrowConfig) -> int:
    return logging.getLevelName(config.logging.level)


def configure_kernel_logging(config: EscrowConfig, **kwargs) -> None:
    """Configure kernel logging at the configured level (idempotent)."""
    configure_logging(level=log_level(config), **kwargs)
