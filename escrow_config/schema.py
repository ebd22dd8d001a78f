"""
Configuration schema (``escrow_config.schema``).

Frozen dataclasses describing one escrow configuration set as it appears
in YAML.  They carry no behaviour; ``loader`` builds them, ``validator``
checks them and ``bridges`` turns them into kernel inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class EvidencePolicy:
    """Bounds on opaque evidence references."""

    max_photo_references: int = 64
    max_reference_length: int = 128


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class EscrowConfig:
    """
    One loaded configuration set.

    ``checksum`` is the SHA-256 of the canonical JSON form of the source
    YAML and identifies the set for audit.
    """

    config_id: str
    version: int
    currency: str
    amount_decimal_places: int
    default_claim_window_seconds: int
    evidence: EvidencePolicy = field(default_factory=EvidencePolicy)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""
