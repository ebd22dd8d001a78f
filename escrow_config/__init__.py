"""
escrow_config -- single public entrypoint for escrow configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration sits above ``escrow_kernel``.  The kernel MUST NEVER
    import from ``escrow_config``; ``escrow_config.bridges`` translates a
    loaded set into kernel inputs (``EscrowPolicy``, logging level).

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - Validation: a set with errors is never returned.
    - Checksum pinning: when an APPROVED_FINGERPRINT file exists beside
      ``root.yaml``, the loaded checksum must match it.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the given name.
    - ``ValueError`` -- schema or validation failures.
    - ``ConfigIntegrityError`` -- checksum mismatch against a pin file.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``ESCROW_CONFIG_TRACE`` log entry with the set id, version and
    checksum.
"""

from __future__ import annotations

from pathlib import Path

from escrow_config.integrity import ConfigIntegrityError, verify_fingerprint_pin
from escrow_config.loader import compute_checksum, load_config_set
from escrow_config.schema import EscrowConfig, EvidencePolicy, LoggingConfig
from escrow_config.validator import validate_configuration
from escrow_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    name: str = "default",
    config_dir: Path | None = None,
) -> EscrowConfig:
    """The ONLY public configuration entrypoint.

    Args:
        name: Configuration set name (a subdirectory of the sets
            directory holding ``root.yaml``).
        config_dir: Override path to the configuration sets directory.
            Defaults to escrow_config/sets/.

    Returns:
        A validated, frozen ``EscrowConfig``.

    Raises:
        FileNotFoundError: If the named set does not exist.
        ValueError: If configuration validation fails.
        ConfigIntegrityError: If a pin file exists and does not match.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    set_dir = sets_dir / name
    if not (set_dir / "root.yaml").is_file():
        raise FileNotFoundError(f"Configuration set '{name}' not found in {sets_dir}")

    config = load_config_set(set_dir)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("config_validation_warning", extra={"detail": warning})

    verify_fingerprint_pin(
        config_id=config.config_id,
        checksum=config.checksum,
        config_dir=set_dir,
    )

    _logger.info(
        "ESCROW_CONFIG_TRACE",
        extra={
            "trace_type": "ESCROW_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "currency": config.currency,
        },
    )

    return config


__all__ = [
    "ConfigIntegrityError",
    "EscrowConfig",
    "EvidencePolicy",
    "LoggingConfig",
    "compute_checksum",
    "get_active_config",
]
