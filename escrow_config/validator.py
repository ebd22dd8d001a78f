"""
Configuration Validator (``escrow_config.validator``).

Checks a parsed ``EscrowConfig`` for values the kernel cannot honour.
A configuration with errors is never handed to the kernel.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from escrow_config.schema import EscrowConfig

_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


@dataclass
class ConfigValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: EscrowConfig) -> ConfigValidationResult:
    result = ConfigValidationResult()

    _validate_currency(config, result)
    _validate_amounts(config, result)
    _validate_claim_window(config, result)
    _validate_evidence(config, result)
    _validate_logging(config, result)

    return result


def _validate_currency(config: EscrowConfig, result: ConfigValidationResult) -> None:
    code = config.currency
    if len(code) != 3 or not code.isalpha() or not code.isupper():
        result.add_error(f"currency must be a 3-letter ISO 4217 code, got {code!r}")


def _validate_amounts(config: EscrowConfig, result: ConfigValidationResult) -> None:
    if not (0 <= config.amount_decimal_places <= 9):
        result.add_error(
            f"amount_decimal_places must be 0..9, got {config.amount_decimal_places}"
        )


def _validate_claim_window(config: EscrowConfig, result: ConfigValidationResult) -> None:
    seconds = config.default_claim_window_seconds
    if seconds < 0:
        result.add_error(f"default_claim_window_seconds must not be negative, got {seconds}")
    elif seconds == 0:
        result.add_warning("default_claim_window_seconds is 0: leases get no grace period")


def _validate_evidence(config: EscrowConfig, result: ConfigValidationResult) -> None:
    if config.evidence.max_photo_references < 1:
        result.add_error("evidence.max_photo_references must be at least 1")
    if config.evidence.max_reference_length < 1:
        result.add_error("evidence.max_reference_length must be at least 1")


def _validate_logging(config: EscrowConfig, result: ConfigValidationResult) -> None:
    if config.logging.level not in _LOG_LEVELS:
        result.add_error(f"logging.level {config.logging.level!r} is not a logging level")
