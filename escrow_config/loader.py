"""
Configuration Loader (``escrow_config.loader``).

Responsibility
--------------
Loads a configuration set's ``root.yaml`` and parses it into the typed
``escrow_config.schema`` dataclasses.  Callers use
``escrow_config.get_active_config()``; this module is its tooling.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from escrow_config.schema import EscrowConfig, EvidencePolicy, LoggingConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")
    return data


def _int(data: dict[str, Any], key: str) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' must be an integer, got {value!r}")
    return value


def parse_evidence(data: dict[str, Any] | None) -> EvidencePolicy:
    if not data:
        return EvidencePolicy()
    defaults = EvidencePolicy()
    return EvidencePolicy(
        max_photo_references=_int(data, "max_photo_references")
        if "max_photo_references" in data
        else defaults.max_photo_references,
        max_reference_length=_int(data, "max_reference_length")
        if "max_reference_length" in data
        else defaults.max_reference_length,
    )


def parse_logging(data: dict[str, Any] | None) -> LoggingConfig:
    if not data:
        return LoggingConfig()
    return LoggingConfig(level=str(data.get("level", "INFO")).upper())


def parse_config(data: dict[str, Any]) -> EscrowConfig:
    """Build an ``EscrowConfig`` from a parsed ``root.yaml`` mapping."""
    return EscrowConfig(
        config_id=str(data["config_id"]),
        version=_int(data, "version"),
        currency=str(data["currency"]),
        amount_decimal_places=_int(data, "amount_decimal_places"),
        default_claim_window_seconds=_int(data, "default_claim_window_seconds"),
        evidence=parse_evidence(data.get("evidence")),
        logging=parse_logging(data.get("logging")),
        checksum=compute_checksum(data),
    )


def load_config_set(set_dir: Path) -> EscrowConfig:
    return parse_config(load_yaml_file(set_dir / "root.yaml"))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
