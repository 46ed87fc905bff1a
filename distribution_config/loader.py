"""
Configuration Loader (``distribution_config.loader``).

Responsibility
--------------
Loads a YAML configuration file, merges command-line overrides on top, and
parses the result into a frozen ``DistributionConfig``.

Invariants enforced
-------------------
* Unknown keys are rejected; a typo never silently falls back to a default.
* Required keys (``bids_csv``, ``transactions_csv``, ``dollars_per_unit``)
  must be present after overrides are applied.
* ``dollars_per_unit`` is parsed to a positive Decimal, never a float.
* ``compute_checksum`` produces a deterministic SHA-256 hash for the
  configuration trace log.

Failure modes
-------------
* Missing YAML file  -> ``ConfigurationError`` (key ``config``).
* Malformed YAML  -> ``ConfigurationError`` (key ``config``).
* Invalid value  -> ``ConfigurationError`` / ``InvalidConversionRateError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from distribution_config.schema import DistributionConfig
from distribution_engines.reconciliation import ReplayMode
from distribution_kernel.domain.values import parse_conversion_rate
from distribution_kernel.exceptions import ConfigurationError

KNOWN_KEYS = frozenset(
    {
        "bids_csv",
        "transactions_csv",
        "dollars_per_unit",
        "dry_run",
        "replay_mode",
        "native_decimal_places",
        "backup_suffix",
        "json_rpc_url",
        "sender_keypair",
        "fee_payer",
        "executor",
        "log_level",
    }
)
REQUIRED_KEYS = ("bids_csv", "transactions_csv", "dollars_per_unit")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigurationError: if the file is missing, unreadable, not valid
            YAML, or its top level is not a mapping.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigurationError("config", f"cannot read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError("config", f"invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("config", f"{path} must contain a mapping at top level")
    return data


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "1"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "no", "0"):
        return False
    raise ConfigurationError(key, f"expected a boolean, got {value!r}")


def _parse_optional_str(key: str, value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(key, f"expected a non-empty string, got {value!r}")
    return value.strip()


def parse_config(data: dict[str, Any]) -> DistributionConfig:
    """
    Parse a ``DistributionConfig`` from a merged dict.

    Raises:
        ConfigurationError: unknown key, missing required key, or bad value.
        InvalidConversionRateError: non-positive or non-numeric rate.
    """
    unknown = sorted(set(data) - KNOWN_KEYS)
    if unknown:
        raise ConfigurationError(unknown[0], "unknown configuration key")
    for key in REQUIRED_KEYS:
        if data.get(key) in (None, ""):
            raise ConfigurationError(key, "required")

    try:
        replay_mode = ReplayMode(data.get("replay_mode", ReplayMode.BY_RECIPIENT))
    except ValueError as exc:
        choices = ", ".join(m.value for m in ReplayMode)
        raise ConfigurationError(
            "replay_mode", f"expected one of {choices}, got {data['replay_mode']!r}"
        ) from exc

    decimal_places = data.get("native_decimal_places", 9)
    if isinstance(decimal_places, bool) or not isinstance(decimal_places, int) or decimal_places < 0:
        raise ConfigurationError(
            "native_decimal_places", f"expected a non-negative integer, got {decimal_places!r}"
        )

    backup_suffix = data.get("backup_suffix", ".bak")
    if not isinstance(backup_suffix, str) or not backup_suffix:
        raise ConfigurationError("backup_suffix", "expected a non-empty string")

    log_level = str(data.get("log_level", "INFO")).upper()
    if log_level not in LOG_LEVELS:
        raise ConfigurationError("log_level", f"expected one of {', '.join(LOG_LEVELS)}, got {log_level!r}")

    return DistributionConfig(
        bids_csv=Path(data["bids_csv"]),
        transactions_csv=Path(data["transactions_csv"]),
        dollars_per_unit=parse_conversion_rate(data["dollars_per_unit"]),
        dry_run=_parse_bool("dry_run", data.get("dry_run", False)),
        replay_mode=replay_mode,
        native_decimal_places=decimal_places,
        backup_suffix=backup_suffix,
        json_rpc_url=_parse_optional_str("json_rpc_url", data.get("json_rpc_url")),
        sender_keypair=_parse_optional_str("sender_keypair", data.get("sender_keypair")),
        fee_payer=_parse_optional_str("fee_payer", data.get("fee_payer")),
        executor=_parse_optional_str("executor", data.get("executor")),
        log_level=log_level,
    )


def merge_overrides(data: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Overlay non-None overrides on file values."""
    merged = dict(data)
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
