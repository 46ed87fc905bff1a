"""
distribution_config -- single public entrypoint for run configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``load_config()``. A YAML file supplies defaults; keyword overrides
    (typically parsed CLI arguments) win over file values.

Failure modes:
    - ``ConfigurationError`` -- missing file, malformed YAML, unknown key,
      missing required key, or invalid value.
    - ``InvalidConversionRateError`` -- rate is zero, negative, or not a number.

Audit relevance:
    Every successful ``load_config()`` call emits a
    ``DISTRIBUTION_CONFIG_TRACE`` log entry containing the checksum and the
    effective settings, tying each ledger row back to the exact
    configuration of the run that wrote it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from distribution_config.loader import (
    compute_checksum,
    load_yaml_file,
    merge_overrides,
    parse_config,
)
from distribution_config.schema import DistributionConfig
from distribution_kernel.logging_config import get_logger

_logger = get_logger("config")


def load_config(path: Path | str | None = None, **overrides: Any) -> DistributionConfig:
    """Load, merge, and validate the configuration for one run.

    Args:
        path: Optional YAML file. When None, only ``overrides`` are used.
        **overrides: Per-key values that replace file values. ``None``
            values are ignored so unset CLI flags do not mask the file.

    Returns:
        DistributionConfig -- frozen and validated.
    """
    data = load_yaml_file(Path(path)) if path is not None else {}
    config = parse_config(merge_overrides(data, overrides))

    settings = config.as_dict()
    _logger.info(
        "DISTRIBUTION_CONFIG_TRACE",
        extra={
            "trace_type": "DISTRIBUTION_CONFIG_TRACE",
            "config_path": str(path) if path is not None else None,
            "checksum": compute_checksum(settings),
            "settings": settings,
        },
    )
    return config


__all__ = [
    "DistributionConfig",
    "compute_checksum",
    "load_config",
]
