"""
ledger_config -- single public entrypoint for engine configuration.

Responsibility:
    ``get_active_config()`` is the only way services obtain configuration.
    It loads a YAML configuration set (the packaged ``sets/default.yaml``
    unless a path is given), validates it into frozen dataclasses and
    records which configuration governed the run.

Architecture position:
    Configuration -- sits above ``ledger_kernel`` and beside
    ``ledger_modules``.  The kernel never imports from here; module config
    classes consume the returned settings through ``from_settings``.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``KeyError`` / ``ValueError`` -- schema validation failures.

Audit relevance:
    Every successful call emits a ``LEDGER_CONFIG_TRACE`` log entry with the
    config id, version and SHA-256 checksum of the source document.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.loader import load_yaml_file, parse_config
from ledger_config.schema import (
    BillingSettings,
    LedgerEngineConfig,
    LoggingSettings,
    VoucherSettings,
)

_logger = logging.getLogger("ledger_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> LedgerEngineConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to ``sets/default.yaml``.

    Returns:
        A validated, frozen LedgerEngineConfig.  Not cached; callers hold
        the returned object for as long as they need it.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(path))

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(path),
            "base_currency": config.base_currency,
            "enabled_voucher_types": list(config.vouchers.enabled_types),
        },
    )
    return config


__all__ = [
    "BillingSettings",
    "DEFAULT_CONFIG_PATH",
    "LedgerEngineConfig",
    "LoggingSettings",
    "VoucherSettings",
    "get_active_config",
]
