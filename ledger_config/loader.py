"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Reads one YAML configuration file and parses it into the frozen
``ledger_config.schema`` dataclasses.  Runtime callers go through
``ledger_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Required keys missing from the file raise ``KeyError``; values of the
  wrong type or outside their allowed set raise ``ValueError``.  Optional
  sections fall back to the schema defaults.
* ``compute_checksum`` is deterministic for identical documents.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    BillingSettings,
    LedgerEngineConfig,
    LoggingSettings,
    VoucherSettings,
)
from ledger_kernel.domain.currency import CurrencyRegistry

_VOUCHER_TYPES = frozenset({"PAYMENT", "RECEIPT", "DEPOSIT", "CONTRA", "JOURNAL"})
_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML file as a dict.

    Raises:
        FileNotFoundError: the file does not exist.
        yaml.YAMLError: the file is not valid YAML.
        ValueError: the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML document must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _require_bool(section: str, key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{section}.{key} must be a boolean, got {value!r}")
    return value


def _require_str(section: str, key: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{section}.{key} must be a non-empty string, got {value!r}")
    return value.strip()


def parse_billing(data: dict[str, Any]) -> BillingSettings:
    defaults = BillingSettings()
    return BillingSettings(
        allow_overpayment=_require_bool(
            "billing", "allow_overpayment", data.get("allow_overpayment", defaults.allow_overpayment)
        ),
        invoice_number_prefix=_require_str(
            "billing", "invoice_number_prefix",
            data.get("invoice_number_prefix", defaults.invoice_number_prefix),
        ),
        bill_number_prefix=_require_str(
            "billing", "bill_number_prefix", data.get("bill_number_prefix", defaults.bill_number_prefix)
        ),
    )


def parse_vouchers(data: dict[str, Any]) -> VoucherSettings:
    defaults = VoucherSettings()
    enabled = data.get("enabled_types", list(defaults.enabled_types))
    if not isinstance(enabled, list) or not enabled:
        raise ValueError("vouchers.enabled_types must be a non-empty list")
    unknown = set(enabled) - _VOUCHER_TYPES
    if unknown:
        raise ValueError(f"vouchers.enabled_types has unknown types: {sorted(unknown)}")

    prefixes = dict(defaults.number_prefixes)
    overrides = data.get("number_prefixes", {})
    if not isinstance(overrides, dict):
        raise ValueError("vouchers.number_prefixes must be a mapping")
    for voucher_type, prefix in overrides.items():
        if voucher_type not in _VOUCHER_TYPES:
            raise ValueError(f"vouchers.number_prefixes has unknown type: {voucher_type}")
        prefixes[voucher_type] = _require_str("vouchers.number_prefixes", voucher_type, prefix)

    return VoucherSettings(enabled_types=tuple(dict.fromkeys(enabled)), number_prefixes=prefixes)


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", LoggingSettings().level)).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level is not a logging level: {level}")
    return LoggingSettings(level=level)


def parse_config(data: dict[str, Any]) -> LedgerEngineConfig:
    """
    Build a LedgerEngineConfig from a parsed YAML document.

    Raises:
        KeyError: ``config_id`` or ``base_currency`` missing.
        ValueError: a value fails validation.
        InvalidCurrencyError: ``base_currency`` is not a known ISO 4217 code.
    """
    for section in ("billing", "vouchers", "logging"):
        if not isinstance(data.get(section, {}), dict):
            raise ValueError(f"{section} must be a mapping")
    return LedgerEngineConfig(
        config_id=_require_str("root", "config_id", data["config_id"]),
        version=int(data.get("version", 1)),
        base_currency=CurrencyRegistry.validate(data["base_currency"]),
        billing=parse_billing(data.get("billing", {})),
        vouchers=parse_vouchers(data.get("vouchers", {})),
        logging=parse_logging(data.get("logging", {})),
        checksum=compute_checksum(data),
    )
