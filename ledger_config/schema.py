"""
Configuration schema (``ledger_config.schema``).

Frozen dataclasses produced by the loader.  They hold plain values only
(strings, booleans, Decimals); module config classes translate them into
their own enums and defaults via ``from_settings``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class BillingSettings:
    allow_overpayment: bool = True
    invoice_number_prefix: str = "INV"
    bill_number_prefix: str = "BILL"


@dataclass(frozen=True)
class VoucherSettings:
    enabled_types: tuple[str, ...] = ("PAYMENT", "RECEIPT", "DEPOSIT")
    number_prefixes: dict[str, str] = field(
        default_factory=lambda: {
            "PAYMENT": "PV",
            "RECEIPT": "RV",
            "DEPOSIT": "DV",
            "CONTRA": "CV",
            "JOURNAL": "JV",
        }
    )


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerEngineConfig:
    """
    The loaded, validated configuration.

    Contract:
        ``checksum`` is the SHA-256 of the canonical JSON form of the source
        document; identical files always produce identical checksums.
    """

    config_id: str
    version: int
    base_currency: str
    billing: BillingSettings
    vouchers: VoucherSettings
    logging: LoggingSettings
    checksum: str
