"""
Voucher Configuration Schema (``ledger_modules.vouchers.config``).

Which voucher types are enabled and how their numbers are prefixed.
CONTRA and JOURNAL are opt-in.  Loaded at runtime via
``ledger_config.get_active_config()`` and ``VoucherConfig.from_settings``.

Failure modes
-------------
* ``ValueError`` at construction if an enabled type has no number prefix.
"""

from dataclasses import dataclass, field
from typing import Self

from ledger_config.schema import VoucherSettings
from ledger_kernel.logging_config import get_logger
from ledger_modules.vouchers.models import VoucherType

logger = get_logger("modules.vouchers.config")


@dataclass
class VoucherConfig:
    enabled_types: frozenset[VoucherType] = field(
        default_factory=lambda: frozenset(
            {VoucherType.PAYMENT, VoucherType.RECEIPT, VoucherType.DEPOSIT}
        )
    )
    number_prefixes: dict[VoucherType, str] = field(
        default_factory=lambda: {
            VoucherType.PAYMENT: "PV",
            VoucherType.RECEIPT: "RV",
            VoucherType.DEPOSIT: "DV",
            VoucherType.CONTRA: "CV",
            VoucherType.JOURNAL: "JV",
        }
    )

    def __post_init__(self):
        missing = [t.value for t in self.enabled_types if not self.number_prefixes.get(t)]
        if missing:
            raise ValueError(f"no number prefix for enabled voucher types: {sorted(missing)}")
        logger.debug(
            "voucher_config_initialized",
            extra={"enabled_types": sorted(t.value for t in self.enabled_types)},
        )

    @classmethod
    def from_settings(cls, settings: VoucherSettings) -> Self:
        return cls(
            enabled_types=frozenset(VoucherType(t) for t in settings.enabled_types),
            number_prefixes={VoucherType(k): v for k, v in settings.number_prefixes.items()},
        )

    def is_enabled(self, voucher_type: VoucherType) -> bool:
        return voucher_type in self.enabled_types
