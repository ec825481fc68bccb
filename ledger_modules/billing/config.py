"""
Billing Configuration Schema (``ledger_modules.billing.config``).

Overpayment policy and document number prefixes.  The default allows a
payment to push ``amount_paid`` past ``total_amount``; the excess stays
visible as a negative ``amount_due`` and is never clamped.
"""

from dataclasses import dataclass
from typing import Self

from ledger_config.schema import BillingSettings
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.billing.config")


@dataclass
class BillingConfig:
    allow_overpayment: bool = True
    invoice_number_prefix: str = "INV"
    bill_number_prefix: str = "BILL"

    def __post_init__(self):
        if not self.invoice_number_prefix.strip():
            raise ValueError("invoice_number_prefix cannot be empty")
        if not self.bill_number_prefix.strip():
            raise ValueError("bill_number_prefix cannot be empty")
        logger.debug(
            "billing_config_initialized",
            extra={
                "allow_overpayment": self.allow_overpayment,
                "invoice_number_prefix": self.invoice_number_prefix,
                "bill_number_prefix": self.bill_number_prefix,
            },
        )

    @classmethod
    def from_settings(cls, settings: BillingSettings) -> Self:
        return cls(
            allow_overpayment=settings.allow_overpayment,
            invoice_number_prefix=settings.invoice_number_prefix,
            bill_number_prefix=settings.bill_number_prefix,
        )
