"""Currency -- ISO 4217 minor-unit table and precision checks.

Amounts are exact decimals carrying as many fraction digits as the
currency's minor units allow: two for USD/EUR, zero for UGX/RWF/JPY,
three for the dinars.  The table is a lookup, not logic; callers hand the
engine amounts that are already parsed into ``Decimal``.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar

from ledger_kernel.exceptions import InvalidCurrencyError


@dataclass(frozen=True)
class CurrencyInfo:
    """A single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def quantum(self) -> Decimal:
        """Smallest representable amount, usable with ``Decimal.quantize``."""
        return Decimal(1).scaleb(-self.decimal_places)


class CurrencyRegistry:
    """ISO 4217 codes with their minor units."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        info.code: info
        for info in (
            CurrencyInfo("USD", 2, "US Dollar"),
            CurrencyInfo("EUR", 2, "Euro"),
            CurrencyInfo("GBP", 2, "Pound Sterling"),
            CurrencyInfo("CHF", 2, "Swiss Franc"),
            CurrencyInfo("CAD", 2, "Canadian Dollar"),
            CurrencyInfo("AUD", 2, "Australian Dollar"),
            CurrencyInfo("CNY", 2, "Yuan Renminbi"),
            CurrencyInfo("INR", 2, "Indian Rupee"),
            CurrencyInfo("KES", 2, "Kenyan Shilling"),
            CurrencyInfo("TZS", 2, "Tanzanian Shilling"),
            CurrencyInfo("NGN", 2, "Naira"),
            CurrencyInfo("GHS", 2, "Ghana Cedi"),
            CurrencyInfo("ZAR", 2, "Rand"),
            CurrencyInfo("JPY", 0, "Yen"),
            CurrencyInfo("KRW", 0, "Won"),
            CurrencyInfo("UGX", 0, "Uganda Shilling"),
            CurrencyInfo("RWF", 0, "Rwanda Franc"),
            CurrencyInfo("BIF", 0, "Burundi Franc"),
            CurrencyInfo("XAF", 0, "CFA Franc BEAC"),
            CurrencyInfo("XOF", 0, "CFA Franc BCEAO"),
            CurrencyInfo("BHD", 3, "Bahraini Dinar"),
            CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
            CurrencyInfo("OMR", 3, "Rial Omani"),
            CurrencyInfo("TND", 3, "Tunisian Dinar"),
        )
    }

    @classmethod
    def is_valid(cls, code: str) -> bool:
        return isinstance(code, str) and code.upper().strip() in cls._CURRENCIES

    @classmethod
    def validate(cls, code: str) -> str:
        """Normalize a code, raising InvalidCurrencyError if unknown."""
        if not cls.is_valid(code):
            raise InvalidCurrencyError(str(code))
        return code.upper().strip()

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo:
        return cls._CURRENCIES[cls.validate(code)]

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        return cls.get_info(code).decimal_places

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        return frozenset(cls._CURRENCIES)


def round_money(amount: Decimal, currency: str, rounding: str = ROUND_HALF_UP) -> Decimal:
    """Round ``amount`` to the minor units of ``currency``."""
    return amount.quantize(CurrencyRegistry.get_info(currency).quantum, rounding=rounding)


def fits_minor_units(amount: Decimal, currency: str) -> bool:
    """True when ``amount`` carries no more fraction digits than the currency allows."""
    return round_money(amount, currency) == amount
