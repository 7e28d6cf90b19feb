"""Currency -- ISO 4217 registry with minor-unit exponents."""

from dataclasses import dataclass
from typing import ClassVar

from restoration_kernel.exceptions import InvalidCurrencyError


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def minor_units_per_major(self) -> int:
        """1 for zero-decimal currencies, 100 for USD, 1000 for KWD."""
        return 10 ** self.decimal_places


class CurrencyRegistry:
    """Registry of ISO 4217 currencies accepted for project amounts."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        info.code: info
        for info in (
            CurrencyInfo("USD", 2, "US Dollar"),
            CurrencyInfo("CAD", 2, "Canadian Dollar"),
            CurrencyInfo("MXN", 2, "Mexican Peso"),
            CurrencyInfo("EUR", 2, "Euro"),
            CurrencyInfo("GBP", 2, "Pound Sterling"),
            CurrencyInfo("CHF", 2, "Swiss Franc"),
            CurrencyInfo("SEK", 2, "Swedish Krona"),
            CurrencyInfo("NOK", 2, "Norwegian Krone"),
            CurrencyInfo("DKK", 2, "Danish Krone"),
            CurrencyInfo("PLN", 2, "Polish Zloty"),
            CurrencyInfo("AUD", 2, "Australian Dollar"),
            CurrencyInfo("NZD", 2, "New Zealand Dollar"),
            CurrencyInfo("SGD", 2, "Singapore Dollar"),
            CurrencyInfo("HKD", 2, "Hong Kong Dollar"),
            CurrencyInfo("CNY", 2, "Yuan Renminbi"),
            CurrencyInfo("INR", 2, "Indian Rupee"),
            CurrencyInfo("BRL", 2, "Brazilian Real"),
            CurrencyInfo("ZAR", 2, "South African Rand"),
            CurrencyInfo("AED", 2, "UAE Dirham"),
            # Zero decimal currencies
            CurrencyInfo("JPY", 0, "Japanese Yen"),
            CurrencyInfo("KRW", 0, "South Korean Won"),
            CurrencyInfo("CLP", 0, "Chilean Peso"),
            CurrencyInfo("ISK", 0, "Icelandic Krona"),
            CurrencyInfo("VND", 0, "Vietnamese Dong"),
            # Three decimal currencies
            CurrencyInfo("BHD", 3, "Bahraini Dinar"),
            CurrencyInfo("JOD", 3, "Jordanian Dinar"),
            CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
            CurrencyInfo("OMR", 3, "Omani Rial"),
            CurrencyInfo("TND", 3, "Tunisian Dinar"),
        )
    }

    @classmethod
    def is_valid(cls, code: str) -> bool:
        return bool(code) and code.upper() in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        return cls._CURRENCIES.get(code.upper()) if code else None

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        """Decimal places for a currency; raises InvalidCurrencyError if unknown."""
        info = cls.get_info(code)
        if info is None:
            raise InvalidCurrencyError(code)
        return info.decimal_places

    @classmethod
    def validate(cls, code: str) -> str:
        """Return the normalized (uppercase) code or raise InvalidCurrencyError."""
        normalized = code.upper().strip() if isinstance(code, str) else ""
        if normalized not in cls._CURRENCIES:
            raise InvalidCurrencyError(str(code))
        return normalized

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        return frozenset(cls._CURRENCIES)
