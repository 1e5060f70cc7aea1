from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CurrencyDetails:
    currency: str
    decimals: int
    before_decimal: Optional[str] = None
    after_decimal: Optional[str] = None


# Major/minor unit names are only listed where invoices spell them out.
CURRENCIES: dict[str, CurrencyDetails] = {
    "AED": CurrencyDetails("United Arab Emirates Dirham", 2, "Dirham", "Fils"),
    "SAR": CurrencyDetails("Saudi Riyal", 2, "Riyal", "Halala"),
    "QAR": CurrencyDetails("Qatari Riyal", 2, "Riyal", "Dirham"),
    "OMR": CurrencyDetails("Omani Rial", 3, "Rial", "Baisa"),
    "KWD": CurrencyDetails("Kuwaiti Dinar", 3, "Dinar", "Fils"),
    "BHD": CurrencyDetails("Bahraini Dinar", 3, "Dinar", "Fils"),
    "JOD": CurrencyDetails("Jordanian Dinar", 3, "Dinar", "Fils"),
    "EGP": CurrencyDetails("Egyptian Pound", 2, "Pound", "Piastre"),
    "INR": CurrencyDetails("Indian Rupee", 2, "Rupee", "Paisa"),
    "PKR": CurrencyDetails("Pakistani Rupee", 2, "Rupee", "Paisa"),
    "USD": CurrencyDetails("United States Dollar", 2),
    "EUR": CurrencyDetails("Euro", 2),
    "GBP": CurrencyDetails("British Pound", 2),
    "CHF": CurrencyDetails("Swiss Franc", 2),
    "CAD": CurrencyDetails("Canadian Dollar", 2),
    "AUD": CurrencyDetails("Australian Dollar", 2),
    "JPY": CurrencyDetails("Japanese Yen", 0, "Yen"),
    "KRW": CurrencyDetails("South Korean Won", 0, "Won"),
}

DEFAULT_DECIMALS = 2


def fetch_currency_details(currency: str | None) -> CurrencyDetails | None:
    code = (currency or "").strip().upper()
    if not code:
        return None
    return CURRENCIES.get(code)


def currency_decimals(currency: str | None) -> int:
    details = fetch_currency_details(currency)
    if details is None:
        return DEFAULT_DECIMALS
    return details.decimals
