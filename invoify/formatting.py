from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from num2words import num2words

from .currencies import currency_decimals, fetch_currency_details


def to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).replace(",", "").strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a number: {value!r}") from exc


def quantize(value: Decimal, decimals: int) -> Decimal:
    exponent = Decimal(1).scaleb(-decimals)
    return value.quantize(exponent, rounding=ROUND_HALF_UP)


def format_number_with_commas(value: Any, decimals: int = 2) -> str:
    """1234.5 -> '1,234.50'"""
    amount = quantize(to_decimal(value), decimals)
    return f"{amount:,.{decimals}f}"


def format_amount(value: Any, currency: str | None) -> str:
    decimals = currency_decimals(currency)
    code = (currency or "").strip().upper()
    formatted = format_number_with_commas(value, decimals)
    return f"{formatted} {code}".strip()


def _literal_decimals(amount: Decimal) -> int:
    exponent = amount.normalize().as_tuple().exponent
    if not isinstance(exponent, int):
        return 0
    return max(0, -exponent)


def _words(number: int) -> str:
    return num2words(number, lang="en").replace(",", "")


def format_price_to_words(price: Any, currency: str | None) -> str:
    """Spell out an amount, e.g. 1250.75 AED -> 'One Thousand Two Hundred And Fifty Dirham and seventy-five Fils'.

    Unknown currencies infer the decimal count from the amount itself and
    fall back to 'point <fraction>' phrasing.
    """
    amount = to_decimal(price)
    details = fetch_currency_details(currency)

    before_decimal: str | None = None
    after_decimal: str | None = None
    if details is not None:
        decimals = details.decimals
        before_decimal = details.before_decimal
        after_decimal = details.after_decimal
    else:
        decimals = _literal_decimals(amount)

    rounded = quantize(amount, decimals)
    negative = rounded < 0
    rounded = abs(rounded)

    integer_part = int(rounded)
    fractional_part = int((rounded - integer_part) * (10 ** decimals))

    if integer_part == 0 and fractional_part == 0:
        return "Zero"

    result = _words(integer_part).title()
    if negative:
        result = f"Minus {result}"

    if before_decimal is not None:
        result += f" {before_decimal}"

    if fractional_part > 0:
        fractional_words = _words(fractional_part)
        if after_decimal is not None:
            result += f" and {fractional_words} {after_decimal}"
        else:
            result += f" point {fractional_words}"

    return result
