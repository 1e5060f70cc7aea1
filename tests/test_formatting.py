from __future__ import annotations

from decimal import Decimal

import pytest

from invoify.currencies import currency_decimals, fetch_currency_details
from invoify.formatting import (
    format_amount,
    format_number_with_commas,
    format_price_to_words,
    quantize,
    to_decimal,
)


def test_format_number_with_commas() -> None:
    assert format_number_with_commas(1234.5) == "1,234.50"
    assert format_number_with_commas("1000000") == "1,000,000.00"
    assert format_number_with_commas(Decimal("0.125"), 2) == "0.13"


def test_format_amount_uses_currency_precision() -> None:
    assert format_amount(100, "USD") == "100.00 USD"
    assert format_amount("1234.5", "jpy") == "1,235 JPY"
    assert format_amount("1.2345", "KWD") == "1.235 KWD"


def test_unknown_currency_defaults() -> None:
    assert fetch_currency_details("XYZ") is None
    assert fetch_currency_details(None) is None
    assert currency_decimals("XYZ") == 2
    assert format_amount(5, "XYZ") == "5.00 XYZ"


def test_to_decimal_rejects_garbage() -> None:
    assert to_decimal("") == Decimal("0")
    assert to_decimal("1,250.75") == Decimal("1250.75")
    with pytest.raises(ValueError):
        to_decimal("abc")


def test_quantize_rounds_half_up() -> None:
    assert quantize(Decimal("2.5"), 0) == Decimal("3")
    assert quantize(Decimal("0.045"), 2) == Decimal("0.05")


def test_words_plain_currency() -> None:
    assert format_price_to_words(100, "USD") == "One Hundred"


def test_words_with_unit_names() -> None:
    assert format_price_to_words("1250.75", "AED") == (
        "One Thousand Two Hundred And Fifty Dirham and seventy-five Fils"
    )


def test_words_zero_decimal_currency() -> None:
    assert format_price_to_words(5000, "JPY") == "Five Thousand Yen"


def test_words_unknown_currency_infers_decimals() -> None:
    assert format_price_to_words("3.25", "XYZ") == "Three point twenty-five"


def test_words_zero() -> None:
    assert format_price_to_words(0, "USD") == "Zero"
    assert format_price_to_words("0.00", "AED") == "Zero"
