from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable

from .currencies import currency_decimals
from .formatting import format_price_to_words, quantize, to_decimal
from .models import AmountType, BillingPolicy, Invoice, LineItem, Modifier


def _as_line_item(item: LineItem | dict[str, Any]) -> LineItem:
    if isinstance(item, LineItem):
        return item
    return LineItem.model_validate(item)


def _as_modifier(modifier: Modifier | dict[str, Any] | None) -> Modifier:
    if modifier is None:
        return Modifier()
    if isinstance(modifier, Modifier):
        return modifier
    return Modifier.model_validate(modifier)


def calculate_line_total(
    item: LineItem | dict[str, Any],
    *,
    decimals: int = 2,
    billing_policy: BillingPolicy = BillingPolicy.PER_PASSENGER,
) -> Decimal:
    line = _as_line_item(item)
    if line.unit_price < 0 or line.quantity < 0:
        raise ValueError("Negative values are not allowed in invoice items")
    quantity = Decimal("1") if billing_policy == BillingPolicy.PER_PASSENGER else line.quantity
    return quantize(to_decimal(line.unit_price) * quantity, decimals)


def _modifier_value(modifier: Modifier, sub_total: Decimal, decimals: int) -> Decimal:
    if modifier.amount_type == AmountType.PERCENTAGE:
        return quantize(sub_total * modifier.amount / Decimal("100"), decimals)
    return quantize(modifier.amount, decimals)


def calculate_invoice_totals(
    items: Iterable[LineItem | dict[str, Any]] | None,
    *,
    tax: Modifier | dict[str, Any] | None = None,
    discount: Modifier | dict[str, Any] | None = None,
    shipping: Modifier | dict[str, Any] | None = None,
    currency: str | None = "USD",
    billing_policy: BillingPolicy = BillingPolicy.PER_PASSENGER,
) -> dict[str, Any]:
    decimals = currency_decimals(currency)

    sub_total = Decimal("0")
    for item in items or []:
        sub_total += calculate_line_total(item, decimals=decimals, billing_policy=billing_policy)
    sub_total = quantize(sub_total, decimals)

    # Percentages always apply to the subtotal, never to each other.
    discount_value = _modifier_value(_as_modifier(discount), sub_total, decimals)
    tax_value = _modifier_value(_as_modifier(tax), sub_total, decimals)
    shipping_value = _modifier_value(_as_modifier(shipping), sub_total, decimals)

    total = quantize(sub_total - discount_value + tax_value + shipping_value, decimals)

    return {
        "subTotal": sub_total,
        "discount": discount_value,
        "tax": tax_value,
        "shipping": shipping_value,
        "totalAmount": total,
        "totalAmountInWords": format_price_to_words(total, currency),
    }


def apply_invoice_totals(invoice: Invoice) -> Invoice:
    """Return a copy of the invoice with line totals and derived amounts filled in."""
    result = invoice.model_copy(deep=True)
    details = result.details
    decimals = currency_decimals(details.currency)

    for item in details.items:
        if details.billing_policy == BillingPolicy.PER_PASSENGER:
            item.quantity = Decimal("1")
        item.total = calculate_line_total(item, decimals=decimals, billing_policy=details.billing_policy)

    totals = calculate_invoice_totals(
        details.items,
        tax=details.tax_details,
        discount=details.discount_details,
        shipping=details.shipping_details,
        currency=details.currency,
        billing_policy=details.billing_policy,
    )
    details.sub_total = totals["subTotal"]
    details.total_amount = totals["totalAmount"]
    details.total_amount_in_words = totals["totalAmountInWords"]
    return result
