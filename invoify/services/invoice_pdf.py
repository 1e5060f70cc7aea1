# invoify/services/invoice_pdf.py
from __future__ import annotations

from io import BytesIO
from typing import Any

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen.canvas import Canvas

from ..currencies import currency_decimals
from ..formatting import format_number_with_commas
from ..invoice_calculations import apply_invoice_totals, calculate_invoice_totals
from ..models import AmountType, BillingPolicy, Invoice, Modifier


def _safe_str(x: Any) -> str:
    return (str(x) if x is not None else "").strip()


def _wrap_text(text: str, font: str, size: int, max_width: float) -> list[str]:
    text = _safe_str(text)
    if not text:
        return [""]
    words = text.replace("\n", " ").split()
    lines: list[str] = []
    cur = ""
    for w in words:
        cand = (cur + " " + w).strip() if cur else w
        if stringWidth(cand, font, size) <= max_width:
            cur = cand
        else:
            if cur:
                lines.append(cur)
            cur = w
    if cur:
        lines.append(cur)
    return lines or [""]


def _modifier_label(label: str, modifier: Modifier) -> str:
    if modifier.amount_type == AmountType.PERCENTAGE:
        return f"{label} ({modifier.amount.normalize():f}%)"
    return label


def render_invoice_to_pdf_bytes(invoice: Invoice) -> bytes:
    """Plain single-template PDF of an invoice: parties, line items, totals, payment details."""
    invoice = apply_invoice_totals(invoice)
    details = invoice.details
    decimals = currency_decimals(details.currency)
    currency = details.currency

    totals = calculate_invoice_totals(
        details.items,
        tax=details.tax_details,
        discount=details.discount_details,
        shipping=details.shipping_details,
        currency=currency,
        billing_policy=details.billing_policy,
    )

    def money(value: Any) -> str:
        return f"{format_number_with_commas(value, decimals)} {currency}"

    buf = BytesIO()
    c = Canvas(buf, pagesize=A4)
    w, h = A4

    margin_x = 18 * mm
    top = h - 18 * mm
    bottom = 18 * mm

    font = "Helvetica"
    font_b = "Helvetica-Bold"

    def text(x, y, s, size=10, bold=False):
        c.setFont(font_b if bold else font, size)
        c.drawString(x, y, _safe_str(s))

    def text_r(x_right, y, s, size=10, bold=False):
        c.setFont(font_b if bold else font, size)
        c.drawRightString(x_right, y, _safe_str(s))

    # Header
    text(margin_x, top, "INVOICE", size=22, bold=True)
    if invoice.invoice_number:
        text_r(w - margin_x, top + 2, f"#{invoice.invoice_number}", size=10)

    # Sender block (left)
    y = top - 24
    sender = invoice.sender
    text(margin_x, y, "From", size=10, bold=True)
    y -= 12
    for i, line in enumerate(
        ln
        for ln in [
            sender.name,
            sender.address,
            f"{sender.zip_code} {sender.city}".strip(),
            sender.country,
            sender.email,
            sender.phone,
        ]
        if ln
    ):
        text(margin_x, y, line, size=10, bold=(i == 0))
        y -= 11

    # Meta block (right)
    meta_x = w - margin_x
    meta_y = top - 24
    invoice_date = details.invoice_date.isoformat() if details.invoice_date else "-"
    text_r(meta_x, meta_y, "Invoice date", size=9, bold=True)
    text_r(meta_x, meta_y - 11, invoice_date, size=9)
    if details.due_date:
        text_r(meta_x, meta_y - 26, "Due date", size=9, bold=True)
        text_r(meta_x, meta_y - 37, details.due_date.isoformat(), size=9)

    # Receiver block
    rx = w * 0.55
    ry = top - 72
    text(rx, ry, "Bill to", size=10, bold=True)
    ry -= 12
    receiver = invoice.receiver
    rec_lines = [
        ln
        for ln in [
            receiver.name,
            receiver.address,
            f"{receiver.zip_code} {receiver.city}".strip(),
            receiver.country,
            receiver.email,
            receiver.phone,
        ]
        if ln
    ] or ["(No receiver)"]
    for ln in rec_lines:
        text(rx, ry, ln, size=10)
        ry -= 11

    y = min(y, ry) - 18

    # Table
    table_x = margin_x
    table_w = w - 2 * margin_x
    col_desc = table_w * 0.52
    col_qty = table_w * 0.12
    col_price = table_w * 0.18

    row_h_min = 16
    line_h = 11
    per_passenger = details.billing_policy == BillingPolicy.PER_PASSENGER

    def table_header(y0: float) -> float:
        c.setFont(font_b, 9)
        c.setLineWidth(0.5)
        c.rect(table_x, y0 - 14, table_w, 14, stroke=1, fill=0)
        c.drawString(table_x + 6, y0 - 11, "Passenger / Service" if per_passenger else "Item")
        c.drawRightString(table_x + col_desc + col_qty - 6, y0 - 11, "Qty")
        c.drawRightString(table_x + col_desc + col_qty + col_price - 6, y0 - 11, "Rate")
        c.drawRightString(table_x + table_w - 6, y0 - 11, "Amount")
        return y0 - 16

    y = table_header(y)

    for it in details.items:
        heading = " - ".join(p for p in [it.passenger_name, it.service_type, it.name] if p)
        desc_lines = [ln for ln in [heading] if ln] + [
            ln for ln in _wrap_text(it.description, font, 9, col_desc - 12) if ln
        ]
        desc_lines = desc_lines or [""]
        needed_h = max(row_h_min, 8 + len(desc_lines) * line_h)

        if y - needed_h < bottom + 55:
            c.showPage()
            y = table_header(top)

        c.rect(table_x, y - needed_h, table_w, needed_h, stroke=1, fill=0)
        ty = y - 12
        for i, ln in enumerate(desc_lines):
            c.setFont(font_b if (i == 0 and heading) else font, 9)
            c.drawString(table_x + 6, ty, ln)
            ty -= line_h

        c.setFont(font, 9)
        c.drawRightString(table_x + col_desc + col_qty - 6, y - 12, f"{it.quantity.normalize():f}")
        c.drawRightString(table_x + col_desc + col_qty + col_price - 6, y - 12, money(it.unit_price))
        c.drawRightString(table_x + table_w - 6, y - 12, money(it.total))
        y -= needed_h

    # Totals
    y -= 14
    if y < bottom + 120:
        c.showPage()
        y = top

    rows = [("Subtotal", totals["subTotal"])]
    if totals["discount"]:
        rows.append((_modifier_label("Discount", details.discount_details), -totals["discount"]))
    if totals["tax"]:
        rows.append((_modifier_label("Tax", details.tax_details), totals["tax"]))
    if totals["shipping"]:
        rows.append((_modifier_label("Shipping", details.shipping_details), totals["shipping"]))

    label_x = table_x + table_w - 120
    for label, value in rows:
        text_r(label_x, y, label, size=10, bold=True)
        text_r(table_x + table_w - 6, y, money(value), size=10)
        y -= 14
    text_r(label_x, y - 4, "Total", size=12, bold=True)
    text_r(table_x + table_w - 6, y - 4, money(totals["totalAmount"]), size=12, bold=True)
    y -= 24

    if details.total_amount_in_words:
        for ln in _wrap_text(f"Amount in words: {details.total_amount_in_words}", font, 9, table_w):
            text(margin_x, y, ln, size=9)
            y -= 11

    # Payment information, notes, terms
    payment = details.payment_information
    pay_lines = [
        ln
        for ln in [
            f"Bank: {payment.bank_name}" if payment.bank_name else "",
            f"Account name: {payment.account_name}" if payment.account_name else "",
            f"Account no.: {payment.account_number}" if payment.account_number else "",
            f"IBAN: {payment.iban}" if payment.iban else "",
            f"SWIFT: {payment.swift_code}" if payment.swift_code else "",
        ]
        if ln
    ]
    sections = [
        ("Payment information", pay_lines),
        ("Additional notes", _wrap_text(details.additional_notes, font, 9, table_w) if details.additional_notes else []),
        ("Payment terms", _wrap_text(details.payment_terms, font, 9, table_w) if details.payment_terms else []),
    ]
    for title, lines in sections:
        if not lines:
            continue
        y -= 8
        if y - (len(lines) + 1) * 11 < bottom:
            c.showPage()
            y = top
        text(margin_x, y, title, size=10, bold=True)
        y -= 12
        for ln in lines:
            text(margin_x, y, ln, size=9)
            y -= 11

    c.save()
    return buf.getvalue()
