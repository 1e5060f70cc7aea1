from __future__ import annotations

from nicegui import events, ui

from ..currencies import CURRENCIES
from ..formatting import format_amount
from ..models import AmountType, BillingPolicy
from ..variables import EXPORT_FORMATS
from ..client.workspace import InvoiceWorkspace

_CLS = {
    "page": "w-full max-w-6xl mx-auto p-4 gap-4",
    "card": "w-full p-4 gap-3",
    "row": "w-full gap-3 items-end flex-wrap",
    "title": "text-2xl font-bold text-slate-900",
    "section": "text-sm font-semibold uppercase text-slate-500",
    "muted": "text-xs text-slate-500",
}


def _party_inputs(workspace: InvoiceWorkspace, role: str, on_change) -> None:
    party = getattr(workspace.form, role)
    fields = [
        ("name", "Name"),
        ("address", "Address"),
        ("zipCode", "Zip"),
        ("city", "City"),
        ("country", "Country"),
        ("email", "Email"),
        ("phone", "Phone"),
    ]
    payload = party.model_dump(by_alias=True)
    with ui.row().classes(_CLS["row"]):
        for key, label in fields:
            ui.input(
                label,
                value=payload.get(key, ""),
                on_change=lambda e, k=key: on_change({role: {k: e.value}}),
            ).props("dense outlined").classes("w-48")


def render_invoice_form(workspace: InvoiceWorkspace):
    """Build the editor page; returns the refreshable saved-invoices list."""
    def change(changes: dict) -> None:
        workspace.update(changes)
        totals.refresh()

    @ui.refreshable
    def totals() -> None:
        details = workspace.form.details
        with ui.column().classes("gap-1 items-end w-full"):
            ui.label(f"Subtotal: {format_amount(details.sub_total, details.currency)}")
            ui.label(f"Total: {format_amount(details.total_amount, details.currency)}").classes("text-lg font-bold")
            ui.label(details.total_amount_in_words).classes(_CLS["muted"])

    @ui.refreshable
    def items() -> None:
        details = workspace.form.details
        per_passenger = details.billing_policy == BillingPolicy.PER_PASSENGER
        for index, item in enumerate(details.items):
            with ui.row().classes(_CLS["row"]):
                ui.input(
                    "Passenger",
                    value=item.passenger_name,
                    on_change=lambda e, i=index: _set_item(i, "passengerName", e.value),
                ).props("dense outlined").classes("w-40")
                ui.input(
                    "Service",
                    value=item.service_type,
                    on_change=lambda e, i=index: _set_item(i, "serviceType", e.value),
                ).props("dense outlined").classes("w-32")
                ui.input(
                    "Item",
                    value=item.name,
                    on_change=lambda e, i=index: _set_item(i, "name", e.value),
                ).props("dense outlined").classes("w-48")
                ui.number(
                    "Qty",
                    value=float(item.quantity),
                    min=0,
                    on_change=lambda e, i=index: _set_item(i, "quantity", e.value),
                ).props("dense outlined" + (" readonly" if per_passenger else "")).classes("w-20")
                ui.number(
                    "Unit price",
                    value=float(item.unit_price),
                    min=0,
                    on_change=lambda e, i=index: _set_item(i, "unitPrice", e.value),
                ).props("dense outlined").classes("w-32")
                ui.label(format_amount(item.total, details.currency)).classes("w-32 text-right")

    def _set_item(index: int, key: str, value) -> None:
        rows = workspace.form.to_payload()["details"]["items"]
        if index >= len(rows):
            return
        rows[index][key] = value if value is not None else 0
        change({"details": {"items": rows}})

    def set_passengers(e: events.ValueChangeEventArguments) -> None:
        workspace.set_number_of_passengers(int(e.value or 0))
        items.refresh()
        totals.refresh()

    @ui.refreshable
    def saved_list() -> None:
        invoices = workspace.gateway.invoices
        if not invoices:
            ui.label("No saved invoices yet").classes(_CLS["muted"])
        for index, invoice in enumerate(invoices):
            with ui.row().classes("w-full items-center justify-between"):
                ui.label(f"#{invoice.invoice_number} {invoice.receiver.name}").classes("text-sm")
                with ui.row().classes("gap-1"):
                    ui.button("Load", on_click=lambda i=index: load(i)).props("flat dense")
                    ui.button("Delete", on_click=lambda i=index: delete(i)).props("flat dense color=negative")

    def load(index: int) -> None:
        workspace.load_invoice(index)
        form.refresh()

    async def delete(index: int) -> None:
        await workspace.delete_invoice(index)
        saved_list.refresh()

    async def save() -> None:
        await workspace.save_invoice()
        saved_list.refresh()

    def new() -> None:
        workspace.new_invoice()
        form.refresh()

    async def export(fmt: str) -> None:
        await workspace.export_invoice_as(fmt)

    async def generate() -> None:
        await workspace.generate_pdf()

    async def download() -> None:
        await workspace.download_pdf()

    async def send(email: str) -> None:
        if email:
            await workspace.send_pdf_to_mail(email)

    def handle_upload(e: events.UploadEventArguments) -> None:
        if workspace.import_invoice(e.content.read()) is not None:
            form.refresh()

    @ui.refreshable
    def form() -> None:
        details = workspace.form.details
        with ui.card().classes(_CLS["card"]):
            ui.label("From").classes(_CLS["section"])
            _party_inputs(workspace, "sender", change)
            ui.label("Bill to").classes(_CLS["section"])
            _party_inputs(workspace, "receiver", change)

        with ui.card().classes(_CLS["card"]):
            ui.label("Invoice details").classes(_CLS["section"])
            with ui.row().classes(_CLS["row"]):
                ui.input(
                    "Invoice number",
                    value=details.invoice_number,
                    on_change=lambda e: change({"details": {"invoiceNumber": e.value}}),
                ).props("dense outlined")
                ui.input(
                    "Invoice date",
                    value=details.invoice_date.isoformat() if details.invoice_date else "",
                    on_change=lambda e: change({"details": {"invoiceDate": e.value}}),
                ).props("dense outlined type=date")
                ui.input(
                    "Due date",
                    value=details.due_date.isoformat() if details.due_date else "",
                    on_change=lambda e: change({"details": {"dueDate": e.value or None}}),
                ).props("dense outlined type=date")
                ui.select(
                    sorted(CURRENCIES),
                    label="Currency",
                    value=details.currency if details.currency in CURRENCIES else "USD",
                    on_change=lambda e: change({"details": {"currency": e.value}}),
                ).props("dense outlined").classes("w-28")
                ui.number(
                    "Passengers",
                    value=details.number_of_passengers,
                    min=1,
                    on_change=set_passengers,
                ).props("dense outlined").classes("w-28")
                ui.select(
                    {p.value: p.value.replace("_", " ") for p in BillingPolicy},
                    label="Billing",
                    value=details.billing_policy.value,
                    on_change=lambda e: (change({"details": {"billingPolicy": e.value}}), items.refresh()),
                ).props("dense outlined").classes("w-36")

        with ui.card().classes(_CLS["card"]):
            ui.label("Items").classes(_CLS["section"])
            items()

        with ui.card().classes(_CLS["card"]):
            ui.label("Charges").classes(_CLS["section"])
            with ui.row().classes(_CLS["row"]):
                for key, label, modifier in (
                    ("discountDetails", "Discount", details.discount_details),
                    ("taxDetails", "Tax", details.tax_details),
                    ("shippingDetails", "Shipping", details.shipping_details),
                ):
                    ui.number(
                        label,
                        value=float(modifier.amount),
                        min=0,
                        on_change=lambda e, k=key: change({"details": {k: {"amount": e.value or 0}}}),
                    ).props("dense outlined").classes("w-28")
                    ui.select(
                        [t.value for t in AmountType],
                        value=modifier.amount_type.value,
                        on_change=lambda e, k=key: change({"details": {k: {"amountType": e.value}}}),
                    ).props("dense outlined").classes("w-32")
            totals()

        with ui.card().classes(_CLS["card"]):
            ui.label("Payment information").classes(_CLS["section"])
            payment = details.payment_information.model_dump(by_alias=True)
            with ui.row().classes(_CLS["row"]):
                for key, label in (
                    ("bankName", "Bank"),
                    ("accountName", "Account name"),
                    ("accountNumber", "Account number"),
                    ("iban", "IBAN"),
                    ("swiftCode", "SWIFT"),
                ):
                    ui.input(
                        label,
                        value=payment.get(key, ""),
                        on_change=lambda e, k=key: change({"details": {"paymentInformation": {k: e.value}}}),
                    ).props("dense outlined").classes("w-44")
            with ui.row().classes(_CLS["row"]):
                profile_name = ui.input("Save as...").props("dense outlined").classes("w-40")

                def save_profile() -> None:
                    try:
                        workspace.payment_profiles.save(workspace.form.details.payment_information, profile_name.value)
                    except ValueError as exc:
                        workspace.toasts.error("Error", str(exc))
                        return
                    workspace.toasts.payment_info_saved()
                    profile_name.value = ""

                ui.button("Save payment info", on_click=save_profile).props("flat")
                profiles = {p.id: p.name for p in workspace.payment_profiles.list()}

                def load_profile(e: events.ValueChangeEventArguments) -> None:
                    profile = workspace.payment_profiles.get(e.value) if e.value else None
                    if profile is None:
                        return
                    change({"details": {"paymentInformation": profile.to_payment_information().model_dump(by_alias=True)}})
                    form.refresh()

                ui.select(profiles, label="Load saved", on_change=load_profile).props("dense outlined").classes("w-48")

            ui.textarea(
                "Additional notes",
                value=details.additional_notes,
                on_change=lambda e: change({"details": {"additionalNotes": e.value}}),
            ).props("outlined").classes("w-full")
            ui.textarea(
                "Payment terms",
                value=details.payment_terms,
                on_change=lambda e: change({"details": {"paymentTerms": e.value}}),
            ).props("outlined").classes("w-full")

    with ui.column().classes(_CLS["page"]):
        with ui.row().classes("w-full justify-between items-center"):
            ui.label("Invoify").classes(_CLS["title"])
            with ui.row().classes("gap-2"):
                ui.button("New invoice", on_click=new).props("outline")
                ui.button("Save", on_click=save)
                ui.button("Generate PDF", on_click=generate)
                ui.button("Download PDF", on_click=download).props("outline")

        with ui.row().classes("w-full gap-4 items-start no-wrap"):
            with ui.column().classes("grow gap-4"):
                form()
            with ui.column().classes("w-80 gap-4"):
                with ui.card().classes(_CLS["card"]):
                    ui.label("Saved invoices").classes(_CLS["section"])
                    saved_list()
                with ui.card().classes(_CLS["card"]):
                    ui.label("Export").classes(_CLS["section"])
                    with ui.row().classes("gap-1"):
                        for fmt in EXPORT_FORMATS:
                            ui.button(fmt.upper(), on_click=lambda f=fmt: export(f)).props("flat dense")
                    ui.upload(label="Import JSON", on_upload=handle_upload, auto_upload=True).props(
                        "accept=.json"
                    ).classes("w-full")
                with ui.card().classes(_CLS["card"]):
                    ui.label("Send by email").classes(_CLS["section"])
                    email = ui.input("Recipient").props("dense outlined").classes("w-full")
                    ui.button("Send PDF", on_click=lambda: send(email.value)).props("flat")

    return saved_list
