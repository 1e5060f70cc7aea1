from __future__ import annotations

import asyncio
import json
from decimal import Decimal
from pathlib import Path

import httpx

from invoify.client.api_client import RemoteApiClient
from invoify.client.workspace import InvoiceWorkspace, parse_invoice_import
from invoify.formatting import format_amount
from invoify.variables import (
    LOCAL_STORAGE_INVOICE_DRAFT_KEY,
    LOCAL_STORAGE_LAST_INVOICE_NUMBER_KEY,
    LOCAL_STORAGE_SAVED_INVOICES_KEY,
)


def _workspace(api_app, store, toasts, tmp_path: Path) -> InvoiceWorkspace:
    api = RemoteApiClient("http://testserver", transport=httpx.ASGITransport(app=api_app))
    return InvoiceWorkspace(store, api, toasts=toasts, download_dir=tmp_path / "downloads", debounce_seconds=0)


def test_parse_invoice_import() -> None:
    invoice, error = parse_invoice_import(
        json.dumps({"details": {"invoiceNumber": "3", "invoiceDate": "2024-02-01T00:00:00.000Z", "dueDate": ""}})
    )
    assert error == ""
    assert invoice.details.invoice_number == "3"
    assert invoice.details.due_date is None

    assert parse_invoice_import("{broken") == (None, "Invalid invoice file")
    assert parse_invoice_import("[1, 2]") == (None, "Invalid invoice file")


def test_new_invoice_consumes_number_and_clears_draft(api_app, memory_store, toasts, notifier, tmp_path) -> None:
    memory_store.set(LOCAL_STORAGE_LAST_INVOICE_NUMBER_KEY, "6")
    memory_store.set(LOCAL_STORAGE_INVOICE_DRAFT_KEY, json.dumps({"details": {"invoiceNumber": ""}}))

    workspace = _workspace(api_app, memory_store, toasts, tmp_path)
    assert workspace.form.details.invoice_number == "6"

    invoice = workspace.new_invoice()
    assert invoice.details.invoice_number == "7"
    assert memory_store.get(LOCAL_STORAGE_LAST_INVOICE_NUMBER_KEY) == "7"
    assert memory_store.get(LOCAL_STORAGE_INVOICE_DRAFT_KEY) is None
    assert notifier.titles == ["Generated new invoice"]


def test_end_to_end_anonymous_flow(api_app, memory_store, toasts, notifier, tmp_path, monkeypatch) -> None:
    for name in ("SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASS"):
        monkeypatch.delenv(name, raising=False)
    memory_store.set(LOCAL_STORAGE_LAST_INVOICE_NUMBER_KEY, "6")

    async def scenario() -> None:
        workspace = _workspace(api_app, memory_store, toasts, tmp_path)
        await workspace.start()
        assert not workspace.session.is_authenticated

        workspace.new_invoice()
        workspace.update(
            {
                "receiver": {"name": "Jane"},
                "details": {
                    "invoiceDate": "2024-05-01",
                    "currency": "USD",
                    "items": [{"name": "City tour", "quantity": 1, "unitPrice": 100}],
                },
            }
        )
        details = workspace.form.details
        assert details.invoice_number == "7"
        assert format_amount(details.total_amount, details.currency) == "100.00 USD"
        assert details.total_amount_in_words == "One Hundred"

        workspace.update({"details": {"taxDetails": {"amount": 10, "amountType": "percentage"}}})
        assert workspace.form.details.total_amount == Decimal("110.00")

        workspace.draft.flush()
        draft = json.loads(memory_store.get(LOCAL_STORAGE_INVOICE_DRAFT_KEY))
        assert draft["details"]["totalAmount"] == "110.00"

        saved, error = await workspace.save_invoice()
        assert error == ""
        assert saved.invoice_number == "7"
        assert workspace.form.details.updated_at
        stored = json.loads(memory_store.get(LOCAL_STORAGE_SAVED_INVOICES_KEY))
        assert [entry["details"]["invoiceNumber"] for entry in stored] == ["7"]

        workspace.set_number_of_passengers(3)
        assert len(workspace.form.details.items) == 3
        assert workspace.form.details.total_amount == Decimal("110.00")

        exported = await workspace.export_invoice_as("json")
        assert exported == tmp_path / "downloads" / "7.json"
        assert json.loads(exported.read_text(encoding="utf-8"))["details"]["invoiceNumber"] == "7"

        assert await workspace.download_pdf() is None
        assert await workspace.generate_pdf() is not None
        downloaded = await workspace.download_pdf()
        assert downloaded.read_bytes().startswith(b"%PDF")

        assert await workspace.send_pdf_to_mail("to@example.com") is False

        assert workspace.import_invoice(b"not json") is None
        imported = workspace.import_invoice(exported.read_bytes())
        assert imported.details.invoice_number == "7"
        assert imported.details.total_amount == Decimal("110.00")

        loaded = workspace.load_invoice(0)
        assert loaded.receiver.name == "Jane"
        assert workspace.load_invoice(3) is None

        ok, _ = await workspace.delete_invoice(0)
        assert ok
        assert workspace.gateway.invoices == []
        await workspace.api.aclose()

    asyncio.run(scenario())
    assert "Saved Invoice" in notifier.titles
    assert "Export successful" in notifier.titles
    assert "Your invoice has been generated!" in notifier.titles
    assert "Download successful" in notifier.titles
    assert ("destructive", "Error", "Failed to send invoice to to@example.com. Please try again.") in notifier.messages
    assert ("destructive", "Error", "Something went wrong while importing the invoice.") in notifier.messages


def test_save_validation_happens_before_persistence(api_app, memory_store, toasts, notifier, tmp_path) -> None:
    async def scenario() -> None:
        workspace = _workspace(api_app, memory_store, toasts, tmp_path)
        workspace.new_invoice()
        saved, error = await workspace.save_invoice()
        assert saved is None
        assert "Invoice date is required" in error
        await workspace.api.aclose()

    asyncio.run(scenario())
    assert memory_store.get(LOCAL_STORAGE_SAVED_INVOICES_KEY) is None
    assert notifier.errors[-1][1] == "Invalid invoice"


def test_login_switches_to_remote_invoices(api_app, memory_store, toasts, tmp_path) -> None:
    async def scenario() -> None:
        workspace = _workspace(api_app, memory_store, toasts, tmp_path)
        await workspace.start()
        workspace.update({"details": {"invoiceNumber": "L-1", "invoiceDate": "2024-05-01"}})
        await workspace.save_invoice()
        assert [i.invoice_number for i in workspace.gateway.invoices] == ["L-1"]

        await workspace.session.signup("ws@example.com", "secret1")
        assert workspace.gateway.invoices == []

        workspace.update({"details": {"invoiceNumber": "R-1"}})
        saved, _ = await workspace.save_invoice()
        assert saved.id

        # A fresh client with the same token restores the session.
        token = workspace.api.session_token
        api = RemoteApiClient("http://testserver", transport=httpx.ASGITransport(app=api_app), session_token=token)
        restored = InvoiceWorkspace(memory_store, api, toasts=toasts, download_dir=tmp_path, debounce_seconds=0)
        await restored.start()
        assert restored.session.is_authenticated
        assert [i.invoice_number for i in restored.gateway.invoices] == ["R-1"]

        await workspace.session.logout()
        assert [i.invoice_number for i in workspace.gateway.invoices] == ["L-1"]
        await workspace.api.aclose()
        await api.aclose()

    asyncio.run(scenario())


def test_passenger_rows_follow_count_after_new_invoice(api_app, memory_store, toasts, tmp_path) -> None:
    workspace = _workspace(api_app, memory_store, toasts, tmp_path)
    workspace.set_number_of_passengers(3)
    assert len(workspace.form.details.items) == 3

    workspace.new_invoice()
    assert len(workspace.form.details.items) == 1
    workspace.set_number_of_passengers(3)
    assert len(workspace.form.details.items) == 3
    assert workspace.form.details.number_of_passengers == 3


def test_invalid_change_is_reported_and_form_kept(api_app, memory_store, toasts, notifier, tmp_path) -> None:
    workspace = _workspace(api_app, memory_store, toasts, tmp_path)
    workspace.update({"details": {"discountDetails": {"amount": 10, "amountType": "percentage"}}})
    before = workspace.form

    after = workspace.update({"details": {"discountDetails": {"amount": 150, "amountType": "percentage"}}})
    assert after is before
    assert workspace.form.details.discount_details.amount == Decimal("10")

    variant, title, description = notifier.errors[-1]
    assert title == "Invalid invoice"
    assert "Discount percentage must not exceed 100" in description
