from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ..config import get_settings
from ..invoice_calculations import apply_invoice_totals
from ..invoice_numbering import InvoiceNumberCounter, build_export_filename
from ..models import Invoice, InvoiceValidationError, validate_invoice_for_save
from ..variables import EXPORT_FORMATS, SHORT_DATE_FORMAT, default_form_values
from .api_client import RemoteApiClient
from .downloads import save_file
from .draft import DraftSync, parse_invoice_snapshot
from .gateway import InvoiceGateway, LocalInvoiceBackend, RemoteInvoiceBackend
from .passengers import PassengerRowSync
from .payment_profiles import PaymentProfileStore
from .session import SessionBoundary
from .storage import KeyValueStore
from .toasts import Toasts

logger = logging.getLogger(__name__)


def parse_invoice_import(raw: str | bytes) -> tuple[Optional[Invoice], str]:
    """Read an exported JSON invoice back into a form state."""
    try:
        text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
        data = json.loads(text)
    except (UnicodeDecodeError, ValueError):
        return None, "Invalid invoice file"
    invoice = parse_invoice_snapshot(data)
    if invoice is None:
        return None, "Invalid invoice file"
    return invoice, ""


def _deep_merge(base: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class InvoiceWorkspace:
    """Owner of the invoice form.

    Every change recomputes the totals and schedules a draft write. Saved
    invoices go through the gateway, which follows the session.
    """

    def __init__(
        self,
        store: KeyValueStore,
        api: RemoteApiClient,
        *,
        toasts: Optional[Toasts] = None,
        download_dir: str | Path | None = None,
        debounce_seconds: float | None = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.api = api
        self.toasts = toasts or Toasts()
        self.download_dir = Path(download_dir) if download_dir is not None else settings.download_dir
        if debounce_seconds is None:
            debounce_seconds = settings.draft_debounce_ms / 1000

        self.numbering = InvoiceNumberCounter(store)
        self.draft = DraftSync(store, self.numbering, debounce_seconds)
        self.session = SessionBoundary(api)
        self.gateway = InvoiceGateway(LocalInvoiceBackend(store), RemoteInvoiceBackend(api), self.session, self.toasts)
        self.payment_profiles = PaymentProfileStore(store)
        self._passengers = PassengerRowSync(self._replace_items)

        self.form: Invoice = apply_invoice_totals(self.draft.hydrate())
        self.pdf: Optional[bytes] = None

    async def start(self) -> None:
        if not await self.session.restore():
            await self.gateway.reload()

    # --- form state ---
    def _commit(self, invoice: Invoice) -> Invoice:
        self.form = apply_invoice_totals(invoice)
        self.pdf = None
        self.draft.schedule(self.form)
        return self.form

    def _replace_items(self, rows) -> None:
        self.form.details.items = rows

    def update(self, changes: Invoice | dict[str, Any]) -> Invoice:
        """Apply a whole new form state or a partial camelCase change set.

        A change set that does not validate is reported and leaves the form as it was.
        """
        if isinstance(changes, Invoice):
            invoice = changes.model_copy(deep=True)
        else:
            try:
                invoice = Invoice.model_validate(_deep_merge(self.form.to_payload(include_meta=True), changes))
            except ValidationError as exc:
                message = "; ".join(str(error.get("msg", "")) for error in exc.errors()) or "Invalid value"
                logger.warning("workspace.update_rejected error=%s", message)
                self.toasts.error("Invalid invoice", message)
                return self.form
        previous_count = self.form.details.number_of_passengers
        self._commit(invoice)
        if self.form.details.number_of_passengers != previous_count:
            self.set_number_of_passengers(self.form.details.number_of_passengers)
        return self.form

    def set_number_of_passengers(self, count: int) -> Invoice:
        self.form.details.number_of_passengers = max(0, int(count or 0))
        self._passengers.apply(self.form.details.items, count)
        return self._commit(self.form)

    def new_invoice(self) -> Invoice:
        number = self.numbering.next_number()
        self.draft.clear()
        invoice = Invoice.model_validate(default_form_values())
        invoice.details.invoice_number = number
        self.form = apply_invoice_totals(invoice)
        self.pdf = None
        self.toasts.new_invoice_success()
        logger.info("workspace.new_invoice number=%s", number)
        return self.form

    def load_invoice(self, index: int) -> Optional[Invoice]:
        invoices = self.gateway.invoices
        if index < 0 or index >= len(invoices):
            return None
        return self._commit(invoices[index].model_copy(deep=True))

    def import_invoice(self, raw: str | bytes) -> Optional[Invoice]:
        invoice, error = parse_invoice_import(raw)
        if invoice is None:
            logger.warning("workspace.import_failed error=%s", error)
            self.toasts.import_invoice_error()
            return None
        return self._commit(invoice)

    # --- persistence ---
    async def save_invoice(self) -> tuple[Optional[Invoice], str]:
        try:
            validate_invoice_for_save(self.form)
        except InvoiceValidationError as exc:
            self.toasts.error("Invalid invoice", str(exc))
            return None, str(exc)
        self.form.details.updated_at = datetime.now().strftime(SHORT_DATE_FORMAT)
        self.draft.schedule(self.form)
        return await self.gateway.save(self.form)

    async def delete_invoice(self, index: int) -> tuple[bool, str]:
        return await self.gateway.delete(index)

    # --- rendering ---
    async def export_invoice_as(self, export_format: str) -> Optional[Path]:
        fmt = (export_format or "").strip().lower()
        if fmt not in EXPORT_FORMATS:
            self.toasts.error("Export failed", f"Unsupported export format: {export_format}")
            return None
        content, error = await self.api.export(fmt, self.form)
        if content is None:
            self.toasts.error("Export failed", error)
            return None
        path = save_file(content, build_export_filename(self.form.invoice_number, fmt), self.store, self.download_dir)
        if path is None:
            self.toasts.error("Export failed", "Could not write the exported file")
            return None
        self.toasts.export_success(self.form.invoice_number, fmt.upper())
        return path

    async def generate_pdf(self) -> Optional[bytes]:
        pdf, error = await self.api.generate_pdf(self.form)
        if pdf is None:
            self.toasts.error("PDF generation failed", error)
            return None
        self.pdf = pdf
        self.toasts.pdf_generation_success()
        return pdf

    async def download_pdf(self) -> Optional[Path]:
        if not self.pdf:
            return None
        path = save_file(self.pdf, build_export_filename(self.form.invoice_number, "pdf"), self.store, self.download_dir)
        if path is None:
            self.toasts.error("Download failed", "Could not write the PDF file")
            return None
        self.toasts.download_success(self.form.invoice_number)
        return path

    async def send_pdf_to_mail(self, email: str) -> bool:
        ok, error = await self.api.send_pdf(email, self.form)
        if not ok:
            logger.warning("workspace.send_failed email=%s error=%s", email, error)
            self.toasts.send_pdf_error(email)
            return False
        self.toasts.send_pdf_success()
        return True
