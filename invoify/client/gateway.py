from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from ..models import Invoice
from ..variables import LOCAL_STORAGE_SAVED_INVOICES_KEY
from .api_client import RemoteApiClient
from .session import SessionBoundary
from .storage import KeyValueStore, read_json, write_json
from .toasts import Toasts

logger = logging.getLogger(__name__)

DUPLICATE_SUBMISSION = "This request is already in progress"


class InvoiceBackend(Protocol):
    async def list(self) -> tuple[Optional[list[Invoice]], str]:
        ...

    async def save(self, invoice: Invoice) -> tuple[Optional[Invoice], str]:
        ...

    async def delete(self, ref: Any) -> tuple[bool, str]:
        ...


class LocalInvoiceBackend:
    """Anonymous invoices kept as a JSON list in the client key-value store, in insertion order."""

    def __init__(self, store: KeyValueStore, key: str = LOCAL_STORAGE_SAVED_INVOICES_KEY) -> None:
        self._store = store
        self._key = key

    def _read(self) -> list[dict]:
        raw = read_json(self._store, self._key, [])
        if not isinstance(raw, list):
            logger.warning("local_invoices.not_a_list key=%s", self._key)
            return []
        return [entry for entry in raw if isinstance(entry, dict)]

    def _valid(self, entries: list[dict]) -> list[tuple[int, Invoice]]:
        """Stored position and parsed invoice of every entry that validates."""
        valid: list[tuple[int, Invoice]] = []
        for position, entry in enumerate(entries):
            try:
                valid.append((position, Invoice.model_validate(entry)))
            except ValidationError:
                logger.warning("local_invoices.skipped_invalid number=%s", (entry.get("details") or {}).get("invoiceNumber"))
        return valid

    async def list(self) -> tuple[Optional[list[Invoice]], str]:
        return [invoice for _, invoice in self._valid(self._read())], ""

    async def save(self, invoice: Invoice) -> tuple[Optional[Invoice], str]:
        entries = self._read()
        payload = invoice.to_payload()
        number = invoice.invoice_number
        for index, entry in enumerate(entries):
            if str((entry.get("details") or {}).get("invoiceNumber", "")).strip() == number:
                entries[index] = payload
                break
        else:
            entries.append(payload)
        write_json(self._store, self._key, entries)
        return Invoice.model_validate(payload), ""

    async def delete(self, ref: Any) -> tuple[bool, str]:
        # ref is a position in the listed invoices, which skips unreadable entries
        entries = self._read()
        valid = self._valid(entries)
        if not isinstance(ref, int) or ref < 0 or ref >= len(valid):
            return False, ""
        del entries[valid[ref][0]]
        write_json(self._store, self._key, entries)
        return True, ""


class RemoteInvoiceBackend:
    def __init__(self, api: RemoteApiClient) -> None:
        self._api = api

    async def list(self) -> tuple[Optional[list[Invoice]], str]:
        return await self._api.list_invoices()

    async def save(self, invoice: Invoice) -> tuple[Optional[Invoice], str]:
        return await self._api.save_invoice(invoice)

    async def delete(self, ref: Any) -> tuple[bool, str]:
        if not ref:
            return False, "Invoice has no id"
        return await self._api.delete_invoice(str(ref))


class InvoiceGateway:
    """Saved invoices of the active owner scope.

    The backend follows the session: remote while authenticated, local
    otherwise. The in-memory list is replaced on every change, and results
    that arrive after a session transition are dropped.
    """

    def __init__(
        self,
        local: LocalInvoiceBackend,
        remote: RemoteInvoiceBackend,
        session: SessionBoundary,
        toasts: Optional[Toasts] = None,
    ) -> None:
        self._local = local
        self._remote = remote
        self._session = session
        self._toasts = toasts or Toasts()
        self._invoices: list[Invoice] = []
        self._pending: set[tuple[str, str]] = set()
        self._generation = 0
        session.subscribe(self._on_session_change)

    @property
    def invoices(self) -> list[Invoice]:
        return list(self._invoices)

    @property
    def is_remote(self) -> bool:
        return self._session.is_authenticated

    def _backend(self) -> InvoiceBackend:
        return self._remote if self.is_remote else self._local

    async def _on_session_change(self, owner: Optional[dict]) -> None:
        self._generation += 1
        self._invoices = []
        await self.reload()

    async def reload(self) -> list[Invoice]:
        generation = self._generation
        invoices, error = await self._backend().list()
        if generation != self._generation:
            logger.debug("gateway.reload_superseded")
            return self.invoices
        if invoices is None:
            self._toasts.error("Failed to load invoices", error)
            return self.invoices
        self._invoices = list(invoices)
        return self.invoices

    async def save(self, invoice: Invoice) -> tuple[Optional[Invoice], str]:
        number = invoice.invoice_number
        key = ("save", number)
        if key in self._pending:
            logger.info("gateway.duplicate_save number=%s", number)
            return None, DUPLICATE_SUBMISSION

        generation = self._generation
        remote = self.is_remote
        self._pending.add(key)
        try:
            saved, error = await self._backend().save(invoice)
        finally:
            self._pending.discard(key)

        if generation != self._generation:
            logger.info("gateway.save_superseded number=%s", number)
            return saved, error
        if saved is None:
            self._toasts.error("Failed to save invoice", error)
            return None, error

        existed = any(item.invoice_number == saved.invoice_number for item in self._invoices)
        if remote:
            self._invoices = [saved] + [
                item for item in self._invoices if item.invoice_number != saved.invoice_number
            ]
        elif existed:
            self._invoices = [
                saved if item.invoice_number == saved.invoice_number else item for item in self._invoices
            ]
        else:
            self._invoices = self._invoices + [saved]

        if existed:
            self._toasts.modified_invoice_success()
        else:
            self._toasts.save_invoice_success()
        return saved, ""

    async def delete(self, index: int) -> tuple[bool, str]:
        if index < 0 or index >= len(self._invoices):
            return False, ""
        target = self._invoices[index]
        remote = self.is_remote
        ref: Any = target.id if remote else index
        key = ("delete", str(target.id if remote else target.invoice_number))
        if key in self._pending:
            logger.info("gateway.duplicate_delete ref=%s", ref)
            return False, DUPLICATE_SUBMISSION

        generation = self._generation
        self._pending.add(key)
        try:
            ok, error = await self._backend().delete(ref)
        finally:
            self._pending.discard(key)

        if generation != self._generation:
            return ok, error
        if not ok:
            if error:
                self._toasts.error("Failed to delete invoice", error)
            return False, error

        self._invoices = [item for item in self._invoices if item is not target]
        self._toasts.success("Invoice deleted", f"Invoice {target.invoice_number} has been deleted")
        return True, ""
