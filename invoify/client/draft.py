from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from pydantic import ValidationError

from ..invoice_numbering import InvoiceNumberCounter
from ..models import Invoice, Party
from ..variables import (
    DEFAULT_LOGO_URL,
    DEFAULT_SIGNATURE_URL,
    LOCAL_STORAGE_INVOICE_DRAFT_KEY,
    default_form_values,
    default_sender,
)
from .storage import KeyValueStore, read_json, write_json

logger = logging.getLogger(__name__)


def parse_invoice_snapshot(raw: Any) -> Optional[Invoice]:
    """Draft or imported JSON -> Invoice, with dates revived. None when unusable."""
    if not isinstance(raw, dict):
        return None
    data = dict(raw)
    details = data.get("details")
    if isinstance(details, dict) and not details.get("dueDate"):
        details = dict(details)
        details.pop("dueDate", None)
        data["details"] = details
    try:
        return Invoice.model_validate(data)
    except ValidationError as exc:
        logger.warning("draft.invalid_snapshot errors=%s", exc.error_count())
        return None


class DraftSync:
    """Mirror of the in-progress form in the local draft slot.

    Writes are debounced on the running event loop and stamped with a
    monotonic version; a write whose version is older than the newest
    scheduled one is dropped. Without a running loop the write happens
    immediately.
    """

    def __init__(
        self,
        store: KeyValueStore,
        numbering: InvoiceNumberCounter,
        debounce_seconds: float = 0.3,
        key: str = LOCAL_STORAGE_INVOICE_DRAFT_KEY,
    ) -> None:
        self._store = store
        self._numbering = numbering
        self._debounce = max(0.0, float(debounce_seconds))
        self._key = key
        self._version = 0
        self._written_version = 0
        self._pending: Optional[dict] = None
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def version(self) -> int:
        return self._version

    @property
    def has_pending_write(self) -> bool:
        return self._pending is not None

    def schedule(self, snapshot: Invoice | dict) -> int:
        payload = snapshot.to_payload() if isinstance(snapshot, Invoice) else dict(snapshot)
        self._version += 1
        version = self._version
        self._pending = payload

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._write(version, payload)
            return version

        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._debounce, self._write, version, payload)
        return version

    def _write(self, version: int, payload: dict) -> bool:
        if version < self._version or version <= self._written_version:
            logger.debug("draft.stale_write version=%s latest=%s", version, self._version)
            return False
        write_json(self._store, self._key, payload)
        self._written_version = version
        self._pending = None
        self._handle = None
        return True

    def flush(self) -> bool:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._pending is None:
            return False
        return self._write(self._version, self._pending)

    def read(self) -> Optional[Invoice]:
        raw = read_json(self._store, self._key, None)
        if raw is None:
            return None
        return parse_invoice_snapshot(raw)

    def hydrate(self) -> Invoice:
        """Initial form state: the draft with identity fields overridden, or the defaults."""
        draft = self.read()
        if draft is None:
            invoice = Invoice.model_validate(default_form_values())
            invoice.details.invoice_number = self._numbering.current_number()
            return invoice

        draft.sender = Party.model_validate(default_sender())
        details = draft.details
        if not details.invoice_logo.strip():
            details.invoice_logo = DEFAULT_LOGO_URL
        if not details.signature.data.strip():
            details.signature.data = DEFAULT_SIGNATURE_URL
        if not details.invoice_number.strip():
            details.invoice_number = self._numbering.current_number()
        return draft

    def clear(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending = None
        # Anything still in flight from before the clear is now stale.
        self._written_version = self._version
        self._store.remove(self._key)
