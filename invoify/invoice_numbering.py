from __future__ import annotations

import logging
import re

from .client.storage import KeyValueStore
from .variables import LOCAL_STORAGE_LAST_INVOICE_NUMBER_KEY

logger = logging.getLogger(__name__)


def _sanitize_filename(value: str) -> str:
    cleaned = re.sub(r"[^a-z0-9]", "_", (value or "").strip(), flags=re.IGNORECASE).lower()
    return cleaned or "invoice"


def build_export_filename(invoice_number: str | None, extension: str) -> str:
    ext = (extension or "").strip().lower().lstrip(".") or "pdf"
    return f"{_sanitize_filename(invoice_number or 'invoice')}.{ext}"


class InvoiceNumberCounter:
    """Monotonic invoice number kept in the client's key-value store.

    ``current_number`` is what the next new invoice would show and never
    mutates; ``next_number`` is the only call that consumes a number.
    """

    def __init__(self, store: KeyValueStore, key: str = LOCAL_STORAGE_LAST_INVOICE_NUMBER_KEY) -> None:
        self._store = store
        self._key = key

    def _read(self) -> int | None:
        raw = self._store.get(self._key)
        if raw is None or str(raw).strip() == "":
            return None
        try:
            return int(str(raw).strip())
        except ValueError:
            logger.warning("invoice_number.corrupt key=%s value=%r", self._key, raw)
            return None

    def current_number(self) -> str:
        last = self._read()
        if last is None:
            return "1"
        return str(last)

    def next_number(self) -> str:
        last = self._read() or 0
        next_value = last + 1
        self._store.set(self._key, str(next_value))
        logger.debug("invoice_number.advanced value=%s", next_value)
        return str(next_value)
