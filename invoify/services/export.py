from __future__ import annotations

import csv
import io
import json
import logging
from typing import Any, List

import pandas as pd

from ..invoice_calculations import apply_invoice_totals
from ..models import Invoice
from .invoice_pdf import render_invoice_to_pdf_bytes

logger = logging.getLogger(__name__)

MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}


def flatten_object(obj: Any, prefix: str = "") -> dict[str, Any]:
    """{"a": {"b": 1}, "c": [{"d": 2}]} -> {"a.b": 1, "c.0.d": 2}"""
    flat: dict[str, Any] = {}
    if isinstance(obj, dict):
        items = obj.items()
    elif isinstance(obj, list):
        items = ((str(i), v) for i, v in enumerate(obj))
    else:
        flat[prefix or "value"] = obj
        return flat
    for key, value in items:
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, (dict, list)) and value:
            flat.update(flatten_object(value, path))
        elif isinstance(value, (dict, list)):
            flat[path] = ""
        else:
            flat[path] = value
    return flat


def _csv_bytes(rows: List[List[Any]], header: List[str]) -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(header)
    for r in rows:
        writer.writerow([("" if v is None else v) for v in r])
    return buf.getvalue().encode("utf-8-sig")


def _xlsx_bytes(payload: dict[str, Any]) -> bytes:
    details = payload.get("details") or {}
    summary = {k: v for k, v in flatten_object(payload).items() if not k.startswith("details.items.")}
    items = details.get("items") or []

    mem = io.BytesIO()
    with pd.ExcelWriter(mem, engine="openpyxl") as writer:
        pd.DataFrame({"field": list(summary.keys()), "value": list(summary.values())}).to_excel(
            writer, sheet_name="Invoice", index=False
        )
        pd.DataFrame(items or [{}]).to_excel(writer, sheet_name="Items", index=False)
    return mem.getvalue()


def render_export(invoice: Invoice, export_format: str) -> tuple[bytes, str]:
    """Render one invoice as json, csv, xlsx or pdf. Returns (content, media type)."""
    fmt = (export_format or "").strip().lower()
    if fmt not in MEDIA_TYPES:
        raise ValueError(f"Unsupported export format: {export_format}")

    computed = apply_invoice_totals(invoice)
    payload = computed.to_payload()

    if fmt == "json":
        content = json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")
    elif fmt == "csv":
        flat = flatten_object(payload)
        content = _csv_bytes([list(flat.values())], list(flat.keys()))
    elif fmt == "xlsx":
        content = _xlsx_bytes(payload)
    else:
        content = render_invoice_to_pdf_bytes(computed)

    logger.info("invoice.export number=%s format=%s bytes=%s", computed.invoice_number, fmt, len(content))
    return content, MEDIA_TYPES[fmt]
