from __future__ import annotations

import json
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from ..data import InvoiceRecord, as_utc, get_session, utcnow
from ..invoice_calculations import apply_invoice_totals
from ..models import Invoice, validate_invoice_for_save

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return utcnow()


def serialize_invoice(record: InvoiceRecord) -> dict:
    try:
        payload = json.loads(record.payload_json or "{}")
    except ValueError:
        logger.warning("invoice.corrupt_payload id=%s", record.id)
        payload = {}
    payload["id"] = str(record.id)
    payload["createdAt"] = as_utc(record.created_at).isoformat()
    payload["updatedAt"] = as_utc(record.updated_at).isoformat()
    return payload


def list_invoices(user_id: int) -> list[dict]:
    with get_session() as session:
        records = session.exec(
            select(InvoiceRecord)
            .where(InvoiceRecord.user_id == user_id)
            .order_by(InvoiceRecord.updated_at.desc(), InvoiceRecord.id.desc())
        ).all()
        return [serialize_invoice(record) for record in records]


def get_invoice(user_id: int, invoice_id: int) -> tuple[dict | None, str]:
    with get_session() as session:
        record = session.get(InvoiceRecord, invoice_id)
        if not record or record.user_id != user_id:
            return None, "Invoice not found"
        return serialize_invoice(record), ""


def _find_by_number(session, user_id: int, invoice_number: str) -> InvoiceRecord | None:
    return session.exec(
        select(InvoiceRecord).where(
            InvoiceRecord.user_id == user_id,
            InvoiceRecord.invoice_number == invoice_number,
        )
    ).first()


def save_invoice(user_id: int, invoice: Invoice) -> tuple[dict, bool]:
    """Upsert by invoice number within the owner's invoices.

    Returns the stored representation and whether a new record was created.
    Raises InvoiceValidationError before touching the database.
    """
    validate_invoice_for_save(invoice)
    computed = apply_invoice_totals(invoice)
    invoice_number = computed.invoice_number
    payload_json = json.dumps(computed.to_payload(), ensure_ascii=False)
    now = _now()

    with get_session() as session:
        existing = _find_by_number(session, user_id, invoice_number)
        created = existing is None
        if existing is None:
            record = InvoiceRecord(
                user_id=user_id,
                invoice_number=invoice_number,
                payload_json=payload_json,
                created_at=now,
                updated_at=now,
            )
            session.add(record)
            try:
                session.commit()
            except IntegrityError:
                # A concurrent save created the same number first; update that one.
                session.rollback()
                record = _find_by_number(session, user_id, invoice_number)
                if record is None:
                    raise
                created = False
                record.payload_json = payload_json
                record.updated_at = now
                session.add(record)
                session.commit()
        else:
            record = existing
            record.payload_json = payload_json
            record.updated_at = now
            session.add(record)
            session.commit()
        session.refresh(record)
        result = serialize_invoice(record)

    logger.info(
        "invoice.saved user_id=%s invoice_id=%s number=%s created=%s",
        user_id,
        result["id"],
        invoice_number,
        created,
    )
    return result, created


def delete_invoice(user_id: int, invoice_id: int) -> tuple[bool, str]:
    with get_session() as session:
        record = session.get(InvoiceRecord, invoice_id)
        if not record or record.user_id != user_id:
            return False, "Invoice not found"
        session.delete(record)
        session.commit()
    logger.info("invoice.deleted user_id=%s invoice_id=%s", user_id, invoice_id)
    return True, ""
