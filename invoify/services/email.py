# invoify/services/email.py
from __future__ import annotations

import logging
import os
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage

logger = logging.getLogger(__name__)

_SMTP_TIMEOUT_S = 12
_IMPLICIT_TLS_PORT = 465


@dataclass(frozen=True)
class SmtpConfig:
    host: str
    port: int
    user: str
    password: str
    sender: str

    @classmethod
    def from_env(cls) -> SmtpConfig | None:
        """Read SMTP_* variables; None when the server is not configured."""
        host = (os.getenv("SMTP_HOST") or "").strip()
        port = (os.getenv("SMTP_PORT") or "").strip()
        user = (os.getenv("SMTP_USER") or "").strip()
        password = os.getenv("SMTP_PASS") or ""
        if not (host and port and user and password):
            return None
        try:
            port_value = int(port)
        except ValueError as exc:
            raise ValueError(f"Invalid SMTP_PORT value: {port}") from exc
        sender = (os.getenv("SMTP_FROM") or "").strip() or user
        return cls(host=host, port=port_value, user=user, password=password, sender=sender)


def build_invoice_message(sender: str, to: str, invoice_number: str, pdf_bytes: bytes) -> EmailMessage:
    label = f"Invoice {invoice_number}" if invoice_number else "Invoice"
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = f"Your invoice: {label}"
    message.set_content(f"Hello,\n\nplease find {label} attached.\n\nThank you for your business.")
    message.add_attachment(
        pdf_bytes,
        maintype="application",
        subtype="pdf",
        filename=f"invoice-{invoice_number or 'document'}.pdf",
    )
    return message


def _deliver(cfg: SmtpConfig, message: EmailMessage) -> None:
    if cfg.port == _IMPLICIT_TLS_PORT:
        with smtplib.SMTP_SSL(cfg.host, cfg.port, timeout=_SMTP_TIMEOUT_S) as smtp:
            smtp.login(cfg.user, cfg.password)
            smtp.send_message(message)
        return
    with smtplib.SMTP(cfg.host, cfg.port, timeout=_SMTP_TIMEOUT_S) as smtp:
        smtp.ehlo()
        smtp.starttls()
        smtp.ehlo()
        smtp.login(cfg.user, cfg.password)
        smtp.send_message(message)


def send_invoice_email(
    to: str,
    invoice_number: str,
    pdf_bytes: bytes,
    smtp_config: SmtpConfig | None = None,
) -> bool:
    """
    Mail a rendered invoice PDF as an attachment.
    Falls back to SMTP_* from the environment when no config is passed.
    Returns False when no SMTP server is configured, raises RuntimeError
    when the server rejects or drops the delivery.
    """
    cfg = smtp_config or SmtpConfig.from_env()
    if cfg is None:
        logger.warning("smtp.unconfigured to=%s number=%s", to, invoice_number)
        return False

    to = (to or "").strip()
    if not to:
        raise ValueError("Recipient address is required")
    if not pdf_bytes:
        raise ValueError("Invoice PDF is empty")

    message = build_invoice_message(cfg.sender, to, invoice_number, pdf_bytes)
    logger.info("smtp.send to=%s host=%s port=%s number=%s", to, cfg.host, cfg.port, invoice_number)
    try:
        _deliver(cfg, message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.exception("smtp.failed to=%s number=%s", to, invoice_number)
        raise RuntimeError("Failed to send email via SMTP") from exc
    return True
