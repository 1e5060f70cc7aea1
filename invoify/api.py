from __future__ import annotations

import hashlib
import json
import logging

from cachetools import TTLCache
from fastapi import Depends, FastAPI, HTTPException, Request, Response
from pydantic import BaseModel

from . import __version__
from .config import get_settings
from .data import User, init_db
from .invoice_numbering import build_export_filename
from .models import Invoice, InvoiceValidationError
from .services import auth as auth_service
from .services import invoices as invoice_service
from .services.email import send_invoice_email
from .services.export import render_export
from .services.invoice_pdf import render_invoice_to_pdf_bytes
from .variables import AUTH_COOKIE_NAME

logger = logging.getLogger(__name__)

_PDF_CACHE_TTL_SECONDS = 300
_PDF_CACHE_MAXSIZE = 128
_pdf_cache: TTLCache = TTLCache(maxsize=_PDF_CACHE_MAXSIZE, ttl=_PDF_CACHE_TTL_SECONDS)


class Credentials(BaseModel):
    email: str = ""
    password: str = ""
    name: str = ""


class SendInvoiceRequest(BaseModel):
    email: str
    invoice: Invoice


def _set_auth_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        AUTH_COOKIE_NAME,
        token,
        max_age=settings.token_ttl_hours * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )


def current_user(request: Request) -> User:
    user = auth_service.get_user_by_token(request.cookies.get(AUTH_COOKIE_NAME))
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def _parse_invoice_id(raw: str) -> int:
    try:
        invoice_id = int(raw)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid invoice ID")
    if invoice_id <= 0:
        raise HTTPException(status_code=400, detail="Invalid invoice ID")
    return invoice_id


def _cached_pdf(invoice: Invoice) -> bytes:
    payload = json.dumps(invoice.to_payload(), sort_keys=True, ensure_ascii=False)
    cache_key = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    cached = _pdf_cache.get(cache_key)
    if cached is not None:
        return cached
    pdf_bytes = render_invoice_to_pdf_bytes(invoice)
    _pdf_cache[cache_key] = pdf_bytes
    return pdf_bytes


def create_app() -> FastAPI:
    init_db()
    app = FastAPI(title="Invoify", version=__version__)

    # --- AUTH ---
    @app.post("/api/auth/signup", status_code=201)
    def signup(credentials: Credentials, response: Response):
        user, error = auth_service.register_user(credentials.email, credentials.password, credentials.name)
        if user is None:
            status = 409 if error.endswith("already exists") else 400
            raise HTTPException(status_code=status, detail=error)
        token, _ = auth_service.create_session_token(int(user.id))
        _set_auth_cookie(response, token)
        return {"user": auth_service.serialize_user(user)}

    @app.post("/api/auth/login")
    def login(credentials: Credentials, response: Response):
        user, error = auth_service.authenticate(credentials.email, credentials.password)
        if user is None:
            status = 401 if error == "Invalid email or password" else 400
            raise HTTPException(status_code=status, detail=error)
        token, _ = auth_service.create_session_token(int(user.id))
        _set_auth_cookie(response, token)
        logger.info("auth.login user_id=%s", user.id)
        return {"user": auth_service.serialize_user(user)}

    @app.post("/api/auth/logout")
    def logout(request: Request, response: Response):
        auth_service.revoke_token(request.cookies.get(AUTH_COOKIE_NAME))
        response.delete_cookie(AUTH_COOKIE_NAME)
        return {"success": True}

    @app.get("/api/auth/me")
    def me(user: User = Depends(current_user)):
        return {"user": auth_service.serialize_user(user)}

    # --- INVOICES ---
    @app.get("/api/invoices")
    def list_invoices(user: User = Depends(current_user)):
        return {"invoices": invoice_service.list_invoices(int(user.id))}

    @app.post("/api/invoices")
    def save_invoice(invoice: Invoice, response: Response, user: User = Depends(current_user)):
        try:
            saved, created = invoice_service.save_invoice(int(user.id), invoice)
        except InvoiceValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        response.status_code = 201 if created else 200
        return {"invoice": saved, "created": created}

    @app.post("/api/invoices/export")
    def export_invoice(invoice: Invoice, format: str = "json"):
        try:
            content, media_type = render_export(invoice, format)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        filename = build_export_filename(invoice.invoice_number, format)
        headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
        return Response(content=content, media_type=media_type, headers=headers)

    @app.post("/api/invoices/generate")
    def generate_pdf(invoice: Invoice):
        pdf_bytes = _cached_pdf(invoice)
        filename = build_export_filename(invoice.invoice_number, "pdf")
        headers = {"Content-Disposition": f'inline; filename="{filename}"'}
        return Response(content=pdf_bytes, media_type="application/pdf", headers=headers)

    @app.post("/api/invoices/send")
    def send_pdf(request_body: SendInvoiceRequest):
        email = request_body.email.strip()
        if not auth_service.is_valid_email(email):
            raise HTTPException(status_code=400, detail="Email address is invalid")
        pdf_bytes = _cached_pdf(request_body.invoice)
        try:
            sent = send_invoice_email(email, request_body.invoice.invoice_number, pdf_bytes)
        except RuntimeError:
            raise HTTPException(status_code=502, detail="Failed to send email")
        if not sent:
            raise HTTPException(status_code=503, detail="Email service is not configured")
        return {"success": True}

    @app.get("/api/invoices/{invoice_id}")
    def get_invoice(invoice_id: str, user: User = Depends(current_user)):
        invoice, error = invoice_service.get_invoice(int(user.id), _parse_invoice_id(invoice_id))
        if invoice is None:
            raise HTTPException(status_code=404, detail=error)
        return {"invoice": invoice}

    @app.delete("/api/invoices/{invoice_id}")
    def delete_invoice(invoice_id: str, user: User = Depends(current_user)):
        ok, error = invoice_service.delete_invoice(int(user.id), _parse_invoice_id(invoice_id))
        if not ok:
            raise HTTPException(status_code=404, detail=error)
        return {"success": True}

    return app
