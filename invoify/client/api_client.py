from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..config import get_settings
from ..models import Invoice
from ..variables import (
    AUTH_COOKIE_NAME,
    AUTH_LOGIN_API,
    AUTH_LOGOUT_API,
    AUTH_ME_API,
    AUTH_SIGNUP_API,
    EXPORT_INVOICE_API,
    GENERATE_PDF_API,
    INVOICES_API,
    SEND_PDF_API,
)

logger = logging.getLogger(__name__)

NETWORK_ERROR = "Network error. Please try again."
INVALID_RESPONSE = "Invalid response from server"


def _error_detail(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return f"Request failed with status {resp.status_code}"
    detail = payload.get("detail") if isinstance(payload, dict) else None
    if isinstance(detail, list):
        # FastAPI validation errors
        messages = [str(entry.get("msg", entry)) if isinstance(entry, dict) else str(entry) for entry in detail]
        return "; ".join(messages) or f"Request failed with status {resp.status_code}"
    if detail:
        return str(detail)
    return f"Request failed with status {resp.status_code}"


def _user(data: Any) -> dict | None:
    user = data.get("user") if isinstance(data, dict) else None
    return user if isinstance(user, dict) else None


class RemoteApiClient:
    """Async client for the invoice API. Every call returns ``(data, error)`` and never raises on transport errors or malformed replies."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        session_token: str | None = None,
        timeout_s: float = 15.0,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url or get_settings().api_base_url,
            transport=transport,
            timeout=timeout_s,
        )
        if session_token:
            self._client.cookies.set(AUTH_COOKIE_NAME, session_token)

    @property
    def session_token(self) -> str | None:
        # The jar may hold the injected token and a server-set one; the latest wins.
        token = None
        for cookie in self._client.cookies.jar:
            if cookie.name == AUTH_COOKIE_NAME:
                token = cookie.value
        return token

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> tuple[httpx.Response | None, str]:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("api.network_error method=%s path=%s error=%s", method, path, exc)
            return None, NETWORK_ERROR
        if resp.status_code >= 400:
            error = _error_detail(resp)
            logger.info("api.error method=%s path=%s status=%s detail=%s", method, path, resp.status_code, error)
            return None, error
        return resp, ""

    async def _json(self, method: str, path: str, **kwargs: Any) -> tuple[Any, str]:
        resp, error = await self._request(method, path, **kwargs)
        if resp is None:
            return None, error
        try:
            return resp.json(), ""
        except ValueError:
            return None, INVALID_RESPONSE

    # --- auth ---
    async def signup(self, email: str, password: str, name: str = "") -> tuple[dict | None, str]:
        self._client.cookies.clear()
        data, error = await self._json("POST", AUTH_SIGNUP_API, json={"email": email, "password": password, "name": name})
        return _user(data), error

    async def login(self, email: str, password: str) -> tuple[dict | None, str]:
        self._client.cookies.clear()
        data, error = await self._json("POST", AUTH_LOGIN_API, json={"email": email, "password": password})
        return _user(data), error

    async def logout(self) -> tuple[bool, str]:
        data, error = await self._json("POST", AUTH_LOGOUT_API)
        self._client.cookies.clear()
        return data is not None, error

    async def me(self) -> tuple[dict | None, str]:
        data, error = await self._json("GET", AUTH_ME_API)
        return _user(data), error

    # --- invoices ---
    async def list_invoices(self) -> tuple[list[Invoice] | None, str]:
        data, error = await self._json("GET", INVOICES_API)
        if data is None:
            return None, error
        try:
            return [Invoice.model_validate(raw) for raw in data["invoices"]], ""
        except (KeyError, TypeError, ValidationError):
            logger.warning("api.invalid_response path=%s", INVOICES_API)
            return None, INVALID_RESPONSE

    async def save_invoice(self, invoice: Invoice) -> tuple[Invoice | None, str]:
        data, error = await self._json("POST", INVOICES_API, json=invoice.to_payload())
        if data is None:
            return None, error
        try:
            return Invoice.model_validate(data["invoice"]), ""
        except (KeyError, TypeError, ValidationError):
            logger.warning("api.invalid_response path=%s", INVOICES_API)
            return None, INVALID_RESPONSE

    async def delete_invoice(self, invoice_id: str) -> tuple[bool, str]:
        data, error = await self._json("DELETE", f"{INVOICES_API}/{invoice_id}")
        return data is not None, error

    # --- rendering ---
    async def export(self, export_format: str, invoice: Invoice) -> tuple[bytes | None, str]:
        resp, error = await self._request(
            "POST", EXPORT_INVOICE_API, params={"format": export_format}, json=invoice.to_payload()
        )
        return (resp.content if resp is not None else None), error

    async def generate_pdf(self, invoice: Invoice) -> tuple[bytes | None, str]:
        resp, error = await self._request("POST", GENERATE_PDF_API, json=invoice.to_payload())
        return (resp.content if resp is not None else None), error

    async def send_pdf(self, email: str, invoice: Invoice) -> tuple[bool, str]:
        data, error = await self._json("POST", SEND_PDF_API, json={"email": email, "invoice": invoice.to_payload()})
        return data is not None, error
