from __future__ import annotations

from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from sqlmodel import select

from invoify.data import Token, get_session
from invoify.services import auth as auth_service
from invoify.variables import AUTH_COOKIE_NAME


def _payload(number: str = "7", **details) -> dict:
    body = {
        "sender": {"name": "Sender"},
        "receiver": {"name": "Receiver"},
        "details": {
            "invoiceNumber": number,
            "invoiceDate": "2024-05-01",
            "currency": "USD",
            "items": [{"name": "Flight", "quantity": 2, "unitPrice": "100"}],
        },
    }
    body["details"].update(details)
    return body


def _signed_in(api_app, email: str = "owner@example.com") -> TestClient:
    client = TestClient(api_app)
    resp = client.post("/api/auth/signup", json={"email": email, "password": "secret1", "name": "Owner"})
    assert resp.status_code == 201
    return client


def test_signup_login_me_logout(api_app) -> None:
    client = _signed_in(api_app)
    assert AUTH_COOKIE_NAME in client.cookies

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "owner@example.com"

    assert client.post("/api/auth/logout").status_code == 200
    client.cookies.clear()
    assert client.get("/api/auth/me").status_code == 401

    login = client.post("/api/auth/login", json={"email": "OWNER@example.com", "password": "secret1"})
    assert login.status_code == 200
    assert client.get("/api/auth/me").status_code == 200


def test_signup_validation(api_app) -> None:
    client = TestClient(api_app)
    short = client.post("/api/auth/signup", json={"email": "a@example.com", "password": "123"})
    assert short.status_code == 400
    assert short.json()["detail"] == "Password must be at least 6 characters"

    bad_email = client.post("/api/auth/signup", json={"email": "nope", "password": "secret1"})
    assert bad_email.status_code == 400

    _signed_in(api_app, "dup@example.com")
    dup = client.post("/api/auth/signup", json={"email": "dup@example.com", "password": "secret1"})
    assert dup.status_code == 409
    assert dup.json()["detail"] == "User with this email already exists"


def test_login_rejects_bad_password(api_app) -> None:
    _signed_in(api_app)
    client = TestClient(api_app)
    resp = client.post("/api/auth/login", json={"email": "owner@example.com", "password": "wrong-pass"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid email or password"


def test_revoked_token_is_rejected(api_app) -> None:
    client = _signed_in(api_app)
    token = client.cookies.get(AUTH_COOKIE_NAME)
    auth_service.revoke_token(token)
    assert client.get("/api/auth/me").status_code == 401
    with get_session() as session:
        assert session.exec(select(Token).where(Token.token == token)).one().revoked


def test_invoices_require_auth(api_app) -> None:
    client = TestClient(api_app)
    assert client.get("/api/invoices").status_code == 401
    assert client.post("/api/invoices", json=_payload()).status_code == 401
    assert client.delete("/api/invoices/1").status_code == 401


def test_save_creates_then_updates(api_app) -> None:
    client = _signed_in(api_app)

    created = client.post("/api/invoices", json=_payload("7"))
    assert created.status_code == 201
    body = created.json()
    assert body["created"] is True
    invoice = body["invoice"]
    # Totals are recomputed on the server; per-passenger billing forces quantity 1.
    assert invoice["details"]["subTotal"] == "100.00"
    assert invoice["details"]["totalAmount"] == "100.00"
    assert invoice["details"]["totalAmountInWords"] == "One Hundred"

    updated = client.post("/api/invoices", json=_payload("7", taxDetails={"amount": 10, "amountType": "percentage"}))
    assert updated.status_code == 200
    assert updated.json()["created"] is False
    assert updated.json()["invoice"]["id"] == invoice["id"]
    assert updated.json()["invoice"]["createdAt"] == invoice["createdAt"]
    assert updated.json()["invoice"]["details"]["totalAmount"] == "110.00"

    listed = client.get("/api/invoices").json()["invoices"]
    assert len(listed) == 1

    fetched = client.get(f"/api/invoices/{invoice['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["invoice"]["details"]["invoiceNumber"] == "7"


def test_save_rejects_incomplete_invoice(api_app) -> None:
    client = _signed_in(api_app)
    resp = client.post("/api/invoices", json=_payload("", items=[]))
    assert resp.status_code == 400
    assert "Invoice number is required" in resp.json()["detail"]
    assert client.get("/api/invoices").json()["invoices"] == []


def test_negative_unit_price_is_rejected(api_app) -> None:
    client = _signed_in(api_app)
    resp = client.post("/api/invoices", json=_payload("1", items=[{"name": "x", "unitPrice": -1}]))
    assert resp.status_code == 422


def test_invalid_and_foreign_ids(api_app) -> None:
    owner = _signed_in(api_app, "owner@example.com")
    invoice_id = owner.post("/api/invoices", json=_payload("1")).json()["invoice"]["id"]

    other = _signed_in(api_app, "other@example.com")
    assert other.get(f"/api/invoices/{invoice_id}").status_code == 404
    assert other.delete(f"/api/invoices/{invoice_id}").json()["detail"] == "Invoice not found"

    assert owner.get("/api/invoices/abc").status_code == 400
    assert owner.get("/api/invoices/abc").json()["detail"] == "Invalid invoice ID"
    assert owner.get("/api/invoices/999").status_code == 404

    assert owner.delete(f"/api/invoices/{invoice_id}").status_code == 200
    assert owner.get("/api/invoices").json()["invoices"] == []


def test_export_formats(api_app) -> None:
    client = TestClient(api_app)
    for fmt, media_type in (
        ("json", "application/json"),
        ("csv", "text/csv"),
        ("xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
        ("pdf", "application/pdf"),
    ):
        resp = client.post(f"/api/invoices/export?format={fmt}", json=_payload("INV 1"))
        assert resp.status_code == 200, fmt
        assert resp.headers["content-type"].startswith(media_type)
        assert resp.content
        assert f'filename="inv_1.{fmt}"' in resp.headers["content-disposition"]

    unknown = client.post("/api/invoices/export?format=docx", json=_payload())
    assert unknown.status_code == 400


def test_generate_pdf(api_app) -> None:
    client = TestClient(api_app)
    resp = client.post("/api/invoices/generate", json=_payload())
    assert resp.status_code == 200
    assert resp.content.startswith(b"%PDF")


def test_send_without_smtp_config(api_app, monkeypatch) -> None:
    for name in ("SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASS"):
        monkeypatch.delenv(name, raising=False)
    client = TestClient(api_app)

    bad = client.post("/api/invoices/send", json={"email": "nope", "invoice": _payload()})
    assert bad.status_code == 400

    resp = client.post("/api/invoices/send", json={"email": "to@example.com", "invoice": _payload()})
    assert resp.status_code == 503


def test_timestamps_are_utc_aware(api_app) -> None:
    client = _signed_in(api_app)
    invoice = client.post("/api/invoices", json=_payload("1")).json()["invoice"]
    created = datetime.fromisoformat(invoice["createdAt"])
    assert created.utcoffset() == timedelta(0)

    me = client.get("/api/auth/me").json()["user"]
    token, expires_at = auth_service.create_session_token(int(me["id"]))
    assert expires_at.tzinfo is not None
    assert auth_service.get_user_by_token(token).email == "owner@example.com"

    expired, _ = auth_service.create_session_token(int(me["id"]), expires_in=timedelta(seconds=-1))
    assert auth_service.get_user_by_token(expired) is None
