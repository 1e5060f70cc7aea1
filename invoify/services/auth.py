from __future__ import annotations

import hashlib
import hmac
import logging
import re
import secrets
import uuid
from datetime import datetime, timedelta

from sqlmodel import select

from ..config import get_settings
from ..data import Token, User, as_utc, get_session, utcnow

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 6
_PBKDF2_ITERATIONS = 240_000
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _hash_password(password: str, salt: str | None = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), _PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${_PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def _verify_password(password: str, stored: str) -> bool:
    try:
        scheme, iterations, salt, expected = stored.split("$", 3)
        rounds = int(iterations)
    except ValueError:
        return False
    if scheme != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), rounds)
    return hmac.compare_digest(digest.hex(), expected)


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str | None) -> bool:
    return bool(_EMAIL_RE.match(_normalize_email(email)))


def _mask_token(token: str | None, visible: int = 4) -> str:
    if not token:
        return ""
    token_str = str(token)
    if len(token_str) <= visible * 2:
        return "***"
    return f"{token_str[:visible]}...{token_str[-visible:]}"


def serialize_user(user: User) -> dict:
    return {"id": str(user.id), "email": user.email, "name": user.name or ""}


def register_user(email: str | None, password: str | None, name: str | None = "") -> tuple[User | None, str]:
    email_normalized = _normalize_email(email)
    if not email_normalized or not password:
        return None, "Email and password are required"
    if not is_valid_email(email_normalized):
        return None, "Email address is invalid"
    if len(password) < PASSWORD_MIN_LENGTH:
        return None, f"Password must be at least {PASSWORD_MIN_LENGTH} characters"

    with get_session() as session:
        existing = session.exec(select(User).where(User.email == email_normalized)).first()
        if existing:
            return None, "User with this email already exists"
        user = User(
            email=email_normalized,
            password_hash=_hash_password(password),
            name=(name or "").strip(),
        )
        session.add(user)
        session.commit()
        session.refresh(user)
    logger.info("auth.signup user_id=%s", user.id)
    return user, ""


def authenticate(email: str | None, password: str | None) -> tuple[User | None, str]:
    email_normalized = _normalize_email(email)
    if not email_normalized or not password:
        return None, "Email and password are required"
    with get_session() as session:
        user = session.exec(select(User).where(User.email == email_normalized)).first()
    if not user or not _verify_password(password, user.password_hash):
        logger.info("auth.login_failed email=%s", email_normalized)
        return None, "Invalid email or password"
    return user, ""


def create_session_token(user_id: int, expires_in: timedelta | None = None) -> tuple[str, datetime]:
    expires_in = expires_in or timedelta(hours=get_settings().token_ttl_hours)
    token_value = uuid.uuid4().hex
    expires_at = utcnow() + expires_in
    with get_session() as session:
        session.add(Token(user_id=user_id, token=token_value, expires_at=expires_at))
        session.commit()
    logger.debug("auth.token_created user_id=%s token=%s", user_id, _mask_token(token_value))
    return token_value, expires_at


def get_user_by_token(token: str | None) -> User | None:
    token_value = (token or "").strip()
    if not token_value:
        return None
    with get_session() as session:
        record = session.exec(select(Token).where(Token.token == token_value)).first()
        if not record or record.revoked:
            return None
        if as_utc(record.expires_at) <= utcnow():
            return None
        return session.get(User, record.user_id)


def revoke_token(token: str | None) -> None:
    token_value = (token or "").strip()
    if not token_value:
        return
    with get_session() as session:
        record = session.exec(select(Token).where(Token.token == token_value)).first()
        if not record or record.revoked:
            return
        record.revoked = True
        session.add(record)
        session.commit()
    logger.debug("auth.token_revoked token=%s", _mask_token(token_value))
