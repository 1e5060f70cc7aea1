from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

_PACKAGE_DIR = Path(__file__).resolve().parent
_DOTENV_FILES = (_PACKAGE_DIR.parent / ".env", _PACKAGE_DIR / ".env")


def load_env() -> list[Path]:
    """Load .env files without overriding variables already set in the process."""
    loaded = [path for path in _DOTENV_FILES if path.exists()]
    for path in loaded:
        load_dotenv(dotenv_path=path, override=False)
    return loaded


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name} value: {raw}") from exc


def _env_flag(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    api_base_url: str
    download_dir: Path
    token_ttl_hours: int
    cookie_secure: bool
    storage_secret: str
    port: int
    draft_debounce_ms: int
    environment: str

    @property
    def is_production(self) -> bool:
        return self.environment in {"prod", "production"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_env()
    environment = (os.getenv("INVOIFY_ENV") or "development").strip().lower()
    storage_secret = (os.getenv("INVOIFY_STORAGE_SECRET") or "").strip()
    if not storage_secret:
        if environment in {"prod", "production"}:
            raise RuntimeError("INVOIFY_STORAGE_SECRET must be set in production")
        storage_secret = "invoify-dev-secret"
    return Settings(
        database_url=(os.getenv("INVOIFY_DATABASE_URL") or "sqlite:///storage/database.db").strip(),
        api_base_url=(os.getenv("INVOIFY_API_BASE_URL") or "http://localhost:8000").rstrip("/"),
        download_dir=Path(os.getenv("INVOIFY_DOWNLOAD_DIR") or "./downloads"),
        token_ttl_hours=_env_int("INVOIFY_TOKEN_TTL_HOURS", 24 * 7),
        cookie_secure=_env_flag("INVOIFY_COOKIE_SECURE", default=environment in {"prod", "production"}),
        storage_secret=storage_secret,
        port=_env_int("INVOIFY_PORT", 8000),
        draft_debounce_ms=_env_int("INVOIFY_DRAFT_DEBOUNCE_MS", 300),
        environment=environment,
    )
