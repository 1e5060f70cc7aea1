from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_FILE_NAME = "invoify.log"
MAX_LOG_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5

_MARKER = "_invoify_handler"


def _level_from_env() -> int:
    if os.getenv("INVOIFY_DEBUG") == "1":
        return logging.DEBUG
    level = logging.getLevelName((os.getenv("INVOIFY_LOG_LEVEL") or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _tag(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    setattr(handler, _MARKER, True)
    return handler


def setup_logging(log_dir: str | Path | None = None) -> None:
    """Stdout plus a rotating file under log_dir. Calling again only updates levels."""
    level = _level_from_env()
    root = logging.getLogger()
    root.setLevel(level)

    ours = [h for h in root.handlers if getattr(h, _MARKER, False)]
    if ours:
        for handler in ours:
            handler.setLevel(level)
        return

    directory = Path(log_dir or os.getenv("INVOIFY_LOG_DIR") or "./data/logs")
    directory.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT)

    root.addHandler(_tag(logging.StreamHandler(sys.stdout), level, formatter))
    root.addHandler(
        _tag(
            RotatingFileHandler(directory / LOG_FILE_NAME, maxBytes=MAX_LOG_BYTES, backupCount=BACKUP_COUNT),
            level,
            formatter,
        )
    )
