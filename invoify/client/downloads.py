from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..variables import LOCAL_STORAGE_DOWNLOAD_DIRECTORY_KEY
from .storage import KeyValueStore

logger = logging.getLogger(__name__)


def set_download_directory(store: KeyValueStore, directory: str | Path | None) -> None:
    if directory is None or str(directory).strip() == "":
        store.remove(LOCAL_STORAGE_DOWNLOAD_DIRECTORY_KEY)
        return
    store.set(LOCAL_STORAGE_DOWNLOAD_DIRECTORY_KEY, str(directory))


def _write_into(directory: Path, filename: str, data: bytes) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / filename
    target.write_bytes(data)
    return target


def save_file(
    data: bytes,
    filename: str,
    store: Optional[KeyValueStore] = None,
    default_dir: str | Path | None = None,
) -> Optional[Path]:
    """Write a download into the preferred directory, falling back to the default one.

    Returns the written path, or None when neither location is writable.
    """
    candidates: list[Path] = []
    preferred = store.get(LOCAL_STORAGE_DOWNLOAD_DIRECTORY_KEY) if store is not None else None
    if preferred:
        candidates.append(Path(preferred).expanduser())
    if default_dir is not None:
        candidates.append(Path(default_dir).expanduser())

    for directory in candidates:
        try:
            path = _write_into(directory, filename, data)
        except OSError as exc:
            logger.warning("download.write_failed dir=%s file=%s error=%s", directory, filename, exc)
            continue
        logger.info("download.saved path=%s bytes=%s", path, len(data))
        return path
    return None
