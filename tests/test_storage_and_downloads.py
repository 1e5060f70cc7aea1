from __future__ import annotations

from pathlib import Path

from invoify.client.downloads import save_file, set_download_directory
from invoify.client.storage import JsonFileKeyValueStore, MappingKeyValueStore, read_json, write_json


def test_json_file_store_persists(tmp_path: Path) -> None:
    path = tmp_path / "state" / "store.json"
    store = JsonFileKeyValueStore(path)
    write_json(store, "numbers", [1, 2])
    store.set("plain", "value")

    reopened = JsonFileKeyValueStore(path)
    assert read_json(reopened, "numbers") == [1, 2]
    assert reopened.get("plain") == "value"

    reopened.remove("plain")
    assert JsonFileKeyValueStore(path).get("plain") is None


def test_unreadable_file_store_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("not json", encoding="utf-8")
    assert JsonFileKeyValueStore(path).get("anything") is None


def test_read_json_default_on_corruption() -> None:
    store = MappingKeyValueStore({"k": "{oops"})
    assert read_json(store, "k", []) == []
    assert read_json(store, "missing", "default") == "default"


def test_save_file_prefers_stored_directory(tmp_path: Path) -> None:
    store = MappingKeyValueStore({})
    preferred = tmp_path / "preferred"
    set_download_directory(store, preferred)

    path = save_file(b"data", "invoice.pdf", store, tmp_path / "default")
    assert path == preferred / "invoice.pdf"
    assert path.read_bytes() == b"data"


def test_save_file_falls_back_to_default(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    store = MappingKeyValueStore({})
    set_download_directory(store, blocker / "sub")

    path = save_file(b"data", "invoice.json", store, tmp_path / "default")
    assert path == tmp_path / "default" / "invoice.json"


def test_save_file_without_any_directory() -> None:
    assert save_file(b"data", "invoice.pdf", MappingKeyValueStore({})) is None
