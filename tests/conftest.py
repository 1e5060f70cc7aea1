from __future__ import annotations

from pathlib import Path

import pytest
from sqlmodel import SQLModel, create_engine

from invoify import data as data_module
from invoify.client.storage import MappingKeyValueStore
from invoify.client.toasts import Toasts


def _make_test_engine(tmp_path: Path):
    engine = create_engine(f"sqlite:///{tmp_path}/test.db", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_engine(tmp_path: Path, monkeypatch):
    engine = _make_test_engine(tmp_path)
    monkeypatch.setattr(data_module, "engine", engine)
    yield engine
    engine.dispose()


@pytest.fixture
def api_app(db_engine):
    from invoify.api import create_app

    return create_app()


@pytest.fixture
def memory_store() -> MappingKeyValueStore:
    return MappingKeyValueStore({})


class CollectingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str, str]] = []

    def __call__(self, variant: str, title: str, description: str) -> None:
        self.messages.append((variant, title, description))

    @property
    def titles(self) -> list[str]:
        return [title for _, title, _ in self.messages]

    @property
    def errors(self) -> list[tuple[str, str, str]]:
        return [m for m in self.messages if m[0] == "destructive"]


@pytest.fixture
def notifier() -> CollectingNotifier:
    return CollectingNotifier()


@pytest.fixture
def toasts(notifier) -> Toasts:
    return Toasts(notify=notifier)
