from __future__ import annotations

from typing import Any

import pytest

from sigmerge.config import ENV_KEYS
from sigmerge.domain.exceptions import ConnectivityError
from sigmerge.domain.ports.progress import ProgressEvent


class FakeCollection:
    """In-memory stand-in for a store collection."""

    def __init__(self, name: str, documents: list[dict[str, Any]] | None = None):
        self.name = name
        self.documents: list[dict[str, Any]] = [dict(doc) for doc in documents or []]
        self.insert_calls: list[list[dict[str, Any]]] = []
        self.read_error_after: int | None = None
        self.insert_error: Exception | None = None

    def iter_documents(self):
        for idx, doc in enumerate(list(self.documents)):
            if self.read_error_after is not None and idx >= self.read_error_after:
                raise ConnectivityError("connection reset by peer", collection=self.name)
            yield dict(doc)

    def insert_many(self, documents: list[dict[str, Any]]) -> int:
        self.insert_calls.append([dict(doc) for doc in documents])
        if self.insert_error is not None:
            raise self.insert_error
        self.documents.extend(dict(doc) for doc in documents)
        return len(documents)


class FakeStore:
    def __init__(self, collections: dict[str, list[dict[str, Any]]] | None = None):
        self.collections: dict[str, FakeCollection] = {}
        for name, docs in (collections or {}).items():
            self.collections[name] = FakeCollection(name, docs)
        self.ping_error: Exception | None = None
        self.pings = 0
        self.closed = False

    def ping(self) -> None:
        self.pings += 1
        if self.ping_error is not None:
            raise self.ping_error

    def collection(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    def close(self) -> None:
        self.closed = True


class CapturingProgress:
    def __init__(self):
        self.events: list[ProgressEvent] = []

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)

    @property
    def messages(self) -> list[str]:
        return [event.message for event in self.events]


def make_doc(signature: str, **fields: Any) -> dict[str, Any]:
    doc: dict[str, Any] = {"signature": signature}
    doc.update(fields)
    return doc


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    for names in ENV_KEYS.values():
        for name in names:
            # setenv first so that values loaded from .env during a test are undone too
            monkeypatch.setenv(name, "")
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def progress() -> CapturingProgress:
    return CapturingProgress()


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()
