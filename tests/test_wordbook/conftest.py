"""Shared fixtures: sample entries, on-disk stores and an in-process fake Notion API."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from fakes import API_KEY, DATABASE_ID, T0, FakeNotion
from wordbook.entry import Entry, Example
from wordbook.remote.notion import NotionMirror
from wordbook.store.entry_store import EntryStore
from wordbook.store.kv import KeyValueStore
from wordbook.store.legacy import RemoteCredentials
from wordbook.sync import SyncCoordinator


@pytest.fixture()
def casa() -> Entry:
    return Entry(
        id="casa-es-1000",
        word="casa",
        definition="house",
        examples=[Example("Mi casa es grande", "My house is big")],
        usage_note="",
        saved_at=T0,
    )


@pytest.fixture()
def notion() -> FakeNotion:
    return FakeNotion()


@pytest.fixture()
def credentials() -> RemoteCredentials:
    return RemoteCredentials(API_KEY, DATABASE_ID)


@pytest.fixture()
def mirror(notion: FakeNotion) -> NotionMirror:
    m = NotionMirror(API_KEY, DATABASE_ID, base_url="https://notion.test", transport=httpx.MockTransport(notion))
    yield m
    m.close()


# ---------------------------------------------------------------------------
# Stores / coordinator
# ---------------------------------------------------------------------------


@pytest.fixture()
def entry_store(tmp_path: Path) -> EntryStore:
    store = EntryStore(tmp_path / "data" / "wordbook.duckdb")
    yield store
    store.close()


@pytest.fixture()
def kv(tmp_path: Path) -> KeyValueStore:
    return KeyValueStore(tmp_path / "data" / "local-storage.json")


@pytest.fixture()
def coordinator(tmp_path: Path, entry_store: EntryStore, kv: KeyValueStore, mirror: NotionMirror) -> SyncCoordinator:
    coord = SyncCoordinator(entry_store, kv, downloads_dir=tmp_path / "downloads", remote=mirror)
    yield coord
    coord.close()
