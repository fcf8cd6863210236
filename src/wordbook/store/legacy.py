"""LegacyMirror: the whole notebook as one serialized blob in the key-value store.

Also home to the small preferences kept beside it: the language preference
and the remote mirror credentials.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from wordbook.entry import Entry
from wordbook.errors import CorruptData, StoreError
from wordbook.store.base import LoadResult
from wordbook.store.kv import KeyValueStore

logger = logging.getLogger(__name__)

NOTEBOOK_KEY = "ai-dictionary-notebook"
LANGUAGE_KEY = "ai-dictionary-language"
CREDENTIALS_KEY = "notion-config"
DEFAULT_LANGUAGE = "en"


class LegacyMirror:
    """Fallback store: ``put`` overwrites, ``get_all`` deserializes."""

    name = "legacy"

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    def put(self, entries: list[Entry]) -> None:
        self.kv.set_item(NOTEBOOK_KEY, json.dumps([e.to_dict() for e in entries], ensure_ascii=False))

    def get_all(self) -> list[Entry]:
        raw = self.kv.get_item(NOTEBOOK_KEY)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CorruptData(f"Stored notebook is not valid JSON: {exc}") from exc
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise CorruptData("Stored notebook is not a list of entries")
        try:
            return [Entry.from_dict(item) for item in data]
        except (ValueError, TypeError) as exc:
            raise CorruptData(f"Stored notebook has an unreadable entry: {exc}") from exc

    def try_get_all(self) -> LoadResult:
        try:
            return LoadResult(self.name, entries=self.get_all())
        except StoreError as exc:
            logger.warning("Ignoring unreadable legacy notebook: %s", exc)
            return LoadResult(self.name, error=exc)


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


def save_language(kv: KeyValueStore, language: str) -> None:
    kv.set_item(LANGUAGE_KEY, language)


def load_language(kv: KeyValueStore) -> str:
    return kv.get_item(LANGUAGE_KEY) or DEFAULT_LANGUAGE


@dataclass(frozen=True)
class RemoteCredentials:
    """API key and database id for the remote mirror, supplied by the user."""

    api_key: str
    database_id: str

    @property
    def complete(self) -> bool:
        return bool(self.api_key and self.database_id)

    def to_dict(self) -> dict[str, str]:
        return {"apiKey": self.api_key, "databaseId": self.database_id}


def save_credentials(kv: KeyValueStore, credentials: RemoteCredentials) -> None:
    kv.set_item(CREDENTIALS_KEY, json.dumps(credentials.to_dict()))


def load_credentials(kv: KeyValueStore) -> RemoteCredentials | None:
    """Return stored credentials, or ``None`` when absent or unreadable."""
    raw = kv.get_item(CREDENTIALS_KEY)
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Stored remote credentials are not valid JSON; ignoring them")
        return None
    if not isinstance(data, dict):
        return None
    return RemoteCredentials(
        api_key=str(data.get("apiKey") or ""),
        database_id=str(data.get("databaseId") or ""),
    )


def clear_credentials(kv: KeyValueStore) -> None:
    kv.remove_item(CREDENTIALS_KEY)


def is_configured(kv: KeyValueStore) -> bool:
    creds = load_credentials(kv)
    return creds is not None and creds.complete
