"""Notion database mirror.

A thin HTTP client over the Notion REST API that keeps one database page per
notebook word.  Local entries are identified by ``id``; remote pages are
identified by their ``Word`` title, so :func:`remote_key` is the only mapping
between the two identity domains.  Two local entries sharing a word collapse
into a single page (the later entry wins).

Expected database properties
----------------------------
Word        – title
Definition  – rich text
Usage Note  – rich text
Examples    – rich text (see :mod:`wordbook.remote.codec`)
Saved At    – date
<image>     – url, only when ``image_property`` is given

Environment variables (all optional; direct kwargs take precedence):
    WORDBOOK_NOTION_API_KEY      – integration secret
    WORDBOOK_NOTION_DATABASE_ID  – target database id
    WORDBOOK_NOTION_BASE_URL     – API root (default: https://api.notion.com)
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any

import httpx

from wordbook.entry import Entry, format_timestamp, parse_timestamp
from wordbook.errors import AuthError, NotFound, RemoteError, TransientError
from wordbook.remote.base import SyncReport
from wordbook.remote.codec import decode_examples, encode_examples, join_rich_text, to_rich_text
from wordbook.store.legacy import RemoteCredentials

logger = logging.getLogger(__name__)

NOTION_VERSION = "2022-06-28"
DEFAULT_BASE_URL = "https://api.notion.com"

WORD = "Word"
DEFINITION = "Definition"
USAGE_NOTE = "Usage Note"
EXAMPLES = "Examples"
SAVED_AT = "Saved At"


def remote_key(entry: Entry) -> str:
    """Identity of *entry* in the remote database (case-sensitive word)."""
    return entry.word


class NotionMirror:
    """Remote mirror backed by a Notion database."""

    name = "remote"

    def __init__(
        self,
        api_key: str | None = None,
        database_id: str | None = None,
        *,
        base_url: str | None = None,
        image_property: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.credentials = RemoteCredentials(
            api_key=api_key or os.getenv("WORDBOOK_NOTION_API_KEY", ""),
            database_id=database_id or os.getenv("WORDBOOK_NOTION_DATABASE_ID", ""),
        )
        self._image_property = image_property
        self._client = httpx.Client(
            base_url=(base_url or os.getenv("WORDBOOK_NOTION_BASE_URL", DEFAULT_BASE_URL)).rstrip("/"),
            headers={"Notion-Version": NOTION_VERSION, "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return self.credentials.complete

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _resolve(self, credentials: RemoteCredentials | None) -> RemoteCredentials:
        creds = credentials or self.credentials
        if not creds.api_key:
            raise AuthError("Notion API key not provided")
        if not creds.database_id:
            raise NotFound("Notion database ID not provided")
        return creds

    def _request(
        self,
        method: str,
        path: str,
        creds: RemoteCredentials,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            r = self._client.request(
                method,
                path,
                json=payload,
                headers={"Authorization": f"Bearer {creds.api_key}"},
            )
        except httpx.TimeoutException as exc:
            raise TransientError(f"Notion request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransientError(f"Notion is unreachable: {exc}") from exc
        _raise_for_status(r)
        try:
            return r.json()
        except ValueError as exc:
            raise TransientError(f"Notion returned an unreadable response ({r.status_code}): {exc}") from exc

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def query_pages(self, credentials: RemoteCredentials | None = None) -> list[dict[str, Any]]:
        """Return every non-archived page of the database, following pagination."""
        creds = self._resolve(credentials)
        pages: list[dict[str, Any]] = []
        body: dict[str, Any] = {"page_size": 100}
        while True:
            data = self._request("POST", f"/v1/databases/{creds.database_id}/query", creds, body)
            pages.extend(
                p for p in data.get("results", []) if not p.get("archived") and not p.get("in_trash")
            )
            cursor = data.get("next_cursor")
            if not data.get("has_more") or not cursor:
                return pages
            body = {"page_size": 100, "start_cursor": cursor}

    def page_properties(self, entry: Entry) -> dict[str, Any]:
        props: dict[str, Any] = {
            WORD: {"title": to_rich_text(entry.word)},
            DEFINITION: {"rich_text": to_rich_text(entry.definition)},
            USAGE_NOTE: {"rich_text": to_rich_text(entry.usage_note)},
            SAVED_AT: {"date": {"start": format_timestamp(entry.saved_at)}},
            EXAMPLES: {"rich_text": to_rich_text(encode_examples(entry.examples))},
        }
        if self._image_property:
            props[self._image_property] = {"url": entry.image_url or None}
        return props

    def create_page(self, entry: Entry, creds: RemoteCredentials) -> str:
        page = self._request(
            "POST",
            "/v1/pages",
            creds,
            {"parent": {"database_id": creds.database_id}, "properties": self.page_properties(entry)},
        )
        return page.get("id", "")

    def update_page(self, page_id: str, entry: Entry, creds: RemoteCredentials) -> None:
        self._request("PATCH", f"/v1/pages/{page_id}", creds, {"properties": self.page_properties(entry)})

    def archive_page(self, page_id: str, creds: RemoteCredentials) -> None:
        self._request("PATCH", f"/v1/pages/{page_id}", creds, {"archived": True})

    # ------------------------------------------------------------------
    # Mirror
    # ------------------------------------------------------------------

    def upsert_all(self, entries: list[Entry], credentials: RemoteCredentials | None = None) -> SyncReport:
        """Mirror *entries* into the database, one request per record.

        The initial query failing (bad key, unknown database, network down)
        raises; after that every create/update/archive failure is logged and
        recorded in the report without stopping the batch.
        """
        creds = self._resolve(credentials)
        existing: dict[str, list[str]] = {}
        for page in self.query_pages(creds):
            word = page_word(page)
            if word:
                existing.setdefault(word, []).append(page["id"])

        report = SyncReport()
        local: dict[str, Entry] = {}
        for entry in entries:
            key = remote_key(entry)
            if not key:
                logger.warning("Skipping entry %r with an empty word", entry.id)
                report.skipped.append(entry.id)
                continue
            local[key] = entry

        for word, entry in local.items():
            page_ids = existing.get(word, [])
            try:
                if page_ids:
                    self.update_page(page_ids[0], entry, creds)
                    report.updated.append(word)
                else:
                    self.create_page(entry, creds)
                    report.created.append(word)
            except RemoteError as exc:
                action = "updating" if page_ids else "creating"
                logger.error("Error %s page for %r: %s", action, word, exc)
                report.failures[word] = str(exc)

        for word, page_ids in existing.items():
            # Duplicate pages for a kept word are archived too, leaving one per word
            stale = page_ids if word not in local else page_ids[1:]
            for page_id in stale:
                try:
                    self.archive_page(page_id, creds)
                    report.archived.append(word)
                except RemoteError as exc:
                    logger.error("Error archiving page for %r: %s", word, exc)
                    report.failures.setdefault(word, str(exc))

        logger.info("Notion sync: %s", report.summary())
        return report

    def fetch_all(self, credentials: RemoteCredentials | None = None) -> list[Entry]:
        """Return every non-archived page that has a word, as entries."""
        entries: list[Entry] = []
        for page in self.query_pages(credentials):
            entry = self.page_to_entry(page)
            if entry is not None:
                entries.append(entry)
        return entries

    def page_to_entry(self, page: dict[str, Any]) -> Entry | None:
        word = page_word(page)
        if not word:
            return None
        props = page.get("properties") or {}
        date = (props.get(SAVED_AT) or {}).get("date") or {}
        saved_at = datetime.now(timezone.utc)
        if date.get("start"):
            try:
                saved_at = parse_timestamp(date["start"])
            except (ValueError, TypeError):
                logger.warning("Page for %r has an unreadable date %r", word, date["start"])
        image_url = ""
        if self._image_property:
            image_url = (props.get(self._image_property) or {}).get("url") or ""
        return Entry(
            id=f"{word}-notion-{page.get('id', '')}",
            word=word,
            definition=_rich(props, DEFINITION),
            examples=decode_examples(_rich(props, EXAMPLES)),
            usage_note=_rich(props, USAGE_NOTE),
            image_url=image_url,
            saved_at=saved_at,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "NotionMirror":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def page_word(page: dict[str, Any]) -> str:
    props = page.get("properties") or {}
    return join_rich_text((props.get(WORD) or {}).get("title"))


def _rich(props: dict[str, Any], name: str) -> str:
    return join_rich_text((props.get(name) or {}).get("rich_text"))


def _raise_for_status(r: httpx.Response) -> None:
    if r.is_success:
        return
    try:
        body = r.json()
    except ValueError:
        body = None
    message = (body.get("message") if isinstance(body, dict) else None) or r.text
    status = r.status_code
    if status in (401, 403):
        raise AuthError(f"Notion rejected the API key: {message}", status_code=status)
    if status == 404:
        raise NotFound(f"Notion database or page not found: {message}", status_code=status)
    if status == 429 or status >= 500:
        raise TransientError(f"Notion is temporarily unavailable ({status}): {message}", status_code=status)
    raise RemoteError(f"Notion request failed ({status}): {message}", status_code=status)
