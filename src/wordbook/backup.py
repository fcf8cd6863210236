"""File backup and restore of the whole notebook.

Backup document layout (``version`` 1.0)::

    {
      "notebook":   [ {entry}, ... ],
      "language":   "en",
      "backupDate": "2026-01-01T00:00:00.000Z",
      "version":    "1.0"
    }

Older exports are a bare ``[ {entry}, ... ]`` array; :func:`deserialize`
accepts both shapes.

Writing goes through an interactive *picker* first (a callable that asks the
user for a target and returns a path, or ``None`` when they cancel).  When no
picker is available, or the user cancels, the document is written straight
into the downloads directory under :data:`BACKUP_FILE_NAME`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from wordbook.entry import Entry, format_timestamp
from wordbook.errors import InvalidFormat

logger = logging.getLogger(__name__)

BACKUP_FILE_NAME = "ai-dictionary-data.json"
BACKUP_VERSION = "1.0"

#: ``picker(suggested_name) -> Path | None``; ``None`` means the user cancelled
Picker = Callable[[str], "Path | None"]


class PickerUnavailable(Exception):
    """Raised by a picker when no interactive save dialog can be shown."""


# ---------------------------------------------------------------------------
# Document <-> entries
# ---------------------------------------------------------------------------


def serialize(entries: Iterable[Entry], language: str, now: datetime | None = None) -> dict[str, Any]:
    return {
        "notebook": [entry.to_dict() for entry in entries],
        "language": language,
        "backupDate": format_timestamp(now or datetime.now(timezone.utc)),
        "version": BACKUP_VERSION,
    }


def deserialize(document: Any) -> list[Entry]:
    """Return the entries held by *document* (bare list or ``{"notebook": [...]}``)."""
    if isinstance(document, list):
        items = document
    elif isinstance(document, dict) and isinstance(document.get("notebook"), list):
        items = document["notebook"]
    else:
        raise InvalidFormat("Invalid file format: expected a list of entries or a notebook backup")
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidFormat(f"Invalid file format: notebook item {position} is not an object")
    entries: list[Entry] = []
    for position, item in enumerate(items):
        try:
            entries.append(Entry.from_dict(item))
        except (ValueError, TypeError) as exc:
            raise InvalidFormat(f"Invalid file format: notebook item {position} is unreadable ({exc})") from exc
    return entries


def document_language(document: Any) -> str | None:
    if isinstance(document, dict):
        language = document.get("language")
        if isinstance(language, str) and language:
            return language
    return None


def dumps(document: dict[str, Any]) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False)


def loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidFormat(f"Backup is not valid JSON: {exc}") from exc


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------


def write(
    document: dict[str, Any],
    *,
    picker: Picker | None = None,
    downloads_dir: Path | str,
) -> Path:
    """Write *document* to a user-chosen file, or to the downloads directory.

    Cancelling the picker is not an error; it only selects the fallback.
    """
    text = dumps(document)
    if picker is not None:
        try:
            target = picker(BACKUP_FILE_NAME)
        except PickerUnavailable:
            logger.info("Save dialog not available, using download")
            target = None
        if target is not None:
            try:
                return _write_text(Path(target), text)
            except OSError as exc:
                logger.warning("Could not write backup to %s (%s); using download", target, exc)

    return _write_text(Path(downloads_dir) / BACKUP_FILE_NAME, text)


def _write_text(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logger.debug("Wrote notebook backup to %s", path)
    return path


def read(path: Path | str) -> Any:
    """Parse a backup file; unreadable text or bad JSON raises :class:`InvalidFormat`."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidFormat(f"Backup {path} is not UTF-8 text") from exc
    return loads(text)
