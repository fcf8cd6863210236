"""Core Entry dataclass and timestamp helpers."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class Example:
    """One example sentence paired with its translation."""

    sentence: str
    translation: str

    def to_dict(self) -> dict[str, str]:
        return {"sentence": self.sentence, "translation": self.translation}


@dataclass
class Entry:
    """A single saved vocabulary item in the notebook."""

    id: str
    word: str
    definition: str = ""
    #: Order matters: the first example is the flashcard preview
    examples: list[Example] = field(default_factory=list)
    usage_note: str = ""
    image_url: str = ""
    saved_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(
        cls,
        word: str,
        definition: str = "",
        examples: Iterable[Example] = (),
        usage_note: str = "",
        image_url: str = "",
        *,
        target_language: str,
        now: datetime | None = None,
    ) -> "Entry":
        """Build a freshly saved entry with a ``{word}-{lang}-{millis}`` id."""
        created = now or datetime.now(timezone.utc)
        return cls(
            id=make_entry_id(word, target_language, created),
            word=word,
            definition=definition,
            examples=list(examples),
            usage_note=usage_note,
            image_url=image_url,
            saved_at=parse_timestamp(created),
        )

    @property
    def preview(self) -> Example | None:
        return self.examples[0] if self.examples else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "word": self.word,
            "definition": self.definition,
            "imageUrl": self.image_url,
            "examples": [ex.to_dict() for ex in self.examples],
            "usageNote": self.usage_note,
            "savedAt": format_timestamp(self.saved_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entry":
        """Rebuild an entry from its JSON shape.

        ``savedAt`` falls back to the current time when absent, and a missing
        or ``null`` ``examples`` list becomes empty.
        """
        raw_examples = data.get("examples") or []
        examples = [
            Example(
                sentence=str(item.get("sentence") or ""),
                translation=str(item.get("translation") or ""),
            )
            for item in raw_examples
            if isinstance(item, dict)
        ]
        saved = data.get("savedAt")
        return cls(
            id=str(data.get("id") or ""),
            word=str(data.get("word") or ""),
            definition=str(data.get("definition") or ""),
            examples=examples,
            usage_note=str(data.get("usageNote") or ""),
            image_url=str(data.get("imageUrl") or ""),
            saved_at=parse_timestamp(saved) if saved else datetime.now(timezone.utc),
        )


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def make_entry_id(word: str, target_language: str, created_at: datetime) -> str:
    millis = int(parse_timestamp(created_at).timestamp() * 1000)
    return f"{word}-{target_language}-{millis}"


def ensure_unique_ids(entries: Iterable[Entry]) -> None:
    """Raise :class:`ValueError` when two entries share an ``id``."""
    seen: set[str] = set()
    for entry in entries:
        if entry.id in seen:
            raise ValueError(f"Duplicate entry id in notebook: {entry.id!r}")
        seen.add(entry.id)


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def parse_timestamp(value: datetime | str | int | float) -> datetime:
    """Coerce *value* to a timezone-aware UTC :class:`datetime`.

    Accepts ``datetime`` objects (naive ones are taken as UTC), ISO-8601
    strings including the ``Z`` suffix browsers emit, and epoch
    milliseconds.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise TypeError(f"Cannot interpret {value!r} as a timestamp")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a ``Z`` suffix."""
    dt = parse_timestamp(value)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"
