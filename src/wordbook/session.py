"""NotebookSession: the client-side owner of the entry list."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import polars as pl

from wordbook.backup import Picker
from wordbook.entry import Entry, Example, format_timestamp
from wordbook.sync import SaveReport, SyncCoordinator

logger = logging.getLogger(__name__)

FRAME_SCHEMA = {
    "id": pl.String,
    "word": pl.String,
    "definition": pl.String,
    "example_count": pl.Int32,
    "usage_note": pl.String,
    "saved_at": pl.String,
}


class NotebookSession:
    """Holds the notebook in memory; every mutation is saved through the coordinator."""

    def __init__(self, coordinator: SyncCoordinator) -> None:
        self.coordinator = coordinator
        self._entries: list[Entry] = []
        self.last_report: SaveReport | None = None

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def start(self) -> list[Entry]:
        """Load the notebook from the first store that has entries."""
        self._entries = self.coordinator.load()
        return list(self._entries)

    @property
    def entries(self) -> tuple[Entry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def find(self, word: str) -> list[Entry]:
        return [e for e in self._entries if e.word == word]

    def get(self, entry_id: str) -> Entry | None:
        return next((e for e in self._entries if e.id == entry_id), None)

    def frame(self) -> pl.DataFrame:
        """Return the in-memory notebook as a Polars DataFrame for table views."""
        return pl.DataFrame(
            [
                {
                    "id": e.id,
                    "word": e.word,
                    "definition": e.definition,
                    "example_count": len(e.examples),
                    "usage_note": e.usage_note,
                    "saved_at": format_timestamp(e.saved_at),
                }
                for e in self._entries
            ],
            schema=FRAME_SCHEMA,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(
        self,
        word: str,
        definition: str = "",
        examples: Iterable[Example] = (),
        usage_note: str = "",
        image_url: str = "",
        *,
        target_language: str | None = None,
    ) -> Entry:
        """Save a looked-up result as a new entry at the end of the notebook."""
        entry = Entry.create(
            word,
            definition,
            examples,
            usage_note,
            image_url,
            target_language=target_language or self.coordinator.language,
        )
        self._commit([*self._entries, entry])
        return entry

    def remove(self, entry_id: str) -> bool:
        """Drop an entry; returns ``False`` when no entry has *entry_id*."""
        remaining = [e for e in self._entries if e.id != entry_id]
        if len(remaining) == len(self._entries):
            return False
        self._commit(remaining)
        return True

    def replace_from_file(self, path: Path | str) -> list[Entry]:
        """Wholesale-replace the notebook with a backup file's entries."""
        entries, report = self.coordinator.import_file(path)
        self._entries = entries
        self.last_report = report
        return list(entries)

    def export(self, *, picker: Picker | None = None) -> Path:
        return self.coordinator.export(self._entries, picker=picker)

    def _commit(self, entries: list[Entry]) -> None:
        # Memory only changes once the primary write succeeded
        self.last_report = self.coordinator.save(entries)
        self._entries = entries
        if self.last_report.mirror_errors:
            logger.info("Saved with mirror errors: %s", self.last_report.mirror_errors)
