"""EntryStore: the structured, durable primary store for notebook entries.

Uses DuckDB as an embedded database keyed by entry id.  The connection is
opened once and reused by reference until :meth:`EntryStore.close`, so a
process (or a test) can reset it explicitly.

Usage::

    with EntryStore(data_dir / "wordbook.duckdb") as store:
        store.put(entries)
        entries = store.get_all()
        df = store.frame()          # polars view for the notebook table
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import duckdb
import polars as pl

from wordbook.entry import Entry, Example, ensure_unique_ids, format_timestamp, parse_timestamp
from wordbook.errors import QuotaExceeded, StoreError, StoreUnavailable
from wordbook.store.base import LoadResult

logger = logging.getLogger(__name__)

_COLUMNS = ["id", "word", "definition", "examples", "usage_note", "image_url", "saved_at"]


def _is_quota_error(exc: Exception) -> bool:
    if isinstance(exc, duckdb.OutOfMemoryException):
        return True
    text = str(exc).lower()
    return "no space left" in text or "disk full" in text


class EntryStore:
    """DuckDB-backed store holding one row per notebook entry."""

    name = "entry_store"

    def __init__(self, db_path: Path | str = ":memory:") -> None:
        self._db_path = str(db_path)
        self._conn: duckdb.DuckDBPyConnection | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> duckdb.DuckDBPyConnection:
        """Open the database on first use and return the shared connection."""
        if self._conn is not None:
            return self._conn
        try:
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = duckdb.connect(self._db_path)
        except duckdb.Error as exc:
            if _is_quota_error(exc):
                raise QuotaExceeded() from exc
            raise StoreUnavailable(f"Cannot open entry store at {self._db_path}: {exc}") from exc
        except OSError as exc:
            raise StoreUnavailable(f"Cannot open entry store at {self._db_path}: {exc}") from exc
        self._conn = conn
        self._create_schema()
        logger.debug("Opened entry store at %s", self._db_path)
        return conn

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "EntryStore":
        self.open()
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _create_schema(self) -> None:
        assert self._conn is not None
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS notebook (
                position    INTEGER NOT NULL,
                id          VARCHAR PRIMARY KEY,
                word        VARCHAR NOT NULL,
                definition  VARCHAR,
                examples    JSON,
                usage_note  VARCHAR,
                image_url   VARCHAR,
                saved_at    VARCHAR
            )
        """)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def put(self, entries: list[Entry]) -> None:
        """Replace the stored notebook with *entries* (clear, then insert all).

        Runs inside one transaction; any failed insert rolls the whole write
        back and is raised as a :class:`StoreError`.
        """
        try:
            ensure_unique_ids(entries)
        except ValueError as exc:
            raise StoreError(str(exc)) from exc

        conn = self.open()
        rows = [
            (
                position,
                entry.id,
                entry.word,
                entry.definition,
                json.dumps([ex.to_dict() for ex in entry.examples], ensure_ascii=False),
                entry.usage_note,
                entry.image_url,
                format_timestamp(entry.saved_at),
            )
            for position, entry in enumerate(entries)
        ]
        try:
            conn.begin()
            conn.execute("DELETE FROM notebook")
            if rows:
                conn.executemany(
                    "INSERT INTO notebook (position, id, word, definition, examples,"
                    " usage_note, image_url, saved_at) VALUES (?,?,?,?,?,?,?,?)",
                    rows,
                )
            conn.commit()
        except duckdb.Error as exc:
            self._rollback()
            if _is_quota_error(exc):
                raise QuotaExceeded() from exc
            raise StoreError(f"Entry store write failed: {exc}") from exc
        logger.debug("Entry store now holds %d entries", len(rows))

    def _rollback(self) -> None:
        assert self._conn is not None
        try:
            self._conn.rollback()
        except duckdb.Error:
            logger.debug("Rollback after failed write had no open transaction")

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_all(self) -> list[Entry]:
        """Return all entries in notebook order with ``saved_at`` as datetimes."""
        conn = self.open()
        try:
            rows = conn.execute(
                f"SELECT {', '.join(_COLUMNS)} FROM notebook ORDER BY position"
            ).fetchall()
        except duckdb.Error as exc:
            raise StoreError(f"Entry store read failed: {exc}") from exc
        return [self._row_to_entry(dict(zip(_COLUMNS, row))) for row in rows]

    def try_get_all(self) -> LoadResult:
        try:
            return LoadResult(self.name, entries=self.get_all())
        except StoreError as exc:
            logger.warning("Entry store unavailable for load: %s", exc)
            return LoadResult(self.name, error=exc)

    def count(self) -> int:
        row = self.open().execute("SELECT COUNT(*) FROM notebook").fetchone()
        return int(row[0]) if row else 0

    def frame(self) -> pl.DataFrame:
        """Return the notebook as a Polars DataFrame for table views."""
        return self.open().execute(
            """
            SELECT
                id,
                word,
                definition,
                CAST(COALESCE(json_array_length(examples), 0) AS INTEGER) AS example_count,
                usage_note,
                saved_at
            FROM notebook
            ORDER BY position
            """
        ).pl()

    @staticmethod
    def _row_to_entry(row: dict) -> Entry:
        raw = row["examples"]
        items = json.loads(raw) if isinstance(raw, str) else (raw or [])
        return Entry(
            id=row["id"],
            word=row["word"],
            definition=row["definition"] or "",
            examples=[Example(str(i.get("sentence", "")), str(i.get("translation", ""))) for i in items],
            usage_note=row["usage_note"] or "",
            image_url=row["image_url"] or "",
            saved_at=parse_timestamp(row["saved_at"]),
        )
