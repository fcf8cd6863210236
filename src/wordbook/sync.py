"""SyncCoordinator: the single writer to every notebook store.

Save
----
``Idle → WritingPrimary → WritingMirrors → Done``

1. *WritingPrimary*: the Entry Store is replaced with the notebook.  When
   that fails the Legacy Mirror takes the write instead; when both fail the
   error is raised to the caller.  Primary writes are serialized by a lock,
   so a save issued while another is in flight waits for the earlier
   primary write to finish.
2. *WritingMirrors*: the Legacy Mirror, the file backup and the remote
   mirror run concurrently, each on its own single worker thread.  Jobs are
   queued while the primary lock is held, so every mirror applies saves in
   the order their primary writes happened.  Mirror failures are logged and
   reported in :class:`SaveReport`, never raised.

Load
----
Sources are tried in a fixed order and the first one returning at least one
entry wins::

    entry_store → remote (when configured) → legacy → []

Remote data therefore shadows an initialised but empty local store.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from wordbook import backup
from wordbook.entry import Entry
from wordbook.errors import QuotaExceeded, RemoteError, StoreError
from wordbook.remote.base import MirrorBackend, SyncReport
from wordbook.store.base import LoadResult
from wordbook.store.entry_store import EntryStore
from wordbook.store.kv import KeyValueStore
from wordbook.store.legacy import (
    LegacyMirror,
    RemoteCredentials,
    clear_credentials,
    load_credentials,
    load_language,
    save_credentials,
    save_language,
)

logger = logging.getLogger(__name__)

MIRRORS = ("legacy", "backup", "remote")


class SaveState(enum.Enum):
    IDLE = "idle"
    WRITING_PRIMARY = "writing_primary"
    WRITING_MIRRORS = "writing_mirrors"
    DONE = "done"


@dataclass
class SaveReport:
    """Result of one :meth:`SyncCoordinator.save` call.

    The save itself succeeded whenever a report is returned; ``primary``
    names the store that took the write.
    """

    primary: str
    #: Entry Store error message when the write fell back to the legacy mirror
    primary_error: str | None = None
    #: mirror name → error message
    mirror_errors: dict[str, str] = field(default_factory=dict)
    remote: SyncReport | None = None
    backup_path: Path | None = None

    @property
    def remote_attempted(self) -> bool:
        return self.remote is not None

    @property
    def clean(self) -> bool:
        return self.primary_error is None and not self.mirror_errors


@dataclass
class LoadReport:
    source: str | None
    entries: list[Entry]
    attempts: list[LoadResult] = field(default_factory=list)


class SyncCoordinator:
    """Facade over the Entry Store, Legacy Mirror, file backup and remote mirror."""

    def __init__(
        self,
        entry_store: EntryStore,
        kv: KeyValueStore,
        *,
        downloads_dir: Path | str,
        remote: MirrorBackend | None = None,
        auto_backup: bool = True,
        backup_picker: backup.Picker | None = None,
    ) -> None:
        self.entry_store = entry_store
        self.kv = kv
        self.legacy = LegacyMirror(kv)
        self.remote = remote
        self.downloads_dir = Path(downloads_dir)
        self.auto_backup = auto_backup
        self.backup_picker = backup_picker
        self.state = SaveState.IDLE
        self._primary_lock = threading.Lock()
        self._executors = {
            name: ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"wordbook-{name}")
            for name in MIRRORS
        }

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    @property
    def language(self) -> str:
        return load_language(self.kv)

    def set_language(self, language: str) -> None:
        save_language(self.kv, language)

    def configure_remote(self, credentials: RemoteCredentials) -> None:
        save_credentials(self.kv, credentials)

    def clear_remote(self) -> None:
        clear_credentials(self.kv)

    def remote_credentials(self) -> RemoteCredentials | None:
        """Stored credentials first, then whatever the mirror was built with."""
        if self.remote is None:
            return None
        stored = load_credentials(self.kv)
        if stored is not None and stored.complete:
            return stored
        fallback: RemoteCredentials | None = getattr(self.remote, "credentials", None)
        if fallback is not None and fallback.complete:
            return fallback
        return None

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(self, entries: Iterable[Entry]) -> SaveReport:
        """Persist *entries* as the whole notebook.

        Raises a :class:`StoreError` only when neither the Entry Store nor the
        Legacy Mirror could take the write.
        """
        snapshot = list(entries)
        with self._primary_lock:
            self.state = SaveState.WRITING_PRIMARY
            try:
                report = self._write_primary(snapshot)
            except StoreError:
                self.state = SaveState.IDLE
                raise
            self.state = SaveState.WRITING_MIRRORS
            futures = self._start_mirrors(snapshot, skip_legacy=report.primary == self.legacy.name)

        for name, future in futures.items():
            try:
                result = future.result()
            except Exception as exc:  # noqa: BLE001
                # Mirrors are best-effort; one failing never fails the save
                logger.warning("Mirror %s failed: %s", name, exc)
                report.mirror_errors[name] = str(exc)
                continue
            if name == "remote":
                report.remote = result
            elif name == "backup":
                report.backup_path = result

        self.state = SaveState.DONE
        logger.info("Saved %d entries (primary: %s)", len(snapshot), report.primary)
        return report

    def _write_primary(self, entries: list[Entry]) -> SaveReport:
        try:
            self.entry_store.put(entries)
            return SaveReport(primary=self.entry_store.name)
        except StoreError as exc:
            logger.warning("Entry store write failed (%s); falling back to legacy mirror", exc)
            try:
                self.legacy.put(entries)
            except StoreError as legacy_exc:
                logger.error("Legacy mirror write failed as well: %s", legacy_exc)
                if isinstance(exc, QuotaExceeded) or isinstance(legacy_exc, QuotaExceeded):
                    raise QuotaExceeded() from legacy_exc
                raise legacy_exc from exc
            return SaveReport(primary=self.legacy.name, primary_error=str(exc))

    def _start_mirrors(self, entries: list[Entry], *, skip_legacy: bool) -> dict[str, Future]:
        jobs: dict[str, Callable[[], Any]] = {}
        if not skip_legacy:
            jobs["legacy"] = lambda: self.legacy.put(entries)
        if self.auto_backup:
            jobs["backup"] = lambda: self._backup(entries)
        if self.remote is not None:
            jobs["remote"] = lambda: self._sync_remote(entries)
        return {name: self._executors[name].submit(job) for name, job in jobs.items()}

    def _sync_remote(self, entries: list[Entry]) -> SyncReport | None:
        remote, credentials = self.remote, self.remote_credentials()
        if remote is None or credentials is None:
            return None
        return remote.upsert_all(entries, credentials)

    def _backup(self, entries: list[Entry]) -> Path:
        document = backup.serialize(entries, self.language)
        return backup.write(document, picker=self.backup_picker, downloads_dir=self.downloads_dir)

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self) -> list[Entry]:
        return self.load_with_report().entries

    def load_with_report(self) -> LoadReport:
        sources: tuple[Callable[[], LoadResult], ...] = (
            self._load_entry_store,
            self._load_remote,
            self.legacy.try_get_all,
        )
        attempts: list[LoadResult] = []
        for read in sources:
            result = read()
            attempts.append(result)
            if result.usable:
                logger.info("Loaded %d entries from %s", len(result.entries), result.source)
                return LoadReport(result.source, result.entries, attempts)
        return LoadReport(None, [], attempts)

    def _load_entry_store(self) -> LoadResult:
        with self._primary_lock:
            return self.entry_store.try_get_all()

    def _load_remote(self) -> LoadResult:
        try:
            credentials = self.remote_credentials()
            if self.remote is None or credentials is None:
                return LoadResult("remote")
            return LoadResult("remote", entries=self.remote.fetch_all(credentials))
        except (RemoteError, StoreError) as exc:
            logger.warning("Error loading from remote mirror: %s", exc)
            return LoadResult("remote", error=exc)

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def import_file(self, path: Path | str) -> tuple[list[Entry], SaveReport]:
        """Replace the notebook with the contents of a backup file.

        Parse errors raise :class:`~wordbook.errors.InvalidFormat` before
        anything is written.  A language stored in the file is restored.
        """
        document = backup.read(path)
        entries = backup.deserialize(document)
        language = backup.document_language(document)
        if language:
            self.set_language(language)
        return entries, self.save(entries)

    def export(self, entries: Iterable[Entry], *, picker: backup.Picker | None = None) -> Path:
        document = backup.serialize(entries, self.language)
        return backup.write(document, picker=picker or self.backup_picker, downloads_dir=self.downloads_dir)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        for executor in self._executors.values():
            executor.shutdown(wait=True)
        self.entry_store.close()
        close_remote = getattr(self.remote, "close", None)
        if close_remote is not None:
            close_remote()

    def __enter__(self) -> "SyncCoordinator":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
