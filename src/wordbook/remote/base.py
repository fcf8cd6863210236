"""Remote mirror protocol and sync report."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from wordbook.entry import Entry
from wordbook.store.legacy import RemoteCredentials


@dataclass
class SyncReport:
    """What one ``upsert_all`` call did, keyed by remote word."""

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    archived: list[str] = field(default_factory=list)
    #: word → error message for records whose create/update/archive failed
    failures: dict[str, str] = field(default_factory=dict)
    #: ids of local entries left out because their word is empty
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        return (
            f"{len(self.created)} created, {len(self.updated)} updated, "
            f"{len(self.archived)} archived, {len(self.failures)} failed"
            + (f", {len(self.skipped)} skipped" if self.skipped else "")
        )


@runtime_checkable
class MirrorBackend(Protocol):
    """Common interface for remote mirrors of the notebook.

    Implementations must treat the remote side as a full mirror of notebook
    membership: records for words no longer in the notebook get archived.
    """

    name: str

    def upsert_all(self, entries: list[Entry], credentials: RemoteCredentials | None = None) -> SyncReport:
        """Create or update one remote record per word, then archive the rest."""
        ...

    def fetch_all(self, credentials: RemoteCredentials | None = None) -> list[Entry]:
        """Return every non-archived remote record as an entry."""
        ...
