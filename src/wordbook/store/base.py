"""Store protocol and the result type the coordinator merges on load."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from wordbook.entry import Entry
from wordbook.errors import WordbookError


@dataclass
class LoadResult:
    """Outcome of reading one store: either entries or the error that stopped it."""

    source: str
    entries: list[Entry] = field(default_factory=list)
    error: WordbookError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def usable(self) -> bool:
        """True when this result should win the load precedence."""
        return self.ok and bool(self.entries)


@runtime_checkable
class NotebookStore(Protocol):
    """Common interface of the local stores (Entry Store and Legacy Mirror).

    Both replace their whole contents on ``put`` so the coordinator can treat
    them interchangeably on the primary write path.
    """

    name: str

    def put(self, entries: list[Entry]) -> None:
        """Replace the stored notebook with *entries*."""
        ...

    def get_all(self) -> list[Entry]:
        """Return every stored entry, raising a ``StoreError`` on failure."""
        ...

    def try_get_all(self) -> LoadResult:
        """Like :meth:`get_all` but never raises."""
        ...
