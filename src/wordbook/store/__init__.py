"""Local persistence: the DuckDB entry store and the key-value legacy mirror."""

from wordbook.store.base import LoadResult, NotebookStore
from wordbook.store.entry_store import EntryStore
from wordbook.store.kv import KeyValueStore
from wordbook.store.legacy import LegacyMirror, RemoteCredentials

__all__ = [
    "EntryStore",
    "KeyValueStore",
    "LegacyMirror",
    "LoadResult",
    "NotebookStore",
    "RemoteCredentials",
]
