"""Wordbook: local-first vocabulary notebook with file backup and Notion mirroring."""

from wordbook.config import Settings, build_coordinator, load_settings
from wordbook.entry import Entry, Example
from wordbook.session import NotebookSession
from wordbook.store import EntryStore, KeyValueStore, LegacyMirror, RemoteCredentials
from wordbook.sync import SaveReport, SyncCoordinator

__all__ = [
    "Entry",
    "EntryStore",
    "Example",
    "KeyValueStore",
    "LegacyMirror",
    "NotebookSession",
    "RemoteCredentials",
    "SaveReport",
    "Settings",
    "SyncCoordinator",
    "build_coordinator",
    "load_settings",
]
