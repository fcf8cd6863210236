"""Remote mirrors of the notebook."""

from wordbook.remote.base import MirrorBackend, SyncReport
from wordbook.remote.notion import NotionMirror, remote_key

__all__ = ["MirrorBackend", "NotionMirror", "SyncReport", "remote_key"]
