"""Exception hierarchy shared by the stores, the remote mirror and backups."""

from __future__ import annotations


class WordbookError(Exception):
    """Base class for every error raised by :mod:`wordbook`."""


# ---------------------------------------------------------------------------
# Local stores
# ---------------------------------------------------------------------------


class StoreError(WordbookError):
    """A local store could not complete a read or write."""


class StoreUnavailable(StoreError):
    """The storage engine cannot be opened (disabled, unsupported, locked)."""


class CorruptData(StoreError):
    """A persisted value exists but is not valid serialized data."""


class QuotaExceeded(StoreError):
    """The local store is full.  Nothing is evicted automatically."""

    def __init__(self, message: str = "") -> None:
        super().__init__(
            message
            or "Local storage is full. Export your notebook and remove some entries."
        )


# ---------------------------------------------------------------------------
# Remote mirror
# ---------------------------------------------------------------------------


class RemoteError(WordbookError):
    """The remote database rejected or failed a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(RemoteError):
    """Credentials were rejected (401/403)."""


class NotFound(RemoteError):
    """The collection identifier does not exist or is not shared (404)."""


class TransientError(RemoteError):
    """Network failure, timeout, rate limit or server-side error."""


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------


class InvalidFormat(WordbookError):
    """An import document is neither a bare entry list nor a notebook wrapper."""
