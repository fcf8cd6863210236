"""A tiny file-backed key-value store with ``getItem``/``setItem`` semantics.

Every value is a string, the whole map lives in one JSON file, and each
write replaces the file atomically (temp file + ``os.replace``).
"""

from __future__ import annotations

import errno
import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from wordbook.errors import QuotaExceeded, StoreUnavailable

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Flat ``str → str`` map persisted to a JSON file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._read())

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _read(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StoreUnavailable(f"Cannot read {self.path}: {exc}") from exc
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Key-value file %s is not valid JSON; treating it as empty", self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Key-value file %s does not hold an object; treating it as empty", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, ensure_ascii=False)
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as exc:
            if exc.errno in (errno.ENOSPC, errno.EDQUOT):
                raise QuotaExceeded() from exc
            raise StoreUnavailable(f"Cannot write {self.path}: {exc}") from exc
