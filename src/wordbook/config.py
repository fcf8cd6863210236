"""Settings for a wordbook installation.

Settings are read from, in increasing order of precedence:

1. a TOML file (``wordbook.toml`` by default) with a ``[wordbook]`` table::

       [wordbook]
       data_dir      = "~/.wordbook"
       downloads_dir = "~/Downloads"
       auto_backup   = true

       [wordbook.notion]
       timeout        = 10.0
       image_property = "Image"

2. environment variables ``WORDBOOK_DATA_DIR``, ``WORDBOOK_DOWNLOADS_DIR``
   and ``WORDBOOK_AUTO_BACKUP``;
3. keyword overrides passed to :func:`load_settings`.

Notion credentials are not part of the settings: users store them through
the app (see :mod:`wordbook.store.legacy`) or export the
``WORDBOOK_NOTION_*`` variables read by :class:`~wordbook.remote.notion.NotionMirror`.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from wordbook.backup import Picker
from wordbook.remote.base import MirrorBackend
from wordbook.remote.notion import NotionMirror
from wordbook.store.entry_store import EntryStore
from wordbook.store.kv import KeyValueStore
from wordbook.sync import SyncCoordinator

DEFAULT_CONFIG_FILE = "wordbook.toml"

_TRUE = {"1", "true", "yes", "on"}


@dataclass
class Settings:
    data_dir: Path = field(default_factory=lambda: Path.home() / ".wordbook")
    db_filename: str = "wordbook.duckdb"
    kv_filename: str = "local-storage.json"
    downloads_dir: Path = field(default_factory=lambda: Path.home() / "Downloads")
    auto_backup: bool = True
    remote_timeout: float = 10.0
    notion_image_property: str | None = None

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_filename

    @property
    def kv_path(self) -> Path:
        return self.data_dir / self.kv_filename


def _from_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as fh:
        data = tomllib.load(fh)
    section = dict(data.get("wordbook", {}))
    notion = section.pop("notion", {})
    if "timeout" in notion:
        section["remote_timeout"] = float(notion["timeout"])
    if "image_property" in notion:
        section["notion_image_property"] = notion["image_property"]
    return section


def _from_env() -> dict[str, Any]:
    values: dict[str, Any] = {}
    if v := os.getenv("WORDBOOK_DATA_DIR"):
        values["data_dir"] = v
    if v := os.getenv("WORDBOOK_DOWNLOADS_DIR"):
        values["downloads_dir"] = v
    if v := os.getenv("WORDBOOK_AUTO_BACKUP"):
        values["auto_backup"] = v.strip().lower() in _TRUE
    return values


def load_settings(path: Path | str | None = None, **overrides: Any) -> Settings:
    """Build :class:`Settings` from a TOML file, the environment and *overrides*.

    A missing file is fine when *path* was not given explicitly.
    """
    known = {f.name for f in fields(Settings)}
    values: dict[str, Any] = {}

    config_path = Path(path) if path is not None else Path(DEFAULT_CONFIG_FILE)
    if config_path.exists():
        values.update(_from_toml(config_path))
    elif path is not None:
        raise FileNotFoundError(f"Config file not found: {config_path}")

    values.update(_from_env())
    values.update(overrides)

    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown wordbook settings: {', '.join(sorted(unknown))}")

    for key in ("data_dir", "downloads_dir"):
        if key in values:
            values[key] = Path(values[key]).expanduser()
    return replace(Settings(), **values)


def build_coordinator(
    settings: Settings,
    *,
    remote: MirrorBackend | None = None,
    picker: Picker | None = None,
) -> SyncCoordinator:
    """Wire the stores described by *settings* into a :class:`SyncCoordinator`."""
    if remote is None:
        remote = NotionMirror(
            timeout=settings.remote_timeout,
            image_property=settings.notion_image_property,
        )
    return SyncCoordinator(
        EntryStore(settings.db_path),
        KeyValueStore(settings.kv_path),
        downloads_dir=settings.downloads_dir,
        remote=remote,
        auto_backup=settings.auto_backup,
        backup_picker=picker,
    )
