"""File-backed key/value storage for client state."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Iterator

from app.errors import TransportError

logger = logging.getLogger(__name__)


class LocalStorage:
    """String values keyed by name, kept in one JSON document on disk.

    Each write rewrites the whole document through a temporary file and an
    atomic rename, so a crash never leaves a half-written file behind.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path).expanduser()
        self._items: dict[str, str] = {}

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> None:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._items = {}
            return
        except OSError as exc:
            raise TransportError(f"Cannot read {self._path}") from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding corrupt client storage at %s", self._path)
            data = {}
        if not isinstance(data, dict):
            data = {}
        self._items = {str(key): str(value) for key, value in data.items()}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        items = dict(self._items)
        items[key] = value
        self._flush(items)

    def remove_item(self, key: str) -> None:
        if key not in self._items:
            return
        items = dict(self._items)
        del items[key]
        self._flush(items)

    def _flush(self, items: dict[str, str]) -> None:
        """Write ``items`` to disk and adopt them only once the rename succeeds."""

        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".storage-", dir=self._path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(items, handle)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            logger.exception("Failed to write client storage at %s", self._path)
            if tmp_name is not None:
                with suppress(OSError):
                    os.unlink(tmp_name)
            raise TransportError("Cannot write client storage") from exc
        self._items = items


@contextmanager
def open_storage(path: str | os.PathLike[str]) -> Iterator[LocalStorage]:
    """Yield storage loaded from ``path``; writes are flushed as they happen."""

    storage = LocalStorage(path)
    storage.open()
    yield storage
