"""Key-value persistence backends for catalog state."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Protocol

from .errors import CatalogError

LOGGER = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Durable single-writer key-value storage used by the catalog store."""

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key`` or ``default``."""

    def set(self, key: str, value: Any) -> None:
        """Persist ``value`` under ``key``; ``None`` removes the entry."""


class MemoryStore:
    """In-memory store, primarily useful for tests."""

    def __init__(self, initial: Dict[str, Any] | None = None) -> None:
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return deepcopy(self._data.get(key, default))

    def set(self, key: str, value: Any) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = deepcopy(value)


class JsonFileStore:
    """Store values inside a single JSON object on disk."""

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: JSON file holding every stored key.
        """
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        """Return the resolved state file path."""
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``.

        Unreadable or malformed files are treated as empty so reads never fail.

        Args:
            key: Entry name.
            default: Value returned when the entry is absent.

        Returns:
            Any: Stored JSON value or ``default``.
        """
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Persist ``value`` under ``key`` by atomically rewriting the file.

        Args:
            key: Entry name.
            value: JSON-serializable value; ``None`` removes the entry.

        Raises:
            CatalogError: If the state file cannot be written.
        """
        data = self._read()
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise CatalogError(f"Unable to write state file {self._path}: {exc}") from exc

    def _read(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Ignoring unreadable state file %s: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Ignoring state file %s without a top-level object.", self._path)
            return {}
        return payload


__all__ = ["KeyValueStore", "MemoryStore", "JsonFileStore"]
