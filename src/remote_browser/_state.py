"""Persisted key/value state and its key-namespace registry."""

from __future__ import annotations

import abc
import enum
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

from remote_browser._errors import StateStoreError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import TracebackType

log = logging.getLogger(__name__)

_SEP = ":"


class Namespace(enum.Enum):
    """Key namespaces of persisted state.

    Every persisted key starts with exactly one namespace prefix. Only
    ``SETTINGS`` survives cache maintenance; all other namespaces are transient.
    """

    SETTINGS = "settings"
    CONNECTIONS = "connections"
    HISTORY = "history"
    SCROLL = "scroll"
    LISTING_CACHE = "cache:listing"
    TEMP = "temp"

    @property
    def prefix(self) -> str:
        return self.value + _SEP

    @property
    def transient(self) -> bool:
        return self is not Namespace.SETTINGS

    def key(self, *parts: str) -> str:
        """Build a key in this namespace from ``parts``."""
        return self.prefix + _SEP.join(parts)

    def owns(self, key: str) -> bool:
        return key.startswith(self.prefix)

    @classmethod
    def of(cls, key: str) -> Namespace | None:
        """Return the namespace owning ``key``, or ``None`` for foreign keys."""
        # longest prefix first so "cache:listing:" is not shadowed by a shorter one
        for ns in sorted(cls, key=lambda n: len(n.prefix), reverse=True):
            if ns.owns(key):
                return ns
        return None


class KeyValueStore(abc.ABC):
    """Thread-safe string-keyed store of JSON-serializable values.

    Values are serialized on write and deserialized on read, so callers never
    share mutable state with the store and a reader never sees a partially
    written record. Every mutation is committed through :meth:`_persist`
    before it becomes visible; if persisting fails the previous state is kept.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, str] = {}

    @abc.abstractmethod
    def _persist(self, data: dict[str, str]) -> None:
        """Durably store the full state ``data``.

        :raises StateStoreError: If the state could not be stored.
        """

    def _commit(self, data: dict[str, str]) -> None:
        self._persist(data)
        self._data = data

    @staticmethod
    def _encode(key: str, value: Any) -> str:
        try:
            return json.dumps(value, sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise StateStoreError(f"Value for key {key!r} is not JSON-serializable: {exc}") from None

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            raw = self._data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def set(self, key: str, value: Any) -> None:
        encoded = self._encode(key, value)
        with self._lock:
            data = dict(self._data)
            data[key] = encoded
            self._commit(data)

    def set_many(self, items: dict[str, Any]) -> None:
        """Write several keys in one commit."""
        encoded = {k: self._encode(k, v) for k, v in items.items()}
        with self._lock:
            data = dict(self._data)
            data.update(encoded)
            self._commit(data)

    def delete(self, key: str) -> bool:
        """Delete ``key``. Returns ``False`` if it did not exist."""
        return self.delete_many([key]) == 1

    def delete_many(self, keys: Iterable[str]) -> int:
        """Delete all ``keys`` in one commit: either all go or none do.

        :returns: Number of keys that existed and were removed.
        """
        with self._lock:
            doomed = {k for k in keys if k in self._data}
            if not doomed:
                return 0
            data = {k: v for k, v in self._data.items() if k not in doomed}
            self._commit(data)
            return len(doomed)

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix`` in one commit."""
        with self._lock:
            return self.delete_many(self.keys(prefix))

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(k for k in self._data if k.startswith(prefix))

    def items(self, prefix: str = "") -> list[tuple[str, Any]]:
        with self._lock:
            snapshot = [(k, v) for k, v in self._data.items() if k.startswith(prefix)]
        return sorted((k, json.loads(v)) for k, v in snapshot)

    def flush(self) -> None:
        """Force state to durable storage. Writes are already durable; this re-persists."""
        with self._lock:
            self._persist(dict(self._data))

    def close(self) -> None:
        """Release resources. Default is a no-op."""

    def __enter__(self) -> KeyValueStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store; state lives as long as the instance."""

    def _persist(self, data: dict[str, str]) -> None:
        pass


class JsonFileKeyValueStore(KeyValueStore):
    """Store persisted as one JSON document.

    Every commit rewrites the document via temp file + ``fsync`` +
    ``os.replace``, so a crash leaves either the old or the new state.

    :param path: Location of the JSON document; created on first write.
    :raises StateStoreError: If an existing document cannot be parsed.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        super().__init__()
        self._path = Path(path).expanduser()
        self._data = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def __repr__(self) -> str:
        return f"JsonFileKeyValueStore(path={str(self._path)!r})"

    def _load(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StateStoreError(f"Cannot read state file {self._path}: {exc}") from None
        try:
            doc = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as exc:
            raise StateStoreError(f"State file {self._path} is corrupt: {exc}") from None
        if not isinstance(doc, dict):
            raise StateStoreError(f"State file {self._path} must hold a JSON object")
        log.debug("Loaded %d keys from %s", len(doc), self._path)
        return {str(k): json.dumps(v, sort_keys=True) for k, v in doc.items()}

    def _persist(self, data: dict[str, str]) -> None:
        doc = {k: json.loads(v) for k, v in data.items()}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self._path.parent), prefix=".~tmp.", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(doc, f, indent=2, sort_keys=True)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, str(self._path))
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as exc:
            raise StateStoreError(f"Cannot write state file {self._path}: {exc}") from None
