"""NavigationHistoryService -- visit history, scroll positions and the listing cache."""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Callable

from remote_browser._config import BrowserConfig
from remote_browser._models import DirectoryListing, HistoryEntry, utcnow
from remote_browser._path import normalize_path
from remote_browser._state import Namespace

if TYPE_CHECKING:
    from remote_browser._path import BrowserPath
    from remote_browser._state import KeyValueStore

log = logging.getLogger(__name__)

_HISTORY_KEY = Namespace.HISTORY.key("entries")


class NavigationHistoryService:
    """Session navigation state kept in three caches.

    * history: visited paths, most recent last, capped at
      ``history_max_entries`` (oldest dropped first);
    * scroll positions: one offset per (connection, path);
    * listing cache: one :class:`DirectoryListing` per (connection, path),
      fresh for ``listing_cache_ttl`` seconds and capped at
      ``listing_cache_max_entries`` (least recently stored dropped first).

    :param state: Persisted key/value state.
    :param config: Cache sizes and TTL.
    :param clock: Returns the current time in seconds; defaults to ``time.time``.
    """

    namespaces = (Namespace.HISTORY, Namespace.SCROLL, Namespace.LISTING_CACHE)

    def __init__(
        self,
        state: KeyValueStore,
        config: BrowserConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._state = state
        self._config = config or BrowserConfig()
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def listing_ttl(self) -> float:
        return self._config.listing_cache_ttl

    # region: history

    def record_visit(self, connection_id: str, path: str | BrowserPath) -> HistoryEntry:
        """Append a visit; drops the oldest entries beyond the cap."""
        entry = HistoryEntry(connection_id=connection_id, path=normalize_path(path), visited_at=utcnow())
        with self._lock:
            raw = self._state.get(_HISTORY_KEY, [])
            raw.append(entry.to_dict())
            overflow = len(raw) - self._config.history_max_entries
            if overflow > 0:
                raw = raw[overflow:]
            self._state.set(_HISTORY_KEY, raw)
        return entry

    def get_history(self, connection_id: str | None = None) -> list[HistoryEntry]:
        """Visits in order, most recent last; optionally only one connection's."""
        entries = [HistoryEntry.from_dict(d) for d in self._state.get(_HISTORY_KEY, [])]
        if connection_id is not None:
            entries = [e for e in entries if e.connection_id == connection_id]
        return entries

    def clear_history(self) -> None:
        self._state.delete_prefix(Namespace.HISTORY.prefix)

    # endregion

    # region: scroll positions

    @staticmethod
    def _scroll_key(connection_id: str, path: str) -> str:
        return Namespace.SCROLL.key(connection_id, path)

    def capture_scroll(self, connection_id: str, path: str | BrowserPath, offset: int) -> None:
        """Remember the scroll offset of a directory view.

        :raises ValueError: If ``offset`` is negative.
        """
        if offset < 0:
            raise ValueError(f"Scroll offset must be >= 0, got {offset}")
        self._state.set(self._scroll_key(connection_id, normalize_path(path)), int(offset))

    def get_scroll(self, connection_id: str, path: str | BrowserPath) -> int:
        """Return the remembered offset, or 0."""
        return int(self._state.get(self._scroll_key(connection_id, normalize_path(path)), 0))

    def clear_scroll_positions(self) -> None:
        self._state.delete_prefix(Namespace.SCROLL.prefix)

    # endregion

    # region: listing cache

    @staticmethod
    def _listing_key(connection_id: str, path: str) -> str:
        return Namespace.LISTING_CACHE.key(connection_id, path)

    def cache_listing(self, connection_id: str, path: str | BrowserPath, listing: DirectoryListing) -> None:
        """Store ``listing``, replacing any earlier one for the same key."""
        key = self._listing_key(connection_id, normalize_path(path))
        record = {"stored_at": self._clock(), "listing": listing.to_dict()}
        with self._lock:
            self._state.set(key, record)
            cached = self._state.items(Namespace.LISTING_CACHE.prefix)
            overflow = len(cached) - self._config.listing_cache_max_entries
            if overflow > 0:
                oldest = sorted(cached, key=lambda kv: kv[1]["stored_at"])[:overflow]
                self._state.delete_many(k for k, _v in oldest)
                log.debug("Evicted %d cached listings", overflow)

    def get_cached_listing(self, connection_id: str, path: str | BrowserPath) -> DirectoryListing | None:
        """Return the cached listing, or ``None`` on a miss.

        A listing older than the TTL counts as a miss and is dropped.
        """
        key = self._listing_key(connection_id, normalize_path(path))
        with self._lock:
            record = self._state.get(key)
            if record is None:
                return None
            if self._clock() - float(record["stored_at"]) >= self._config.listing_cache_ttl:
                self._state.delete(key)
                return None
        return DirectoryListing.from_dict(record["listing"])

    def invalidate_listing(self, connection_id: str, path: str | BrowserPath) -> None:
        """Drop one cached listing, e.g. after writing into that directory."""
        self._state.delete(self._listing_key(connection_id, normalize_path(path)))

    def clear_directory_cache(self) -> None:
        self._state.delete_prefix(Namespace.LISTING_CACHE.prefix)

    # endregion

    def forget_connection(self, connection_id: str) -> None:
        """Drop every history entry, scroll position and cached listing of one connection."""
        with self._lock:
            doomed = self._state.keys(Namespace.SCROLL.key(connection_id, "/"))
            doomed += self._state.keys(Namespace.LISTING_CACHE.key(connection_id, "/"))
            self._state.delete_many(doomed)
            raw = self._state.get(_HISTORY_KEY, [])
            kept = [d for d in raw if d["connection_id"] != connection_id]
            if len(kept) != len(raw):
                self._state.set(_HISTORY_KEY, kept)
