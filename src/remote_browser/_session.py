"""BrowsingSession -- a connected client plus its navigation state."""

from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO

from remote_browser._path import ROOT, BrowserPath, normalize_path

if TYPE_CHECKING:
    from types import TracebackType

    from remote_browser._client import StorageClient
    from remote_browser._history import NavigationHistoryService
    from remote_browser._models import DirectoryListing, Entry
    from remote_browser._types import WritableContent


class BrowsingSession:
    """Browses one connection, serving listings from the cache when fresh.

    A listing is cached only after the backend returned it completely, so
    cancelling :meth:`open_directory` mid-fetch leaves the cache untouched.
    Writes and removals invalidate the affected directory's cached listing.

    :param client: The storage client; the session owns its lifecycle.
    :param history: Navigation history service shared across sessions.
    """

    def __init__(self, client: StorageClient, history: NavigationHistoryService) -> None:
        self._client = client
        self._history = history
        self._cwd = ROOT

    def __repr__(self) -> str:
        return f"BrowsingSession(backend={self._client.name!r}, cwd={self._cwd!r})"

    @property
    def client(self) -> StorageClient:
        return self._client

    @property
    def connection_id(self) -> str:
        return self._client.connection_id

    @property
    def current_path(self) -> str:
        return self._cwd

    def _parent_of(self, path: str) -> str:
        parent = BrowserPath(path).parent
        return str(parent) if parent is not None else ROOT

    async def open_directory(self, path: str | BrowserPath, *, refresh: bool = False) -> DirectoryListing:
        """Navigate to ``path`` and return its listing.

        :param refresh: Bypass the cache and fetch from the backend.
        :raises StorageConnectionError: If the backend fetch fails.
        """
        normalized = normalize_path(path)
        listing = None if refresh else self._history.get_cached_listing(self.connection_id, normalized)
        if listing is None:
            listing = await self._client.list(normalized)
            self._history.cache_listing(self.connection_id, normalized, listing)
        self._history.record_visit(self.connection_id, normalized)
        self._cwd = normalized
        return listing

    async def go_up(self) -> DirectoryListing:
        """Open the parent of the current directory (the root stays at the root)."""
        return await self.open_directory(self._parent_of(self._cwd))

    async def refresh(self) -> DirectoryListing:
        """Re-fetch the current directory from the backend."""
        return await self.open_directory(self._cwd, refresh=True)

    def capture_scroll(self, offset: int, path: str | BrowserPath | None = None) -> None:
        """Remember the scroll offset of ``path`` (default: current directory)."""
        self._history.capture_scroll(self.connection_id, path if path is not None else self._cwd, offset)

    def restored_scroll(self, path: str | BrowserPath | None = None) -> int:
        """Return the remembered scroll offset of ``path`` (default: current directory)."""
        return self._history.get_scroll(self.connection_id, path if path is not None else self._cwd)

    async def stat(self, path: str | BrowserPath) -> Entry:
        return await self._client.stat(normalize_path(path))

    async def read(self, path: str | BrowserPath) -> BinaryIO:
        return await self._client.read(normalize_path(path))

    async def write(self, path: str | BrowserPath, content: WritableContent) -> None:
        normalized = normalize_path(path)
        await self._client.write(normalized, content)
        self._history.invalidate_listing(self.connection_id, self._parent_of(normalized))

    async def remove(self, path: str | BrowserPath) -> None:
        normalized = normalize_path(path)
        await self._client.remove(normalized)
        self._history.invalidate_listing(self.connection_id, normalized)
        self._history.invalidate_listing(self.connection_id, self._parent_of(normalized))

    async def make_directory(self, path: str | BrowserPath) -> None:
        normalized = normalize_path(path)
        await self._client.make_directory(normalized)
        self._history.invalidate_listing(self.connection_id, self._parent_of(normalized))

    async def close(self) -> None:
        """Disconnect the underlying client."""
        await self._client.disconnect()

    async def __aenter__(self) -> BrowsingSession:
        await self._client.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
