"""StorageClient abstract base class -- the core backend contract."""

from __future__ import annotations

import abc
import asyncio
import io
import logging
from typing import TYPE_CHECKING, BinaryIO, Callable, TypeVar

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from remote_browser._errors import StorageConnectionError
from remote_browser._models import DirectoryListing, utcnow
from remote_browser._path import BrowserPath, normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import TracebackType

    from remote_browser._models import Entry
    from remote_browser._types import WritableContent

T = TypeVar("T")

log = logging.getLogger(__name__)


def is_retryable(exc: BaseException) -> bool:
    """Return ``True`` for failures worth retrying with backoff (``Unreachable``, ``Timeout``)."""
    return isinstance(exc, StorageConnectionError) and exc.retryable


class StorageClient(abc.ABC):
    """Abstract base class for all storage clients.

    Public operations are coroutines. Each one runs the backend's blocking
    hook on a worker thread, so a slow listing never blocks the event loop
    and the awaiting task can be cancelled. A client instance is not safe for
    concurrent use; callers serialize operations per instance.

    Backends implement the underscore hooks and must map native exceptions to
    :class:`~remote_browser.StorageConnectionError` subclasses.

    :param connection_id: Id of the profile this client was built from.
    :param connect_attempts: Attempts for :meth:`connect` on retryable failures.
    :param connect_backoff: Multiplier (seconds) for exponential retry backoff.
    :param timeout: Network timeout in seconds for backends that take one.
    """

    def __init__(
        self,
        *,
        connection_id: str = "",
        connect_attempts: int = 3,
        connect_backoff: float = 1.0,
        timeout: float = 10.0,
    ) -> None:
        self._connection_id = connection_id
        self._connect_attempts = max(1, connect_attempts)
        self._connect_backoff = connect_backoff
        self._timeout = timeout
        self._connected = False

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Backend identifier (e.g. ``'local'``, ``'ssh'``)."""

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def connected(self) -> bool:
        return self._connected

    def __repr__(self) -> str:
        return f"{type(self).__name__}(connection_id={self._connection_id!r}, connected={self._connected})"

    # region: backend hooks

    @abc.abstractmethod
    def _open(self) -> None:
        """Establish the backend session.

        :raises StorageConnectionError: On auth or network failure.
        """

    @abc.abstractmethod
    def _close(self) -> None:
        """Release the backend session. Must not raise."""

    @abc.abstractmethod
    def _list(self, path: str) -> Iterable[Entry]:
        """Return the immediate children of directory ``path`` in any order.

        :raises NotFound: If ``path`` is not an existing directory.
        """

    @abc.abstractmethod
    def _stat(self, path: str) -> Entry:
        """Return metadata for ``path``.

        :raises NotFound: If ``path`` does not exist.
        """

    @abc.abstractmethod
    def _read(self, path: str) -> bytes:
        """Return the full content of file ``path``.

        :raises NotFound: If the file does not exist.
        """

    @abc.abstractmethod
    def _write(self, path: str, data: bytes) -> None:
        """Create or replace file ``path``, creating parent folders as needed."""

    @abc.abstractmethod
    def _remove(self, path: str) -> None:
        """Remove file or folder ``path`` (folders recursively).

        :raises NotFound: If ``path`` does not exist.
        """

    @abc.abstractmethod
    def _mkdir(self, path: str) -> None:
        """Create folder ``path`` and any missing parents. Existing folders are fine."""

    # endregion

    # region: sync plumbing

    def _connect_sync(self) -> None:
        @retry(
            retry=retry_if_exception(is_retryable),
            stop=stop_after_attempt(self._connect_attempts),
            wait=wait_exponential(multiplier=self._connect_backoff, max=10),
            before_sleep=before_sleep_log(log, logging.WARNING),  # type: ignore[arg-type,unused-ignore]
            reraise=True,
        )
        def _do_connect() -> None:
            self._open()

        _do_connect()
        self._connected = True

    def _ensure_connected(self) -> None:
        if not self._connected:
            self._connect_sync()

    def _disconnect_sync(self) -> None:
        if self._connected:
            self._close()
            self._connected = False

    async def _run(self, fn: Callable[..., T], *args: object) -> T:
        def call() -> T:
            self._ensure_connected()
            return fn(*args)

        return await asyncio.to_thread(call)

    # endregion

    # region: public operations

    async def connect(self) -> None:
        """Open the backend session, retrying ``Unreachable``/``Timeout`` with backoff.

        :raises StorageConnectionError: If the session cannot be established.
        """
        if self._connected:
            return
        await asyncio.to_thread(self._connect_sync)

    async def disconnect(self) -> None:
        """Close the backend session. Safe to call when not connected."""
        await asyncio.to_thread(self._disconnect_sync)

    async def list(self, path: str | BrowserPath) -> DirectoryListing:
        """List directory ``path``; entries are sorted by name.

        :raises NotFound: If ``path`` is not an existing directory.
        """
        normalized = normalize_path(path)
        entries = await self._run(self._list, normalized)
        return DirectoryListing(
            connection_id=self._connection_id,
            path=normalized,
            entries=tuple(sorted(entries, key=lambda e: e.name)),
            fetched_at=utcnow(),
        )

    async def stat(self, path: str | BrowserPath) -> Entry:
        """Return metadata for ``path``.

        :raises NotFound: If ``path`` does not exist.
        """
        return await self._run(self._stat, normalize_path(path))

    async def read(self, path: str | BrowserPath) -> BinaryIO:
        """Read file ``path`` and return a binary stream over its content.

        :raises NotFound: If the file does not exist.
        """
        data = await self._run(self._read, normalize_path(path))
        return io.BytesIO(data)

    async def write(self, path: str | BrowserPath, content: WritableContent) -> None:
        """Create or replace file ``path`` with ``content``."""
        data = content if isinstance(content, bytes) else await asyncio.to_thread(content.read)
        await self._run(self._write, normalize_path(path), data)

    async def remove(self, path: str | BrowserPath) -> None:
        """Remove file or folder ``path``.

        :raises NotFound: If ``path`` does not exist.
        """
        await self._run(self._remove, normalize_path(path))

    async def make_directory(self, path: str | BrowserPath) -> None:
        """Create folder ``path`` including missing parents."""
        await self._run(self._mkdir, normalize_path(path))

    # endregion

    async def __aenter__(self) -> StorageClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.disconnect()
