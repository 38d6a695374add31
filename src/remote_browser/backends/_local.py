"""Local filesystem client -- stdlib-only reference implementation."""

from __future__ import annotations

import os
import shutil
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from remote_browser._client import StorageClient
from remote_browser._errors import InvalidPath, NotFound, PermissionDenied, StorageConnectionError
from remote_browser._models import Entry

if TYPE_CHECKING:
    from collections.abc import Iterator


class LocalClient(StorageClient):
    """Local filesystem client rooted at a directory.

    Browser paths map onto the directory tree under ``root``; ``"/"`` is
    ``root`` itself.

    :param root: Directory on the local filesystem to expose.
    :param kwargs: Passed to :class:`StorageClient`.
    """

    def __init__(self, root: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not root or not root.strip():
            raise ValueError("root must be a non-empty string")
        self._root = Path(root).expanduser().resolve()

    @property
    def name(self) -> str:
        return "local"

    @property
    def root(self) -> Path:
        return self._root

    # region: path safety
    def _resolve(self, path: str) -> Path:
        """Resolve a browser path to an absolute path within root.

        ``.resolve()`` follows symlinks, and ``relative_to`` then rejects any
        target outside the root.

        :raises InvalidPath: If the resolved path escapes the root.
        """
        resolved = (self._root / path.lstrip("/")).resolve()
        try:
            resolved.relative_to(self._root)
        except ValueError:
            raise InvalidPath(f"Path escapes root directory: {path}", path=path, backend=self.name) from None
        return resolved

    # endregion

    # region: error mapping
    @contextmanager
    def _errors(self, path: str) -> Iterator[None]:
        """Map OS exceptions to remote_browser errors."""
        try:
            yield
        except StorageConnectionError:
            raise
        except (FileNotFoundError, NotADirectoryError):
            raise NotFound(f"Not found: {path}", path=path, backend=self.name) from None
        except PermissionError:
            raise PermissionDenied(f"Permission denied: {path}", path=path, backend=self.name) from None
        except OSError as exc:
            raise StorageConnectionError(str(exc), path=path, backend=self.name) from None

    @staticmethod
    def _to_entry(full: Path) -> Entry:
        st = full.stat()
        is_dir = full.is_dir()
        return Entry(
            name=full.name,
            is_directory=is_dir,
            size=0 if is_dir else st.st_size,
            modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    # endregion

    # region: session
    def _open(self) -> None:
        if not self._root.exists():
            raise NotFound(f"Root directory does not exist: {self._root}", path=str(self._root), backend=self.name)
        if not self._root.is_dir():
            raise NotFound(f"Root is not a directory: {self._root}", path=str(self._root), backend=self.name)
        if not os.access(self._root, os.R_OK | os.X_OK):
            raise PermissionDenied(f"Root is not readable: {self._root}", path=str(self._root), backend=self.name)

    def _close(self) -> None:
        pass

    # endregion

    # region: listing and metadata
    def _list(self, path: str) -> list[Entry]:
        full = self._resolve(path)
        with self._errors(path):
            entries = []
            for item in full.iterdir():
                try:
                    entries.append(self._to_entry(item))
                except FileNotFoundError:
                    # removed between iterdir() and stat(), or a dangling symlink
                    continue
            return entries

    def _stat(self, path: str) -> Entry:
        full = self._resolve(path)
        with self._errors(path):
            entry = self._to_entry(full)
        if full == self._root:
            return Entry(name="", is_directory=True, size=0, modified_at=entry.modified_at)
        return entry

    # endregion

    # region: read and write
    def _read(self, path: str) -> bytes:
        full = self._resolve(path)
        with self._errors(path):
            if full.is_dir():
                raise NotFound(f"Not a file: {path}", path=path, backend=self.name)
            return full.read_bytes()

    def _write(self, path: str, data: bytes) -> None:
        full = self._resolve(path)
        if full == self._root:
            raise InvalidPath("Cannot write to the root directory", path=path, backend=self.name)
        with self._errors(path):
            full.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(full.parent), prefix=".~tmp.")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp_path, str(full))
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise

    def _remove(self, path: str) -> None:
        full = self._resolve(path)
        if full == self._root:
            raise InvalidPath("Cannot remove the root directory", path=path, backend=self.name)
        with self._errors(path):
            if full.is_dir() and not full.is_symlink():
                shutil.rmtree(str(full))
            else:
                full.unlink()

    def _mkdir(self, path: str) -> None:
        full = self._resolve(path)
        with self._errors(path):
            full.mkdir(parents=True, exist_ok=True)

    # endregion
