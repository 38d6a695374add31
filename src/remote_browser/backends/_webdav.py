"""WebDAV client using webdavclient3."""

from __future__ import annotations

import io
import logging
from contextlib import contextmanager
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote, urlsplit

from remote_browser._client import StorageClient
from remote_browser._errors import (
    AuthRejected,
    InvalidPath,
    NotFound,
    PermissionDenied,
    StorageConnectionError,
    Timeout,
    Unreachable,
)
from remote_browser._models import Entry

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

log = logging.getLogger(__name__)


def _parse_http_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


class WebDAVClient(StorageClient):
    """WebDAV client using webdavclient3.

    :param hostname: Server URL (``https://dav.example.com``); ``http://`` is
        assumed when no scheme is given.
    :param username: Login name.
    :param password: Password.
    :param token: OAuth token, used instead of login/password when set.
    :param root: Server-side path shown as ``"/"`` (e.g. ``/remote.php/dav/files/me``).
    :param verify_ssl: Verify TLS certificates.
    :param kwargs: Passed to :class:`StorageClient`.
    """

    def __init__(
        self,
        hostname: str,
        *,
        username: str | None = None,
        password: str | None = None,
        token: str | None = None,
        root: str = "/",
        verify_ssl: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        if not hostname or not hostname.strip():
            raise ValueError("hostname must be a non-empty string")
        if not hostname.startswith(("http://", "https://")):
            hostname = f"http://{hostname}"
        self._hostname = hostname.rstrip("/")
        self._username = username
        self._password = password
        self._token = token
        self._root = "/" + root.strip("/") if root.strip("/") else "/"
        self._verify_ssl = verify_ssl
        self._dav_client: Any = None

    @property
    def name(self) -> str:
        return "webdav"

    # region: session

    @property
    def _dav(self) -> Any:
        if self._dav_client is None:
            self._dav_client = self._make_client()
        return self._dav_client

    def _make_client(self) -> Any:
        from webdav3.client import Client

        options: dict[str, Any] = {
            "webdav_hostname": self._hostname,
            "webdav_root": self._root,
            "webdav_timeout": self._timeout,
        }
        if self._token:
            options["webdav_token"] = self._token
        else:
            options["webdav_login"] = self._username or ""
            options["webdav_password"] = self._password or ""
        client = Client(options)
        client.verify = self._verify_ssl
        return client

    def _open(self) -> None:
        log.info("Connecting to WebDAV server %s", self._hostname)
        with self._errors("/"):
            # list() surfaces 401/403, check() would swallow them
            self._dav.list("/")

    def _close(self) -> None:
        self._dav_client = None

    # endregion

    # region: error mapping

    @contextmanager
    def _errors(self, path: str) -> Iterator[None]:
        """Map webdav3 exceptions to remote_browser errors."""
        from webdav3 import exceptions as dav

        try:
            yield
        except StorageConnectionError:
            raise
        except (dav.RemoteResourceNotFound, dav.RemoteParentNotFound):
            raise NotFound(f"Not found: {path}", path=path, backend=self.name) from None
        except dav.ResponseErrorCode as exc:
            raise self._classify_status(int(exc.code), str(exc), path) from None
        except dav.NoConnection as exc:
            raise Unreachable(f"Cannot reach {self._hostname}: {exc}", path=path, backend=self.name) from None
        except dav.ConnectionException as exc:
            cause = str(getattr(exc, "exception", exc)).lower()
            if "timed out" in cause or "timeout" in cause:
                raise Timeout(f"Timed out: {path}", path=path, backend=self.name) from None
            raise Unreachable(str(exc), path=path, backend=self.name) from None
        except dav.WebDavException as exc:
            raise StorageConnectionError(str(exc), path=path, backend=self.name) from None

    def _classify_status(self, code: int, message: str, path: str) -> StorageConnectionError:
        if code == 401:
            return AuthRejected(f"Authentication rejected by {self._hostname}", path=path, backend=self.name)
        if code == 403:
            return PermissionDenied(f"Permission denied: {path}", path=path, backend=self.name)
        if code in (404, 410):
            return NotFound(f"Not found: {path}", path=path, backend=self.name)
        if code in (408, 504):
            return Timeout(f"Timed out: {path}", path=path, backend=self.name)
        if code in (502, 503):
            return Unreachable(message, path=path, backend=self.name)
        return StorageConnectionError(message, path=path, backend=self.name)

    @staticmethod
    def _name_from_href(href: str) -> str:
        return unquote(urlsplit(href).path).rstrip("/").rsplit("/", 1)[-1]

    def _to_entry(self, info: dict[str, Any], fallback_name: str = "") -> Entry:
        is_dir = bool(info.get("isdir"))
        name = info.get("name") or (self._name_from_href(info["path"]) if info.get("path") else fallback_name)
        size = info.get("size")
        return Entry(
            name=str(name),
            is_directory=is_dir,
            size=0 if is_dir or not size else int(size),
            modified_at=_parse_http_date(info.get("modified")),
        )

    # endregion

    # region: listing and metadata

    def _list(self, path: str) -> list[Entry]:
        with self._errors(path):
            if not self._dav.is_dir(path):
                raise NotFound(f"Not a folder: {path}", path=path, backend=self.name)
            infos: list[dict[str, Any]] = self._dav.list(path, get_info=True)
            return [self._to_entry(info) for info in infos]

    def _stat(self, path: str) -> Entry:
        name = path.rstrip("/").rsplit("/", 1)[-1]
        with self._errors(path):
            info: dict[str, Any] = dict(self._dav.info(path))
            info["isdir"] = self._dav.is_dir(path)
            return self._to_entry(info, fallback_name=name)

    # endregion

    # region: read and write

    def _read(self, path: str) -> bytes:
        with self._errors(path):
            if self._dav.is_dir(path):
                raise NotFound(f"Not a file: {path}", path=path, backend=self.name)
            buf = io.BytesIO()
            self._dav.download_from(buf, path)
            return buf.getvalue()

    def _write(self, path: str, data: bytes) -> None:
        if not path.strip("/"):
            raise InvalidPath("Cannot write to the root directory", path=path, backend=self.name)
        parent = path.rstrip("/").rsplit("/", 1)[0] or "/"
        with self._errors(path):
            self._ensure_dirs(parent)
            self._dav.upload_to(data, path)

    def _remove(self, path: str) -> None:
        if not path.strip("/"):
            raise InvalidPath("Cannot remove the root directory", path=path, backend=self.name)
        with self._errors(path):
            if not self._dav.check(path):
                raise NotFound(f"Not found: {path}", path=path, backend=self.name)
            # DELETE on a collection removes it recursively
            self._dav.clean(path)

    def _mkdir(self, path: str) -> None:
        with self._errors(path):
            self._ensure_dirs(path)

    def _ensure_dirs(self, path: str) -> None:
        current = ""
        for part in path.strip("/").split("/"):
            if not part:
                continue
            current = f"{current}/{part}"
            if not self._dav.check(current + "/"):
                self._dav.mkdir(current + "/")

    # endregion
