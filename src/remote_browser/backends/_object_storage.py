"""S3-compatible object storage client using s3fs."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

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

_AUTH_MARKERS = ("invalidaccesskeyid", "signaturedoesnotmatch", "invalidtoken", "expiredtoken", "unrecognizedclient")
_TIMEOUT_MARKERS = ("timeout", "timed out")
_UNREACHABLE_MARKERS = ("endpoint", "connect", "dns", "name or service", "unreachable")


class ObjectStorageClient(StorageClient):
    """S3-compatible object storage client using s3fs.

    With a ``bucket``, browser paths are keys inside that bucket. Without one,
    ``"/"`` lists the buckets and the first path segment selects a bucket.
    Prefixes are presented as directories.

    :param bucket: Bucket to browse; empty to browse all buckets.
    :param endpoint_url: Custom endpoint URL (e.g. for MinIO).
    :param key: Access key ID.
    :param secret: Secret access key.
    :param region_name: Region name.
    :param client_options: Additional options passed to s3fs.
    :param kwargs: Passed to :class:`StorageClient`.
    """

    def __init__(
        self,
        bucket: str = "",
        *,
        endpoint_url: str | None = None,
        key: str | None = None,
        secret: str | None = None,
        region_name: str | None = None,
        client_options: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._bucket = bucket.strip("/")
        self._endpoint_url = endpoint_url or None
        self._key = key
        self._secret = secret
        self._region_name = region_name
        self._client_options = client_options or {}
        self._fs_instance: Any = None

    @property
    def name(self) -> str:
        return "objectStorage"

    # region: filesystem session

    @property
    def _fs(self) -> Any:
        if self._fs_instance is None:
            self._fs_instance = self._make_fs()
        return self._fs_instance

    def _make_fs(self) -> Any:
        import s3fs  # type: ignore[import-untyped]

        opts: dict[str, Any] = dict(self._client_options)
        if self._endpoint_url is not None:
            opts["endpoint_url"] = self._endpoint_url
        if self._key is not None:
            opts["key"] = self._key
        if self._secret is not None:
            opts["secret"] = self._secret
        client_kwargs: dict[str, Any] = opts.setdefault("client_kwargs", {})
        if self._region_name is not None:
            client_kwargs["region_name"] = self._region_name
        config_kwargs: dict[str, Any] = opts.setdefault("config_kwargs", {})
        config_kwargs.setdefault("connect_timeout", self._timeout)
        config_kwargs.setdefault("read_timeout", self._timeout)
        opts.setdefault("anon", False)
        # each client owns its session; s3fs would otherwise share cached instances
        opts.setdefault("skip_instance_cache", True)
        return s3fs.S3FileSystem(**opts)

    def _open(self) -> None:
        from fsspec.asyn import sync

        with self._errors("/"):
            self._fs.invalidate_cache()
            if self._bucket:
                sync(self._fs.loop, self._fs._call_s3, "head_bucket", Bucket=self._bucket)
            else:
                self._fs.ls("", detail=False)

    def _close(self) -> None:
        if self._fs_instance is not None:
            self._fs_instance.invalidate_cache()
            self._fs_instance = None

    # endregion

    # region: path helpers

    def _s3_path(self, path: str) -> str:
        """Decompose a browser path into an s3fs ``bucket/key`` path."""
        rel = path.strip("/")
        if self._bucket:
            return f"{self._bucket}/{rel}" if rel else self._bucket
        return rel

    @staticmethod
    def _is_bucket_path(s3_path: str) -> bool:
        return bool(s3_path) and "/" not in s3_path

    # endregion

    # region: error mapping

    @contextmanager
    def _errors(self, path: str) -> Iterator[None]:
        """Map s3fs/botocore exceptions to remote_browser errors."""
        try:
            yield
        except StorageConnectionError:
            raise
        except FileNotFoundError:
            raise NotFound(f"Not found: {path}", path=path, backend=self.name) from None
        except Exception as exc:
            raise self._classify_error(exc, path) from None

    def _classify_error(self, exc: Exception, path: str) -> StorageConnectionError:
        """Classify an unknown exception into a remote_browser error type."""
        msg = str(exc).lower()
        if any(kw in msg for kw in _AUTH_MARKERS):
            return AuthRejected(str(exc), path=path, backend=self.name)
        if "404" in msg or "nosuchkey" in msg or "nosuchbucket" in msg or "not found" in msg:
            return NotFound(f"Not found: {path}", path=path, backend=self.name)
        if isinstance(exc, PermissionError) or "403" in msg or "accessdenied" in msg or "access denied" in msg:
            return PermissionDenied(f"Permission denied: {path}", path=path, backend=self.name)
        if isinstance(exc, TimeoutError) or any(kw in msg for kw in _TIMEOUT_MARKERS):
            return Timeout(str(exc), path=path, backend=self.name)
        if isinstance(exc, OSError) or any(kw in msg for kw in _UNREACHABLE_MARKERS):
            return Unreachable(str(exc), path=path, backend=self.name)
        return StorageConnectionError(str(exc), path=path, backend=self.name)

    @staticmethod
    def _to_entry(info: dict[str, Any]) -> Entry:
        """Convert an s3fs info dict to an Entry."""
        name = str(info["name"]).rstrip("/").rsplit("/", 1)[-1]
        is_dir = info.get("type") in ("directory", "bucket") or info.get("StorageClass") == "BUCKET"
        modified = info.get("LastModified", info.get("last_modified", info.get("CreationDate")))
        if isinstance(modified, str):
            modified = datetime.fromisoformat(modified)
        if isinstance(modified, datetime) and modified.tzinfo is None:
            modified = modified.replace(tzinfo=timezone.utc)
        size = 0 if is_dir else int(info.get("size", info.get("Size", 0)) or 0)
        return Entry(
            name=name,
            is_directory=is_dir,
            size=size,
            modified_at=modified if isinstance(modified, datetime) else None,
        )

    # endregion

    # region: listing and metadata

    def _list(self, path: str) -> list[Entry]:
        s3_path = self._s3_path(path)
        with self._errors(path):
            if s3_path and s3_path != self._bucket and not self._fs.isdir(s3_path):
                raise NotFound(f"Not a folder: {path}", path=path, backend=self.name)
            infos: list[dict[str, Any]]
            try:
                infos = self._fs.ls(s3_path, detail=True, refresh=True)
            except FileNotFoundError:
                # an existing but empty bucket or prefix lists as missing
                infos = []
            entries = []
            for info in infos:
                if str(info["name"]).rstrip("/") == s3_path:
                    # placeholder object for the prefix itself
                    continue
                entries.append(self._to_entry(info))
            return entries

    def _stat(self, path: str) -> Entry:
        s3_path = self._s3_path(path)
        if not s3_path:
            return Entry(name="", is_directory=True)
        with self._errors(path):
            info: dict[str, Any] = self._fs.info(s3_path, refresh=True)
            return self._to_entry(info)

    # endregion

    # region: read and write

    def _require_key(self, path: str) -> str:
        rel = path.strip("/")
        if not rel or (not self._bucket and "/" not in rel):
            raise InvalidPath("Path does not name an object key", path=path, backend=self.name)
        return self._s3_path(path)

    def _read(self, path: str) -> bytes:
        s3_path = self._require_key(path)
        with self._errors(path):
            return bytes(self._fs.cat_file(s3_path))

    def _write(self, path: str, data: bytes) -> None:
        s3_path = self._require_key(path)
        with self._errors(path):
            # a single PUT replaces the object atomically
            self._fs.pipe_file(s3_path, data)

    def _remove(self, path: str) -> None:
        s3_path = self._require_key(path)
        with self._errors(path):
            if not self._fs.exists(s3_path):
                raise NotFound(f"Not found: {path}", path=path, backend=self.name)
            self._fs.rm(s3_path, recursive=self._fs.isdir(s3_path))

    def _mkdir(self, path: str) -> None:
        s3_path = self._s3_path(path)
        if not s3_path:
            return
        if self._is_bucket_path(s3_path) and not self._bucket:
            with self._errors(path):
                if not self._fs.exists(s3_path):
                    self._fs.mkdir(s3_path)
            return
        from fsspec.asyn import sync

        bucket, key, _ = self._fs.split_path(s3_path)
        with self._errors(path):
            # prefixes only exist through objects; store a zero-byte "key/" marker
            sync(self._fs.loop, self._fs._call_s3, "put_object", Bucket=bucket, Key=f"{key}/", Body=b"")
            self._fs.invalidate_cache(s3_path)

    # endregion
