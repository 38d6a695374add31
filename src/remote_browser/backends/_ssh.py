"""SSH client browsing a remote host over SFTP, using pure paramiko."""

from __future__ import annotations

import contextlib
import errno
import logging
import os
import re
import socket
import stat
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from io import StringIO
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

log = logging.getLogger(__name__)

# RFC 4253 compliant chunk size for SFTP data transfer
_CHUNK_SIZE = 32768


# region: host key policy


class HostKeyPolicy(Enum):
    """Controls how unknown remote host keys are handled.

    :cvar STRICT: Reject unknown hosts (production default).
    :cvar TRUST_ON_FIRST_USE: Save on first connect, verify after.
    :cvar AUTO_ADD: Accept any key (dev/testing ONLY).
    """

    STRICT = "strict"
    TRUST_ON_FIRST_USE = "tofu"
    AUTO_ADD = "auto"


# endregion

# region: PEM handling

_NON_BASE64_PATTERN = re.compile(r"[^A-Za-z\d+/=]")
_PEM_SEPARATOR = "-----"


def _sanitize_pem(pem_content: str) -> str:
    """Normalize PEM line separators when a secret store flattened newlines to blanks."""
    parts = pem_content.replace("\r\n", "\n").replace("\r", "\n").split(_PEM_SEPARATOR)
    if len(parts) != 5:
        raise ValueError("Invalid PEM structure (expected 5 parts).")

    payload = parts[2]
    if "\n" in payload.strip("\n"):
        return _PEM_SEPARATOR.join(parts)
    non_base64_chars = list(set(re.findall(_NON_BASE64_PATTERN, payload)))
    if len(non_base64_chars) != 1:
        raise ValueError(f"Unexpected PEM characters: {non_base64_chars}")

    parts[2] = payload.replace(non_base64_chars[0], "\n")
    return _PEM_SEPARATOR.join(parts)


def load_private_key(pem: str, passphrase: str | None = None) -> Any:
    """Load a private key (RSA, ECDSA or Ed25519) from a PEM string.

    :raises AuthRejected: If the key cannot be parsed or decrypted.
    """
    import paramiko

    try:
        text = _sanitize_pem(pem)
    except ValueError as exc:
        raise AuthRejected(f"Private key could not be loaded: {exc}", backend="ssh") from None
    for key_cls in (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key):
        with StringIO(text) as buf:
            try:
                return key_cls.from_private_key(buf, password=passphrase)
            except (paramiko.SSHException, ValueError):
                continue
    raise AuthRejected("Private key could not be loaded", backend="ssh")


# endregion

_HOST_KEYS_ENV = "SFTP_KNOWN_HOST_KEYS"


def _load_host_keys_from_string(ssh: Any, keys_content: str) -> None:
    """Parse a known_hosts-formatted string into an SSHClient's host keys."""
    import tempfile

    with tempfile.NamedTemporaryFile(mode="w", suffix=".known_hosts", delete=True) as tmp:
        tmp.write(keys_content)
        tmp.flush()
        ssh.load_host_keys(tmp.name)


class SSHClient(StorageClient):
    """SSH client using paramiko's SFTP subsystem.

    :param host: SSH server hostname (required, non-empty).
    :param port: SSH port (default: 22).
    :param username: SSH username.
    :param password: SSH password.
    :param private_key: PEM-encoded private key for key-based auth.
    :param passphrase: Passphrase for an encrypted ``private_key``.
    :param base_path: Remote directory shown as ``"/"`` (default: ``/``).
    :param host_key_policy: Host key verification policy.
    :param known_host_keys: Known hosts string (code-level override).
    :param host_keys_path: Path to known_hosts file (default: ``~/.ssh/known_hosts``).
    :param connect_kwargs: Extra kwargs passed to ``SSHClient.connect()``.
    :param kwargs: Passed to :class:`StorageClient`.
    """

    def __init__(
        self,
        host: str,
        *,
        port: int = 22,
        username: str | None = None,
        password: str | None = None,
        private_key: str | None = None,
        passphrase: str | None = None,
        base_path: str = "/",
        host_key_policy: HostKeyPolicy | str = HostKeyPolicy.STRICT,
        known_host_keys: str | None = None,
        host_keys_path: str | None = None,
        connect_kwargs: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        if not host or not host.strip():
            raise ValueError("host must be a non-empty string")
        self._host = host
        self._port = int(port)
        self._username = username
        self._password = password
        self._private_key = private_key
        self._passphrase = passphrase
        self._base_path = base_path.rstrip("/") or "/"
        self._host_key_policy = HostKeyPolicy(host_key_policy)
        self._host_keys_path = host_keys_path
        self._connect_kwargs = connect_kwargs or {}
        self._resolved_host_keys = known_host_keys or os.environ.get(_HOST_KEYS_ENV)

        self._ssh_client: Any = None
        self._sftp_client: Any = None

    @property
    def name(self) -> str:
        return "ssh"

    # region: connection

    @property
    def _sftp(self) -> Any:
        """SFTP client with automatic reconnection on staleness."""
        if not self._is_alive():
            self._open()
        return self._sftp_client

    def _open(self) -> None:
        """Establish SSH + SFTP connection (one attempt; retries live in the base class)."""
        import paramiko

        self._close_clients()
        ssh = self._create_ssh_client()
        pkey = load_private_key(self._private_key, self._passphrase) if self._private_key else None

        log.info("Connecting to %s:%d as %s", self._host, self._port, self._username)
        try:
            ssh.connect(
                hostname=self._host,
                port=self._port,
                username=self._username,
                password=self._password,
                pkey=pkey,
                timeout=self._timeout,
                banner_timeout=self._timeout,
                auth_timeout=self._timeout,
                channel_timeout=self._timeout,
                **self._connect_kwargs,
            )
            sftp = ssh.open_sftp()
        except paramiko.AuthenticationException:
            ssh.close()
            raise AuthRejected(
                f"Authentication rejected for {self._username}@{self._host}", backend=self.name
            ) from None
        except paramiko.BadHostKeyException as exc:
            ssh.close()
            raise AuthRejected(f"Host key mismatch: {exc}", backend=self.name) from None
        except (socket.timeout, TimeoutError):
            ssh.close()
            raise Timeout(f"Timed out connecting to {self._host}:{self._port}", backend=self.name) from None
        except paramiko.SSHException as exc:
            ssh.close()
            if "known_hosts" in str(exc):
                raise AuthRejected(str(exc), backend=self.name) from None
            raise Unreachable(str(exc), backend=self.name) from None
        except (OSError, EOFError) as exc:
            ssh.close()
            raise Unreachable(f"Cannot reach {self._host}:{self._port}: {exc}", backend=self.name) from None

        self._ssh_client = ssh
        self._sftp_client = sftp
        log.info("SFTP connection established.")

    def _create_ssh_client(self) -> Any:
        """Create and configure a paramiko SSHClient with the host key policy."""
        import paramiko

        ssh = paramiko.SSHClient()

        if self._resolved_host_keys:
            _load_host_keys_from_string(ssh, self._resolved_host_keys)
        elif self._host_key_policy in (HostKeyPolicy.STRICT, HostKeyPolicy.TRUST_ON_FIRST_USE):
            keys_path = self._host_keys_path or os.path.expanduser("~/.ssh/known_hosts")
            if os.path.isfile(keys_path):
                ssh.load_host_keys(keys_path)

        if self._host_key_policy == HostKeyPolicy.TRUST_ON_FIRST_USE:
            ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        elif self._host_key_policy == HostKeyPolicy.AUTO_ADD:
            log.warning("AUTO_ADD host key policy -- NOT safe for production.")
            ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        return ssh

    def _is_alive(self) -> bool:
        if self._sftp_client is None or self._ssh_client is None:
            return False
        transport = self._ssh_client.get_transport()
        return transport is not None and transport.is_active()

    def _close_clients(self) -> None:
        if self._sftp_client is not None:
            with contextlib.suppress(Exception):
                self._sftp_client.close()
            self._sftp_client = None
        if self._ssh_client is not None:
            with contextlib.suppress(Exception):
                self._ssh_client.close()
            self._ssh_client = None

    def _close(self) -> None:
        self._close_clients()

    # endregion

    # region: path helpers

    def _sftp_path(self, path: str) -> str:
        """Convert a browser path to an absolute remote path."""
        rel = path.lstrip("/")
        if not rel:
            return self._base_path
        if self._base_path == "/":
            return f"/{rel}"
        return f"{self._base_path}/{rel}"

    def _ensure_dirs(self, sftp_dir: str) -> None:
        """Create ``sftp_dir`` and its missing parents."""
        current = ""
        for part in sftp_dir.split("/"):
            if not part:
                continue
            current = f"{current}/{part}"
            try:
                self._sftp.stat(current)
            except OSError:
                self._sftp.mkdir(current)

    # endregion

    # region: error mapping

    @contextmanager
    def _errors(self, path: str) -> Iterator[None]:
        """Map paramiko/OS exceptions to remote_browser errors."""
        import paramiko

        try:
            yield
        except StorageConnectionError:
            raise
        except (socket.timeout, TimeoutError):
            raise Timeout(f"Timed out: {path}", path=path, backend=self.name) from None
        except OSError as exc:
            code = getattr(exc, "errno", None)
            if code == errno.ENOENT:
                raise NotFound(f"Not found: {path}", path=path, backend=self.name) from None
            if code in (errno.EACCES, errno.EPERM):
                raise PermissionDenied(f"Permission denied: {path}", path=path, backend=self.name) from None
            raise StorageConnectionError(str(exc), path=path, backend=self.name) from None
        except (paramiko.SSHException, EOFError) as exc:
            self._close_clients()
            raise Unreachable(str(exc), path=path, backend=self.name) from None

    def _to_entry(self, name: str, attrs: Any) -> Entry:
        is_dir = stat.S_ISDIR(attrs.st_mode or 0)
        mtime = attrs.st_mtime
        return Entry(
            name=name,
            is_directory=is_dir,
            size=0 if is_dir else int(attrs.st_size or 0),
            modified_at=datetime.fromtimestamp(mtime, tz=timezone.utc) if mtime is not None else None,
        )

    # endregion

    # region: listing and metadata

    def _list(self, path: str) -> list[Entry]:
        with self._errors(path):
            sftp_path = self._sftp_path(path)
            attrs = self._sftp.stat(sftp_path)
            if not stat.S_ISDIR(attrs.st_mode or 0):
                raise NotFound(f"Not a folder: {path}", path=path, backend=self.name)
            return [self._to_entry(a.filename, a) for a in self._sftp.listdir_attr(sftp_path)]

    def _stat(self, path: str) -> Entry:
        with self._errors(path):
            attrs = self._sftp.stat(self._sftp_path(path))
            return self._to_entry(path.rsplit("/", 1)[-1], attrs)

    # endregion

    # region: read and write

    def _read(self, path: str) -> bytes:
        with self._errors(path):
            sftp_path = self._sftp_path(path)
            attrs = self._sftp.stat(sftp_path)
            if stat.S_ISDIR(attrs.st_mode or 0):
                raise NotFound(f"Not a file: {path}", path=path, backend=self.name)
            with self._sftp.file(sftp_path, "r") as f:
                f.prefetch()
                return bytes(f.read())

    def _write(self, path: str, data: bytes) -> None:
        if not path.strip("/"):
            raise InvalidPath("Cannot write to the root directory", path=path, backend=self.name)
        with self._errors(path):
            sftp_path = self._sftp_path(path)
            parent, name = sftp_path.rsplit("/", 1)
            parent = parent or "/"
            self._ensure_dirs(parent)
            tmp_path = f"{parent.rstrip('/')}/.~tmp.{name}.{uuid.uuid4().hex[:8]}"
            try:
                with self._sftp.file(tmp_path, "w") as f:
                    f.set_pipelined(True)
                    for offset in range(0, len(data), _CHUNK_SIZE):
                        f.write(data[offset : offset + _CHUNK_SIZE])
                try:
                    self._sftp.posix_rename(tmp_path, sftp_path)
                except OSError:
                    # server without the posix-rename extension
                    with contextlib.suppress(OSError):
                        self._sftp.remove(sftp_path)
                    self._sftp.rename(tmp_path, sftp_path)
            except Exception:
                with contextlib.suppress(Exception):
                    self._sftp.remove(tmp_path)
                raise

    def _remove(self, path: str) -> None:
        if not path.strip("/"):
            raise InvalidPath("Cannot remove the root directory", path=path, backend=self.name)
        with self._errors(path):
            sftp_path = self._sftp_path(path)
            attrs = self._sftp.stat(sftp_path)
            if stat.S_ISDIR(attrs.st_mode or 0):
                self._rmtree(sftp_path)
            else:
                self._sftp.remove(sftp_path)

    def _rmtree(self, sftp_path: str) -> None:
        """Recursively remove a directory tree, bottom-up."""
        for attr in self._sftp.listdir_attr(sftp_path):
            child = f"{sftp_path}/{attr.filename}"
            if stat.S_ISDIR(attr.st_mode or 0):
                self._rmtree(child)
            else:
                self._sftp.remove(child)
        self._sftp.rmdir(sftp_path)

    def _mkdir(self, path: str) -> None:
        with self._errors(path):
            self._ensure_dirs(self._sftp_path(path))

    # endregion
