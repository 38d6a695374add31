"""Backend test fixtures -- parameterized for conformance testing."""

from __future__ import annotations

import shutil
import socket
import tempfile
import uuid
from typing import TYPE_CHECKING

import pytest

from remote_browser.backends._local import LocalClient

if TYPE_CHECKING:
    from collections.abc import Iterator

    from remote_browser._client import StorageClient
    from tests.backends.sftp_server import SFTPTestServer

REGION = "us-east-1"


def _s3_available() -> bool:
    try:
        import boto3  # noqa: F401
        import moto  # noqa: F401
        import s3fs  # noqa: F401

        return True
    except ImportError:
        return False


def _ssh_available() -> bool:
    try:
        import paramiko  # noqa: F401

        return True
    except ImportError:
        return False


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("", 0))
        return int(s.getsockname()[1])


def make_bucket(endpoint: str) -> str:
    """Create a fresh bucket on the moto server and return its name."""
    import boto3

    bucket = f"browse-{uuid.uuid4().hex[:8]}"
    boto3.client(
        "s3",
        endpoint_url=endpoint,
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        region_name=REGION,
    ).create_bucket(Bucket=bucket)
    return bucket


@pytest.fixture(scope="session")
def moto_server() -> Iterator[str | None]:
    """Start a moto HTTP server for the test session.

    Server mode keeps s3fs/aiobotocore talking real HTTP instead of patched botocore.
    """
    if not _s3_available():
        yield None
        return
    from moto.moto_server.threaded_moto_server import ThreadedMotoServer

    port = _free_port()
    server = ThreadedMotoServer(port=port, verbose=False)
    server.start()
    yield f"http://127.0.0.1:{port}"
    server.stop()


@pytest.fixture(scope="session")
def sftp_server() -> Iterator[SFTPTestServer | None]:
    """Start an in-process SFTP server for the test session."""
    if not _ssh_available():
        yield None
        return

    from tests.backends.sftp_server import SFTPTestServer

    root = tempfile.mkdtemp(prefix="sftp_test_")
    server = SFTPTestServer(root).start()
    yield server
    server.stop()
    shutil.rmtree(root, ignore_errors=True)


def make_ssh_client(server: SFTPTestServer, **overrides: object) -> StorageClient:
    from tests.backends.sftp_server import PASSWORD, USERNAME

    from remote_browser.backends._ssh import SSHClient

    kwargs: dict[str, object] = {
        "port": server.port,
        "username": USERNAME,
        "password": PASSWORD,
        "base_path": f"/test_{uuid.uuid4().hex[:8]}",
        "known_host_keys": server.known_hosts_line,
        "connect_kwargs": {"allow_agent": False, "look_for_keys": False},
        "connect_attempts": 1,
        "timeout": 5.0,
    }
    kwargs.update(overrides)
    return SSHClient("127.0.0.1", **kwargs)  # type: ignore[arg-type]


_object_storage_param = pytest.param(
    "objectStorage",
    marks=pytest.mark.skipif(not _s3_available(), reason="moto/s3fs not installed"),
)

_ssh_param = pytest.param(
    "ssh",
    marks=pytest.mark.skipif(not _ssh_available(), reason="paramiko not installed"),
)


@pytest.fixture(params=["local", _object_storage_param, _ssh_param])
def client(
    request: pytest.FixtureRequest,
    moto_server: str | None,
    sftp_server: SFTPTestServer | None,
) -> Iterator[StorageClient]:
    """Parameterized, already-connected client over an empty root. Add new backends here."""
    if request.param == "local":
        with tempfile.TemporaryDirectory() as tmp:
            c: StorageClient = LocalClient(root=tmp, connection_id="local-1")
            c._connect_sync()
            yield c
            c._disconnect_sync()
    elif request.param == "objectStorage":
        from remote_browser.backends._object_storage import ObjectStorageClient

        assert moto_server is not None
        c = ObjectStorageClient(
            bucket=make_bucket(moto_server),
            endpoint_url=moto_server,
            key="testing",
            secret="testing",
            region_name=REGION,
            connection_id="s3-1",
        )
        c._connect_sync()
        yield c
        c._disconnect_sync()
    elif request.param == "ssh":
        assert sftp_server is not None
        c = make_ssh_client(sftp_server, connection_id="ssh-1")
        c._connect_sync()
        c._mkdir("/")
        yield c
        c._disconnect_sync()
    else:
        pytest.skip(f"Unknown backend: {request.param}")
