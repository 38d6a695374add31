"""Client factory -- builds a StorageClient from a ConnectionProfile."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from remote_browser._config import BrowserConfig
from remote_browser._types import StorageClientType

if TYPE_CHECKING:
    from remote_browser._client import StorageClient
    from remote_browser._models import ConnectionProfile

ClientBuilder = Callable[["ConnectionProfile", "dict[str, Any]"], "StorageClient"]

# Global factory registry: maps each kind to a builder.
_CLIENT_FACTORIES: dict[StorageClientType, ClientBuilder] = {}


def register_client(kind: StorageClientType, builder: ClientBuilder) -> None:
    """Register a builder for a storage kind.

    A builder receives the profile and the common client kwargs
    (``connection_id``, retry and timeout settings) and returns a client.

    :param kind: The storage kind.
    :param builder: Callable producing a :class:`StorageClient`.
    """
    _CLIENT_FACTORIES[kind] = builder


# region: built-in builders


def _build_local(profile: ConnectionProfile, common: dict[str, Any]) -> StorageClient:
    from remote_browser.backends._local import LocalClient

    root = profile.endpoint or str(profile.options.get("root", ""))
    return LocalClient(root=root, **common)


def _split_host(endpoint: str) -> tuple[str, int | None]:
    if endpoint.startswith("["):
        host, _, rest = endpoint[1:].partition("]")
        port = rest[1:] if rest.startswith(":") else ""
        return host, int(port) if port.isdigit() else None
    host, sep, port = endpoint.rpartition(":")
    # A bare IPv6 address has colons of its own and never carries a port.
    if sep and port.isdigit() and ":" not in host:
        return host, int(port)
    return endpoint, None


def _build_ssh(profile: ConnectionProfile, common: dict[str, Any]) -> StorageClient:
    from remote_browser.backends._ssh import SSHClient

    opts = profile.options
    creds = profile.credentials
    host, port = _split_host(profile.endpoint)
    return SSHClient(
        host=host,
        port=int(opts.get("port", port or 22)),
        username=creds.get("username") or opts.get("username"),
        password=creds.get("password"),
        private_key=creds.get("private_key"),
        passphrase=creds.get("passphrase"),
        base_path=str(opts.get("base_path", "/")),
        host_key_policy=str(opts.get("host_key_policy", "strict")),
        known_host_keys=opts.get("known_host_keys"),
        host_keys_path=opts.get("host_keys_path"),
        connect_kwargs=opts.get("connect_kwargs"),
        **common,
    )


def _build_object_storage(profile: ConnectionProfile, common: dict[str, Any]) -> StorageClient:
    from remote_browser.backends._object_storage import ObjectStorageClient

    opts = profile.options
    creds = profile.credentials
    return ObjectStorageClient(
        bucket=str(opts.get("bucket", "")),
        endpoint_url=profile.endpoint or None,
        key=creds.get("access_key"),
        secret=creds.get("secret_key"),
        region_name=opts.get("region"),
        client_options=opts.get("client_options"),
        **common,
    )


def _build_webdav(profile: ConnectionProfile, common: dict[str, Any]) -> StorageClient:
    from remote_browser.backends._webdav import WebDAVClient

    opts = profile.options
    creds = profile.credentials
    return WebDAVClient(
        hostname=profile.endpoint,
        username=creds.get("username") or opts.get("username"),
        password=creds.get("password"),
        token=creds.get("token"),
        root=str(opts.get("root", "/")),
        verify_ssl=bool(opts.get("verify_ssl", True)),
        **common,
    )


def _register_builtin_clients() -> None:
    """Register the built-in builders."""
    builtins: dict[StorageClientType, ClientBuilder] = {
        StorageClientType.LOCAL: _build_local,
        StorageClientType.SSH: _build_ssh,
        StorageClientType.OBJECT_STORAGE: _build_object_storage,
        StorageClientType.WEBDAV: _build_webdav,
    }
    for kind, builder in builtins.items():
        _CLIENT_FACTORIES.setdefault(kind, builder)


# endregion


def create_client(profile: ConnectionProfile, config: BrowserConfig | None = None) -> StorageClient:
    """Build the client for ``profile``. No connection is made yet.

    :param profile: The connection profile.
    :param config: Supplies retry and timeout settings.
    :raises ValueError: If no builder is registered for the profile's type, or
        the profile's options are invalid for it.
    """
    _register_builtin_clients()
    cfg = config or BrowserConfig()
    if profile.type not in _CLIENT_FACTORIES:
        registered = sorted(k.value for k in _CLIENT_FACTORIES)
        raise ValueError(f"No client registered for type '{profile.type.value}'. Registered types: {registered}")
    common: dict[str, Any] = {
        "connection_id": profile.id,
        "connect_attempts": cfg.connect_attempts,
        "connect_backoff": cfg.connect_backoff,
        "timeout": cfg.operation_timeout,
    }
    try:
        return _CLIENT_FACTORIES[profile.type](profile, common)
    except TypeError as exc:
        raise ValueError(
            f"Invalid options for profile {profile.display_name!r} (type={profile.type.value!r}): {exc}. "
            f"Provided options: {sorted(profile.options.keys())}"
        ) from exc
