"""Storage client implementations."""

from remote_browser.backends._local import LocalClient

__all__ = ["LocalClient"]

try:
    from remote_browser.backends._ssh import HostKeyPolicy, SSHClient

    __all__ = [*__all__, "SSHClient", "HostKeyPolicy"]
except ImportError:  # pragma: no cover
    pass

try:
    from remote_browser.backends._object_storage import ObjectStorageClient

    __all__ = [*__all__, "ObjectStorageClient"]
except ImportError:  # pragma: no cover
    pass

try:
    from remote_browser.backends._webdav import WebDAVClient

    __all__ = [*__all__, "WebDAVClient"]
except ImportError:  # pragma: no cover
    pass
