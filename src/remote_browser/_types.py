"""Storage client kinds and type aliases used throughout remote_browser."""

from __future__ import annotations

import dataclasses
import enum
from typing import BinaryIO

WritableContent = BinaryIO | bytes


class StorageClientType(enum.Enum):
    """Closed set of backend kinds a connection profile can target."""

    LOCAL = "local"
    SSH = "ssh"
    OBJECT_STORAGE = "objectStorage"
    WEBDAV = "webdav"

    @classmethod
    def parse(cls, value: str | StorageClientType) -> StorageClientType:
        """Parse a type identifier, accepting legacy aliases (``oss``, ``s3``, ``sftp``).

        :raises ValueError: If ``value`` names no known kind.
        """
        if isinstance(value, StorageClientType):
            return value
        lowered = value.lower()
        key = _ALIASES.get(lowered, lowered)
        try:
            return cls(key)
        except ValueError:
            known = sorted(t.value for t in cls)
            raise ValueError(f"Unknown storage client type {value!r}. Known types: {known}") from None

    @property
    def display(self) -> StorageTypeInfo:
        """Display metadata (label, icon, description) for pickers."""
        return _DISPLAY[self]


_ALIASES = {
    "oss": "objectStorage",
    "s3": "objectStorage",
    "objectstorage": "objectStorage",
    "sftp": "ssh",
    "dav": "webdav",
}


@dataclasses.dataclass(frozen=True)
class StorageTypeInfo:
    """UI-facing metadata for one storage kind.

    :param label: Short label shown on the picker button.
    :param icon: Icon key the presentation layer maps to a glyph.
    :param description: One-line tooltip text.
    """

    label: str
    icon: str
    description: str


_DISPLAY: dict[StorageClientType, StorageTypeInfo] = {
    StorageClientType.LOCAL: StorageTypeInfo(
        label="Local",
        icon="hard-drive",
        description="Browse folders on this machine",
    ),
    StorageClientType.SSH: StorageTypeInfo(
        label="SSH",
        icon="terminal",
        description="Browse a remote host over SFTP",
    ),
    StorageClientType.OBJECT_STORAGE: StorageTypeInfo(
        label="S3",
        icon="cloud",
        description="Browse S3-compatible object storage buckets",
    ),
    StorageClientType.WEBDAV: StorageTypeInfo(
        label="WebDAV",
        icon="globe",
        description="Browse a WebDAV server",
    ),
}


def storage_type_choices() -> list[tuple[StorageClientType, StorageTypeInfo]]:
    """All storage kinds with their display metadata, in picker order."""
    return [(t, _DISPLAY[t]) for t in StorageClientType]
