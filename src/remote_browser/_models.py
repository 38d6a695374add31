"""Immutable metadata, profile and settings models."""

from __future__ import annotations

import base64
import dataclasses
import enum
import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from remote_browser._types import StorageClientType


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _parse_dt(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# region: listings


@dataclasses.dataclass(frozen=True)
class Entry:
    """Immutable snapshot of one directory entry.

    :param name: Entry name (final path component).
    :param is_directory: ``True`` for folders, buckets and prefixes.
    :param size: Size in bytes (0 for directories).
    :param modified_at: Last modification time, if the backend reports one.
    """

    name: str
    is_directory: bool
    size: int = 0
    modified_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "is_directory": self.is_directory,
            "size": self.size,
            "modified_at": self.modified_at.isoformat() if self.modified_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Entry:
        modified = data.get("modified_at")
        return cls(
            name=str(data["name"]),
            is_directory=bool(data["is_directory"]),
            size=int(data.get("size", 0)),
            modified_at=_parse_dt(modified) if modified else None,
        )


@dataclasses.dataclass(frozen=True)
class DirectoryListing:
    """The result of listing one directory of one connection.

    :param connection_id: Id of the profile the listing was fetched through.
    :param path: Normalized path of the listed directory.
    :param entries: Entries sorted by name.
    :param fetched_at: When the backend answered.
    """

    connection_id: str
    path: str
    entries: tuple[Entry, ...]
    fetched_at: datetime = dataclasses.field(default_factory=utcnow)

    @property
    def directories(self) -> tuple[Entry, ...]:
        return tuple(e for e in self.entries if e.is_directory)

    @property
    def files(self) -> tuple[Entry, ...]:
        return tuple(e for e in self.entries if not e.is_directory)

    def to_dict(self) -> dict[str, Any]:
        return {
            "connection_id": self.connection_id,
            "path": self.path,
            "entries": [e.to_dict() for e in self.entries],
            "fetched_at": self.fetched_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DirectoryListing:
        return cls(
            connection_id=str(data["connection_id"]),
            path=str(data["path"]),
            entries=tuple(Entry.from_dict(e) for e in data.get("entries", [])),
            fetched_at=_parse_dt(str(data["fetched_at"])),
        )


# endregion

# region: connection profiles


class Secret:
    """Opaque credential blob.

    Holds the credential fields of a profile (password, keys, tokens).
    ``str`` and ``repr`` never reveal the values; use :meth:`reveal` at the
    point where a backend needs them.

    :param values: Credential fields.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        object.__setattr__(self, "_values", dict(values or {}))

    def reveal(self) -> dict[str, str]:
        """Return a copy of the credential fields."""
        return dict(self._values)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._values.get(key, default)

    def encode(self) -> str:
        """Encode as an opaque base64 blob for persistence."""
        raw = json.dumps(self._values, sort_keys=True).encode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    @classmethod
    def decode(cls, blob: str) -> Secret:
        if not blob:
            return cls()
        return cls(json.loads(base64.b64decode(blob.encode("ascii"))))

    def __bool__(self) -> bool:
        return bool(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Secret):
            return self._values == other._values
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._values.items())))

    def __repr__(self) -> str:
        return "Secret('**********')" if self._values else "Secret()"

    __str__ = __repr__

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("Secret is immutable")


@dataclasses.dataclass(frozen=True)
class ConnectionProfile:
    """Persisted description of one named storage target.

    :param type: Backend kind; fixed once the profile exists.
    :param display_name: Name shown to the user.
    :param endpoint: Host, URL or local root directory, depending on ``type``.
    :param credentials: Opaque credential blob.
    :param options: Backend-specific extras (port, bucket, region, ...).
    :param id: Unique id; assigned by the connection store when empty.
    :param created_at: Creation time.
    """

    type: StorageClientType
    display_name: str
    endpoint: str = ""
    credentials: Secret = dataclasses.field(default_factory=Secret)
    options: dict[str, Any] = dataclasses.field(default_factory=dict)
    id: str = ""
    created_at: datetime = dataclasses.field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "display_name": self.display_name,
            "endpoint": self.endpoint,
            "credentials": self.credentials.encode(),
            "options": dict(self.options),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ConnectionProfile:
        return cls(
            id=str(data["id"]),
            type=StorageClientType.parse(str(data["type"])),
            display_name=str(data["display_name"]),
            endpoint=str(data.get("endpoint", "")),
            credentials=Secret.decode(str(data.get("credentials", ""))),
            options=dict(data.get("options", {})),
            created_at=_parse_dt(str(data["created_at"])),
        )


# endregion

# region: navigation


@dataclasses.dataclass(frozen=True)
class HistoryEntry:
    """One visited path.

    :param connection_id: Profile the path belongs to.
    :param path: Normalized visited path.
    :param visited_at: Visit time.
    """

    connection_id: str
    path: str
    visited_at: datetime = dataclasses.field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "connection_id": self.connection_id,
            "path": self.path,
            "visited_at": self.visited_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HistoryEntry:
        return cls(
            connection_id=str(data["connection_id"]),
            path=str(data["path"]),
            visited_at=_parse_dt(str(data["visited_at"])),
        )


# endregion

# region: settings


class Theme(enum.Enum):
    """Color theme preference."""

    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


@dataclasses.dataclass(frozen=True)
class UserSettings:
    """Snapshot of all user preferences.

    :param theme: Color theme.
    :param use_pure_black_bg: Use a pure black background in dark mode.
    :param language: UI language code.
    :param show_hidden_files: Show dot-files in listings.
    """

    theme: Theme = Theme.SYSTEM
    use_pure_black_bg: bool = False
    language: str = "en"
    show_hidden_files: bool = False


# endregion
