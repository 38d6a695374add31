"""Tests for listing, profile, history and settings models."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import pytest

from remote_browser._models import (
    ConnectionProfile,
    DirectoryListing,
    Entry,
    HistoryEntry,
    Secret,
    Theme,
    UserSettings,
)
from remote_browser._types import StorageClientType

_T0 = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


class TestEntry:
    def test_defaults(self) -> None:
        e = Entry(name="docs", is_directory=True)
        assert e.size == 0
        assert e.modified_at is None

    def test_immutable(self) -> None:
        e = Entry(name="a.txt", is_directory=False, size=3)
        with pytest.raises(dataclasses.FrozenInstanceError):
            e.size = 4  # type: ignore[misc]

    def test_from_dict_restores_timestamp(self) -> None:
        e = Entry(name="a.txt", is_directory=False, size=3, modified_at=_T0)
        assert Entry.from_dict(e.to_dict()) == e

    def test_naive_timestamp_is_utc(self) -> None:
        e = Entry.from_dict({"name": "a", "is_directory": False, "modified_at": "2024-01-02T03:04:05"})
        assert e.modified_at == _T0


class TestDirectoryListing:
    def _listing(self) -> DirectoryListing:
        return DirectoryListing(
            connection_id="c1",
            path="/docs",
            entries=(Entry("a", True), Entry("b.txt", False, 2), Entry("c", True)),
            fetched_at=_T0,
        )

    def test_directories_and_files(self) -> None:
        listing = self._listing()
        assert [e.name for e in listing.directories] == ["a", "c"]
        assert [e.name for e in listing.files] == ["b.txt"]

    def test_serialized_form_is_plain_json(self) -> None:
        data = self._listing().to_dict()
        assert data["path"] == "/docs"
        assert data["entries"][1] == {"name": "b.txt", "is_directory": False, "size": 2, "modified_at": None}
        assert DirectoryListing.from_dict(data) == self._listing()


class TestSecret:
    def test_repr_hides_values(self) -> None:
        s = Secret({"password": "hunter2"})
        assert "hunter2" not in repr(s)
        assert "hunter2" not in str(s)
        assert repr(s) == "Secret('**********')"

    def test_empty_repr(self) -> None:
        assert repr(Secret()) == "Secret()"
        assert not Secret()

    def test_reveal_returns_copy(self) -> None:
        s = Secret({"password": "p"})
        revealed = s.reveal()
        revealed["password"] = "changed"
        assert s.get("password") == "p"

    def test_encoded_blob_is_opaque(self) -> None:
        s = Secret({"password": "hunter2"})
        blob = s.encode()
        assert "hunter2" not in blob
        assert Secret.decode(blob) == s

    def test_decode_empty(self) -> None:
        assert Secret.decode("") == Secret()

    def test_immutable(self) -> None:
        with pytest.raises(AttributeError):
            Secret().x = 1  # type: ignore[attr-defined]


class TestConnectionProfile:
    def test_defaults(self) -> None:
        p = ConnectionProfile(type=StorageClientType.LOCAL, display_name="Home")
        assert p.id == ""
        assert p.endpoint == ""
        assert p.options == {}
        assert p.created_at.tzinfo is not None

    def test_dict_hides_credentials(self) -> None:
        p = ConnectionProfile(
            type=StorageClientType.SSH,
            display_name="Box",
            endpoint="host",
            credentials=Secret({"password": "hunter2"}),
            id="p1",
            created_at=_T0,
        )
        data = p.to_dict()
        assert data["type"] == "ssh"
        assert "hunter2" not in repr(data)
        assert ConnectionProfile.from_dict(data) == p

    def test_from_dict_accepts_legacy_type(self) -> None:
        data = {"id": "x", "type": "oss", "display_name": "B", "created_at": _T0.isoformat()}
        assert ConnectionProfile.from_dict(data).type is StorageClientType.OBJECT_STORAGE


class TestHistoryEntry:
    def test_dict(self) -> None:
        h = HistoryEntry(connection_id="c", path="/a", visited_at=_T0)
        assert HistoryEntry.from_dict(h.to_dict()) == h


class TestUserSettings:
    def test_defaults(self) -> None:
        s = UserSettings()
        assert s.theme is Theme.SYSTEM
        assert s.use_pure_black_bg is False
        assert s.language == "en"
        assert s.show_hidden_files is False
