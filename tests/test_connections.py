"""Tests for ConnectionStore."""

from __future__ import annotations

import dataclasses
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from remote_browser._connections import ConnectionStore
from remote_browser._errors import ProfileNotFound, StateStoreError
from remote_browser._models import ConnectionProfile, Secret
from remote_browser._state import MemoryKeyValueStore, Namespace
from remote_browser._types import StorageClientType


def _profile(name: str = "Box", **kwargs: object) -> ConnectionProfile:
    kwargs.setdefault("type", StorageClientType.SSH)
    return ConnectionProfile(display_name=name, endpoint="example.org", **kwargs)  # type: ignore[arg-type]


class TestSaveAndGet:
    def test_assigns_id(self, connections: ConnectionStore) -> None:
        profile_id = connections.save(_profile())
        assert profile_id
        assert connections.get(profile_id).id == profile_id

    def test_keeps_given_id(self, connections: ConnectionStore) -> None:
        assert connections.save(_profile(id="fixed")) == "fixed"
        assert "fixed" in connections

    def test_update_in_place(self, connections: ConnectionStore) -> None:
        pid = connections.save(_profile())
        connections.save(dataclasses.replace(connections.get(pid), display_name="Renamed"))
        assert connections.get(pid).display_name == "Renamed"
        assert len(connections.list()) == 1

    def test_type_is_fixed(self, connections: ConnectionStore) -> None:
        pid = connections.save(_profile())
        changed = dataclasses.replace(connections.get(pid), type=StorageClientType.WEBDAV)
        with pytest.raises(ValueError, match="storage type"):
            connections.save(changed)

    def test_colon_in_id_rejected(self, connections: ConnectionStore) -> None:
        with pytest.raises(ValueError):
            connections.save(_profile(id="a:b"))
        assert connections.list() == []

    def test_get_missing(self, connections: ConnectionStore) -> None:
        with pytest.raises(ProfileNotFound):
            connections.get("nope")

    def test_credentials_round_trip(self, connections: ConnectionStore, state: MemoryKeyValueStore) -> None:
        pid = connections.save(_profile(credentials=Secret({"password": "hunter2"})))
        assert connections.get(pid).credentials.get("password") == "hunter2"
        assert "hunter2" not in repr(state.items())

    def test_credentials_never_logged(self, connections: ConnectionStore, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="remote_browser"):
            connections.save(_profile(credentials=Secret({"password": "hunter2"})))
        assert "hunter2" not in caplog.text


class TestListAndRemove:
    def test_list_oldest_first(self, connections: ConnectionStore) -> None:
        t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
        connections.save(_profile("second", id="b", created_at=t0 + timedelta(days=1)))
        connections.save(_profile("first", id="a", created_at=t0))
        assert [p.display_name for p in connections.list()] == ["first", "second"]

    def test_remove(self, connections: ConnectionStore) -> None:
        pid = connections.save(_profile())
        connections.remove(pid)
        assert pid not in connections

    def test_remove_missing(self, connections: ConnectionStore) -> None:
        with pytest.raises(ProfileNotFound):
            connections.remove("nope")
        connections.remove("nope", missing_ok=True)

    def test_clear_all(self, connections: ConnectionStore, state: MemoryKeyValueStore) -> None:
        state.set("settings:theme", "dark")
        connections.save(_profile("a"))
        connections.save(_profile("b"))
        assert connections.clear_all() == 2
        assert connections.list() == []
        assert state.get("settings:theme") == "dark"


class _FailOnDelete(MemoryKeyValueStore):
    def _persist(self, data: dict[str, str]) -> None:
        if len(data) < len(self._data):
            raise StateStoreError("read-only")


class TestClearAllAtomic:
    def test_failed_clear_keeps_every_profile(self) -> None:
        store = ConnectionStore(_FailOnDelete())
        store.save(_profile("a"))
        store.save(_profile("b"))
        with pytest.raises(StateStoreError):
            store.clear_all()
        assert len(store.list()) == 2


class _SlowCommits(MemoryKeyValueStore):
    """Records the connection keys of every commit, slowly enough to interleave threads."""

    def __init__(self) -> None:
        super().__init__()
        self.commits: list[set[str]] = []

    def _persist(self, data: dict[str, str]) -> None:
        time.sleep(0.002)
        self.commits.append({k for k in data if Namespace.CONNECTIONS.owns(k)})


class TestSaveRacingClearAll:
    def test_every_save_is_either_cleared_or_kept(self) -> None:
        state = _SlowCommits()
        store = ConnectionStore(state)
        profiles = [_profile(f"p{i}") for i in range(40)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(store.save, p) for p in profiles]
            while not state.commits:
                time.sleep(0.001)
            cleared = store.clear_all()
            ids = {f.result() for f in futures}

        # Saves only add keys, so the clear is the one commit that shrinks the set.
        clear_at = next(i for i in range(1, len(state.commits)) if len(state.commits[i]) < len(state.commits[i - 1]))
        prefix = Namespace.CONNECTIONS.prefix
        saved_before = {k[len(prefix) :] for k in state.commits[clear_at - 1]}
        kept = {p.id for p in store.list()}

        assert cleared == len(saved_before) > 0
        assert not state.commits[clear_at]
        assert kept.isdisjoint(saved_before)
        assert kept | saved_before == ids
