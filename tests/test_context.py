"""End-to-end tests for BrowserContext wiring, persistence and teardown."""

from __future__ import annotations

import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from remote_browser import (
    BrowserConfig,
    BrowserContext,
    ConnectionProfile,
    DirectoryListing,
    MemoryKeyValueStore,
    ProfileNotFound,
    StorageClientType,
    Theme,
)
from remote_browser.backends import LocalClient

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def tmp_dir() -> Iterator[Path]:
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def ctx() -> Iterator[BrowserContext]:
    with BrowserContext() as context:
        yield context


class TestScenario:
    def test_profiles_settings_history_and_clear(self, ctx: BrowserContext) -> None:
        ctx.connections.save(ConnectionProfile(type=StorageClientType.LOCAL, display_name="Home"))
        profiles = ctx.connections.list()
        assert len(profiles) == 1
        assert profiles[0].type is StorageClientType.LOCAL
        assert profiles[0].display_name == "Home"

        ctx.settings.update_setting("usePureBlackBg", True)
        assert ctx.settings.get_setting("usePureBlackBg") is True
        ctx.settings.update_setting("usePureBlackBg", True)
        assert ctx.settings.get_setting("usePureBlackBg") is True

        ctx.history.record_visit(profiles[0].id, "/a")
        ctx.history.record_visit(profiles[0].id, "/a/b")
        assert [h.path for h in ctx.history.get_history()] == ["/a", "/a/b"]

        ctx.connections.remove(profiles[0].id)
        ctx.connections.save(ConnectionProfile(type=StorageClientType.SSH, display_name="Box", endpoint="host"))
        ctx.settings.update_setting("theme", "dark")
        before = ctx.settings.get_all()
        result = ctx.clear_caches()
        assert result.ok
        assert ctx.connections.list() == []
        assert ctx.history.get_history() == []
        assert ctx.settings.get_setting("theme") is Theme.DARK
        assert ctx.settings.get_all() == before

    def test_clear_history_twice(self, ctx: BrowserContext) -> None:
        ctx.history.record_visit("c", "/a")
        ctx.history.clear_history()
        ctx.history.clear_history()
        assert ctx.history.get_history() == []

    def test_concurrent_saves_not_lost(self, ctx: BrowserContext) -> None:
        profiles = [ConnectionProfile(type=StorageClientType.LOCAL, display_name=f"p{i}") for i in range(20)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(ctx.connections.save, profiles))
        assert sorted(p.id for p in ctx.connections.list()) == sorted(ids)


class TestPersistence:
    def test_state_survives_restart(self, tmp_dir: Path) -> None:
        config = BrowserConfig(state_path=str(tmp_dir / "state.json"))
        with BrowserContext(config) as ctx:
            pid = ctx.connections.save(ConnectionProfile(type=StorageClientType.LOCAL, display_name="Home"))
            ctx.settings.update_setting("language", "zh")
        with BrowserContext(config) as ctx:
            assert ctx.connections.get(pid).display_name == "Home"
            assert ctx.settings.get_setting("language") == "zh"

    def test_injected_state(self) -> None:
        state = MemoryKeyValueStore()
        state.set("settings:theme", "light")
        ctx = BrowserContext(state=state)
        assert ctx.settings.get_setting("theme") is Theme.LIGHT
        assert ctx.state is state

    def test_invalid_config(self) -> None:
        with pytest.raises(ValueError):
            BrowserContext(BrowserConfig(history_max_entries=0))

    def test_close_twice(self) -> None:
        ctx = BrowserContext()
        ctx.close()
        ctx.close()


class TestSessions:
    @pytest.mark.asyncio
    async def test_open_local_session(self, ctx: BrowserContext, tmp_dir: Path) -> None:
        (tmp_dir / "docs").mkdir()
        (tmp_dir / "readme.txt").write_text("hi")
        pid = ctx.connections.save(
            ConnectionProfile(type=StorageClientType.LOCAL, display_name="Tmp", endpoint=str(tmp_dir))
        )
        async with ctx.open_session(pid) as session:
            assert isinstance(session.client, LocalClient)
            listing = await session.open_directory("/")
        assert isinstance(listing, DirectoryListing)
        assert [e.name for e in listing.entries] == ["docs", "readme.txt"]
        assert ctx.history.get_cached_listing(pid, "/") == listing

    def test_open_unknown(self, ctx: BrowserContext) -> None:
        with pytest.raises(ProfileNotFound):
            ctx.open_session("nope")

    def test_remove_connection_forgets_navigation(self, ctx: BrowserContext) -> None:
        pid = ctx.connections.save(ConnectionProfile(type=StorageClientType.LOCAL, display_name="Home"))
        ctx.history.record_visit(pid, "/a")
        ctx.history.capture_scroll(pid, "/a", 9)
        ctx.history.record_visit("other", "/b")
        ctx.remove_connection(pid)
        assert pid not in ctx.connections
        assert [h.connection_id for h in ctx.history.get_history()] == ["other"]
        assert ctx.history.get_scroll(pid, "/a") == 0
