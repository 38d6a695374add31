"""Shared test fixtures and marker registration."""

from __future__ import annotations

import pytest

from remote_browser._config import BrowserConfig
from remote_browser._connections import ConnectionStore
from remote_browser._history import NavigationHistoryService
from remote_browser._settings import SettingsStore
from remote_browser._state import MemoryKeyValueStore


def pytest_configure(config: object) -> None:
    """Register custom markers."""
    if isinstance(config, pytest.Config):
        config.addinivalue_line("markers", "integration: requires external services")


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def state() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def config() -> BrowserConfig:
    return BrowserConfig(listing_cache_ttl=30.0, listing_cache_max_entries=4, history_max_entries=5)


@pytest.fixture
def history(state: MemoryKeyValueStore, config: BrowserConfig, clock: FakeClock) -> NavigationHistoryService:
    return NavigationHistoryService(state, config, clock=clock)


@pytest.fixture
def connections(state: MemoryKeyValueStore) -> ConnectionStore:
    return ConnectionStore(state)


@pytest.fixture
def settings(state: MemoryKeyValueStore) -> SettingsStore:
    store = SettingsStore(state)
    store.load()
    return store
