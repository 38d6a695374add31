"""BrowserContext -- wires the stores together with a defined init and teardown."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable

from remote_browser._config import BrowserConfig
from remote_browser._connections import ConnectionStore
from remote_browser._factory import create_client
from remote_browser._history import NavigationHistoryService
from remote_browser._maintenance import CacheMaintenance
from remote_browser._session import BrowsingSession
from remote_browser._settings import SettingsStore
from remote_browser._state import JsonFileKeyValueStore, MemoryKeyValueStore

if TYPE_CHECKING:
    from types import TracebackType

    from remote_browser._maintenance import CacheClearResult
    from remote_browser._state import KeyValueStore

log = logging.getLogger(__name__)


class BrowserContext:
    """Owns the persisted state and the services built on it.

    Construction loads persisted settings; :meth:`close` flushes them. Pass
    the context (or its services) to the presentation layer instead of
    reaching for module-level singletons.

    :param config: Optional configuration. Validates immediately.
    :param state: State store to use; defaults to a JSON file at
        ``config.state_path`` or an in-memory store.
    :param clock: Time source for listing cache freshness.
    :raises ValueError: If config is invalid.
    """

    def __init__(
        self,
        config: BrowserConfig | None = None,
        *,
        state: KeyValueStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or BrowserConfig()
        self._config.validate()
        if state is None:
            if self._config.state_path:
                state = JsonFileKeyValueStore(self._config.state_path)
            else:
                state = MemoryKeyValueStore()
        self._state = state
        self.settings = SettingsStore(state)
        self.settings.load()
        self.connections = ConnectionStore(state)
        self.history = NavigationHistoryService(state, self._config, clock=clock)
        self.maintenance = CacheMaintenance(state, self.history, self.connections, self.settings)
        self._closed = False

    def __repr__(self) -> str:
        return f"BrowserContext(state={self._state!r})"

    @property
    def config(self) -> BrowserConfig:
        return self._config

    @property
    def state(self) -> KeyValueStore:
        return self._state

    def open_session(self, profile_id: str) -> BrowsingSession:
        """Build a session for a saved profile. The client connects lazily.

        :raises ProfileNotFound: If no profile has this id.
        """
        profile = self.connections.get(profile_id)
        client = create_client(profile, self._config)
        return BrowsingSession(client, self.history)

    def remove_connection(self, profile_id: str) -> None:
        """Remove a profile together with its history, scroll positions and cached listings.

        :raises ProfileNotFound: If no profile has this id.
        """
        self.connections.remove(profile_id)
        self.history.forget_connection(profile_id)

    def clear_caches(self) -> CacheClearResult:
        """Clear every transient store; settings are kept. Never raises."""
        return self.maintenance.clear_caches()

    def close(self) -> None:
        """Flush settings and release the state store. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        try:
            self.settings.flush()
        finally:
            self._state.close()

    def __enter__(self) -> BrowserContext:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
