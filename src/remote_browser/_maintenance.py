"""CacheMaintenance -- settings-preserving clear of all transient state."""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Callable

from remote_browser._errors import CacheClearError
from remote_browser._state import Namespace

if TYPE_CHECKING:
    from remote_browser._connections import ConnectionStore
    from remote_browser._history import NavigationHistoryService
    from remote_browser._settings import SettingsStore
    from remote_browser._state import KeyValueStore

log = logging.getLogger(__name__)

CACHE_KEY_MARKERS = ("cache", "temp", "history")

STATUS_CLEARED = "cleared"
STATUS_FAILED = "clear failed"

_SWEEP_STEPS = ("clear_transient_namespaces", "clear_marked_keys")


@dataclasses.dataclass(frozen=True)
class CacheClearResult:
    """Outcome of :meth:`CacheMaintenance.clear_caches`.

    :param failed_steps: Names of failed steps, in execution order.
    :param errors: Failure message per failed step.
    :param removed_keys: Number of keys removed by the namespace and marker sweeps.
    """

    failed_steps: tuple[str, ...] = ()
    errors: dict[str, str] = dataclasses.field(default_factory=dict)
    removed_keys: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed_steps

    @property
    def status(self) -> str:
        """``"cleared"`` or ``"clear failed"``, for the user-facing notification."""
        return STATUS_CLEARED if self.ok else STATUS_FAILED

    @property
    def error(self) -> CacheClearError | None:
        if self.ok:
            return None
        return CacheClearError(
            f"{len(self.failed_steps)} cache clear step(s) failed", failed_steps=self.failed_steps
        )

    def raise_for_error(self) -> None:
        """Raise :class:`CacheClearError` if any step failed."""
        error = self.error
        if error is not None:
            raise error


class CacheMaintenance:
    """Clears history, scroll positions, cached listings, connection profiles and
    every other cache/temp/history key, but never a user setting.

    Steps run in a fixed order. A failing step is logged and recorded and the
    remaining steps still run; only the connection clear is atomic on its own.

    :param state: Persisted key/value state shared by the services.
    :param history: Navigation history service.
    :param connections: Connection profile store.
    :param settings: Settings store; its keys are never removed.
    """

    def __init__(
        self,
        state: KeyValueStore,
        history: NavigationHistoryService,
        connections: ConnectionStore,
        settings: SettingsStore,
    ) -> None:
        self._state = state
        self._history = history
        self._connections = connections
        self._settings = settings

    def _steps(self) -> list[tuple[str, Callable[[], object]]]:
        return [
            ("clear_history", self._history.clear_history),
            ("clear_scroll_positions", self._history.clear_scroll_positions),
            ("clear_directory_cache", self._history.clear_directory_cache),
            ("clear_connections", self._connections.clear_all),
            ("clear_transient_namespaces", self._sweep_namespaces),
            ("clear_marked_keys", self._sweep_marked_keys),
        ]

    def _sweep_namespaces(self) -> int:
        """Remove keys of transient namespaces no service step already covers."""
        owned = {*self._history.namespaces, *self._connections.namespaces}
        removed = 0
        for ns in Namespace:
            if ns.transient and ns not in owned:
                removed += self._state.delete_prefix(ns.prefix)
        return removed

    @staticmethod
    def is_cache_like(key: str) -> bool:
        lowered = key.lower()
        return any(marker in lowered for marker in CACHE_KEY_MARKERS)

    def _sweep_marked_keys(self) -> int:
        """Remove foreign keys whose name looks cache-like; settings keys always win."""
        doomed = [
            key
            for key in self._state.keys()
            if Namespace.of(key) is None and not self._settings.owns_key(key) and self.is_cache_like(key)
        ]
        return self._state.delete_many(doomed)

    def clear_caches(self) -> CacheClearResult:
        """Run every clear step; never raises.

        :returns: Aggregate result naming the failed steps, if any.
        """
        failed: list[str] = []
        errors: dict[str, str] = {}
        removed = 0
        for name, step in self._steps():
            try:
                outcome = step()
            except Exception as exc:
                log.exception("Cache clear step %s failed", name)
                failed.append(name)
                errors[name] = f"{type(exc).__name__}: {exc}"
                continue
            if name in _SWEEP_STEPS:
                removed += int(outcome or 0)
        result = CacheClearResult(failed_steps=tuple(failed), errors=errors, removed_keys=removed)
        if result.ok:
            log.info("Caches cleared (%d extra keys removed)", removed)
        else:
            log.warning("Cache clear finished with failures: %s", ", ".join(failed))
        return result
