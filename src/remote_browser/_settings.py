"""SettingsStore -- typed user preferences that survive cache maintenance."""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import TYPE_CHECKING, Any, Callable

from remote_browser._errors import InvalidSettingValue, KeyNotRecognized
from remote_browser._models import Theme, UserSettings
from remote_browser._state import Namespace

if TYPE_CHECKING:
    from remote_browser._state import KeyValueStore

log = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("en", "zh")

SettingListener = Callable[[str, Any], None]


def _as_bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise InvalidSettingValue(f"Setting {key!r} expects a bool, got {type(value).__name__}")
    return value


def _as_theme(key: str, value: Any) -> Theme:
    try:
        return Theme(value.value if isinstance(value, Theme) else value)
    except ValueError:
        choices = [t.value for t in Theme]
        raise InvalidSettingValue(f"Setting {key!r} expects one of {choices}, got {value!r}") from None


def _as_language(key: str, value: Any) -> str:
    if value not in SUPPORTED_LANGUAGES:
        raise InvalidSettingValue(f"Setting {key!r} expects one of {list(SUPPORTED_LANGUAGES)}, got {value!r}")
    return str(value)


@dataclasses.dataclass(frozen=True)
class SettingField:
    """Schema entry for one setting.

    :param attr: Attribute name on :class:`UserSettings`.
    :param default: Documented default value.
    :param coerce: Validates a new value and returns its typed form.
    """

    attr: str
    default: Any
    coerce: Callable[[str, Any], Any]

    def to_json(self, value: Any) -> Any:
        return value.value if isinstance(value, Theme) else value


SCHEMA: dict[str, SettingField] = {
    "theme": SettingField("theme", Theme.SYSTEM, _as_theme),
    "usePureBlackBg": SettingField("use_pure_black_bg", False, _as_bool),
    "language": SettingField("language", "en", _as_language),
    "showHiddenFiles": SettingField("show_hidden_files", False, _as_bool),
}


class SettingsStore:
    """Typed, schema-checked preferences under the ``settings:`` namespace.

    Updates are written through to the state store before they become
    visible, so a toggle is never lost between updates and a crash.

    :param state: Persisted key/value state.
    """

    namespaces = (Namespace.SETTINGS,)

    def __init__(self, state: KeyValueStore) -> None:
        self._state = state
        self._lock = threading.RLock()
        self._values: dict[str, Any] = {key: field.default for key, field in SCHEMA.items()}
        self._listeners: list[SettingListener] = []

    def __repr__(self) -> str:
        return f"SettingsStore({self.get_all()!r})"

    @staticmethod
    def _field(key: str) -> SettingField:
        try:
            return SCHEMA[key]
        except KeyError:
            raise KeyNotRecognized(key, tuple(SCHEMA)) from None

    @staticmethod
    def owns_key(key: str) -> bool:
        """Return ``True`` if a persisted key holds a user setting."""
        if Namespace.SETTINGS.owns(key):
            return True
        return key in SCHEMA

    def load(self) -> None:
        """Read persisted settings; invalid or unknown entries fall back to defaults."""
        with self._lock:
            for full_key, raw in self._state.items(Namespace.SETTINGS.prefix):
                key = full_key[len(Namespace.SETTINGS.prefix) :]
                if key not in SCHEMA:
                    log.warning("Ignoring unknown persisted setting %r", key)
                    continue
                try:
                    self._values[key] = SCHEMA[key].coerce(key, raw)
                except InvalidSettingValue:
                    log.warning("Ignoring invalid persisted value for setting %r", key)

    def flush(self) -> None:
        """Force persisted settings to durable storage."""
        self._state.flush()

    def get_setting(self, key: str) -> Any:
        """Return the current value of ``key``.

        :raises KeyNotRecognized: If ``key`` is not a known setting.
        """
        self._field(key)
        with self._lock:
            return self._values[key]

    def update_setting(self, key: str, value: Any) -> None:
        """Validate, persist and apply a new value. Repeating a write is harmless.

        :raises KeyNotRecognized: If ``key`` is not a known setting.
        :raises InvalidSettingValue: If ``value`` has the wrong type or is out of range.
        """
        field = self._field(key)
        typed = field.coerce(key, value)
        with self._lock:
            self._state.set(Namespace.SETTINGS.key(key), field.to_json(typed))
            self._values[key] = typed
            listeners = list(self._listeners)
        log.debug("Setting %s updated", key)
        for listener in listeners:
            listener(key, typed)

    def reset_setting(self, key: str) -> None:
        """Restore the documented default of ``key``."""
        self.update_setting(key, self._field(key).default)

    def get_all(self) -> UserSettings:
        """Snapshot of every setting."""
        with self._lock:
            return UserSettings(**{SCHEMA[k].attr: v for k, v in self._values.items()})

    def subscribe(self, listener: SettingListener) -> Callable[[], None]:
        """Call ``listener(key, value)`` after each update. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
