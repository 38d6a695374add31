"""ConnectionStore -- persisted connection profiles."""

from __future__ import annotations

import dataclasses
import logging
import threading
import uuid
from typing import TYPE_CHECKING

from remote_browser._errors import ProfileNotFound
from remote_browser._models import ConnectionProfile
from remote_browser._state import Namespace

if TYPE_CHECKING:
    from remote_browser._state import KeyValueStore

log = logging.getLogger(__name__)


class ConnectionStore:
    """Stores named connection profiles under the ``connections:`` namespace.

    Credentials are persisted as an opaque blob and never logged. A store
    lock gives :meth:`save`, :meth:`remove` and :meth:`clear_all` a single
    total order, so a save racing a clear either lands before it (and is
    cleared) or after it (and survives), never half-way.

    :param state: Persisted key/value state.
    """

    namespaces = (Namespace.CONNECTIONS,)

    def __init__(self, state: KeyValueStore) -> None:
        self._state = state
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"ConnectionStore(profiles={len(self._state.keys(Namespace.CONNECTIONS.prefix))})"

    @staticmethod
    def _key(profile_id: str) -> str:
        return Namespace.CONNECTIONS.key(profile_id)

    def save(self, profile: ConnectionProfile) -> str:
        """Insert or update ``profile``; a fresh id is assigned when it has none.

        :returns: The profile id.
        :raises ValueError: If the id contains ``:`` or an existing profile would
            change its storage type.
        """
        if ":" in profile.id:
            raise ValueError(f"Profile id must not contain ':': {profile.id!r}")
        with self._lock:
            profile_id = profile.id or uuid.uuid4().hex
            key = self._key(profile_id)
            existing = self._state.get(key)
            if existing is not None and existing["type"] != profile.type.value:
                raise ValueError(
                    f"Cannot change storage type of profile {profile_id!r} "
                    f"from {existing['type']!r} to {profile.type.value!r}"
                )
            stored = dataclasses.replace(profile, id=profile_id)
            self._state.set(key, stored.to_dict())
        log.info("Saved connection profile %s (%s)", profile_id, profile.type.value)
        return profile_id

    def get(self, profile_id: str) -> ConnectionProfile:
        """Return the profile with ``profile_id``.

        :raises ProfileNotFound: If no such profile exists.
        """
        data = self._state.get(self._key(profile_id))
        if data is None:
            raise ProfileNotFound(profile_id)
        return ConnectionProfile.from_dict(data)

    def __contains__(self, profile_id: object) -> bool:
        return isinstance(profile_id, str) and self._key(profile_id) in self._state

    def list(self) -> list[ConnectionProfile]:
        """All profiles, oldest first."""
        profiles = [ConnectionProfile.from_dict(v) for _k, v in self._state.items(Namespace.CONNECTIONS.prefix)]
        return sorted(profiles, key=lambda p: (p.created_at, p.id))

    def remove(self, profile_id: str, *, missing_ok: bool = False) -> None:
        """Remove a profile.

        :raises ProfileNotFound: If missing and ``missing_ok`` is ``False``.
        """
        with self._lock:
            removed = self._state.delete(self._key(profile_id))
        if not removed and not missing_ok:
            raise ProfileNotFound(profile_id)
        if removed:
            log.info("Removed connection profile %s", profile_id)

    def clear_all(self) -> int:
        """Remove every profile in one atomic commit.

        :returns: Number of removed profiles.
        :raises StateStoreError: If the commit failed; no profile was removed.
        """
        with self._lock:
            count = self._state.delete_prefix(Namespace.CONNECTIONS.prefix)
        log.info("Cleared %d connection profiles", count)
        return count
