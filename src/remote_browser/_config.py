"""Configuration model -- immutable data container describing the browser core."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping


@dataclasses.dataclass(frozen=True)
class BrowserConfig:
    """Tunables for persistence, caching and connection retries.

    :param state_path: JSON file holding persisted state; ``None`` keeps state in memory.
    :param listing_cache_ttl: Seconds a cached directory listing stays fresh.
    :param listing_cache_max_entries: Upper bound on cached listings.
    :param history_max_entries: Upper bound on retained history entries.
    :param connect_attempts: Attempts for ``connect()`` on retryable failures.
    :param connect_backoff: Multiplier (seconds) for exponential retry backoff.
    :param operation_timeout: Network timeout in seconds handed to backends.
    """

    state_path: str | None = None
    listing_cache_ttl: float = 30.0
    listing_cache_max_entries: int = 256
    history_max_entries: int = 500
    connect_attempts: int = 3
    connect_backoff: float = 1.0
    operation_timeout: float = 10.0

    def validate(self) -> None:
        """Validate value ranges.

        :raises ValueError: If any value is out of range.
        """
        if self.listing_cache_ttl < 0:
            raise ValueError(f"listing_cache_ttl must be >= 0, got {self.listing_cache_ttl}")
        for name in ("listing_cache_max_entries", "history_max_entries", "connect_attempts"):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be >= 1, got {value}")
        if self.connect_backoff < 0:
            raise ValueError(f"connect_backoff must be >= 0, got {self.connect_backoff}")
        if self.operation_timeout <= 0:
            raise ValueError(f"operation_timeout must be > 0, got {self.operation_timeout}")

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> BrowserConfig:
        """Construct from a plain dict (e.g. parsed TOML/JSON).

        Unknown keys are rejected so typos do not silently fall back to defaults.

        :raises TypeError: If ``data`` contains unknown keys.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            msg = f"Unknown config keys: {unknown}. Known keys: {sorted(known)}"
            raise TypeError(msg)
        config = cls(**data)  # type: ignore[arg-type]
        config.validate()
        return config
