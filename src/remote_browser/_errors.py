"""Normalized error hierarchy for remote_browser."""

from __future__ import annotations

from typing import Optional


class RemoteBrowserError(Exception):
    """Base class for all remote_browser errors.

    :param message: Human-readable error description.
    :param path: The path involved in the error, if any.
    :param backend: The backend name involved, if any.
    """

    def __init__(self, message: str = "", *, path: Optional[str] = None, backend: Optional[str] = None) -> None:
        self.path = path
        self.backend = backend
        super().__init__(message)

    def __str__(self) -> str:
        parts = [Exception.__str__(self)]
        if self.path is not None:
            parts.append(f"path={self.path!r}")
        if self.backend is not None:
            parts.append(f"backend={self.backend!r}")
        return " | ".join(parts) if len(parts) > 1 else parts[0]

    def __repr__(self) -> str:
        cls = type(self).__name__
        args = [repr(Exception.__str__(self))]
        if self.path is not None:
            args.append(f"path={self.path!r}")
        if self.backend is not None:
            args.append(f"backend={self.backend!r}")
        return f"{cls}({', '.join(args)})"


# region: storage connection errors


class StorageConnectionError(RemoteBrowserError):
    """Raised when a storage backend operation fails.

    Subclasses classify the failure. ``retryable`` tells callers whether
    trying again later (with backoff) can succeed without new credentials.
    """

    retryable: bool = False

    @property
    def kind(self) -> str:
        """Short classification name, e.g. ``"AuthRejected"``."""
        return type(self).__name__


class Unreachable(StorageConnectionError):
    """Raised when the backend cannot be reached (DNS, refused, reset)."""

    retryable = True


class Timeout(StorageConnectionError):
    """Raised when the backend did not answer in time."""

    retryable = True


class AuthRejected(StorageConnectionError):
    """Raised when the backend rejected the supplied credentials."""


class NotFound(StorageConnectionError):
    """Raised when a file or folder does not exist."""


class PermissionDenied(StorageConnectionError):
    """Raised when access is denied by the storage backend."""


# endregion


class InvalidPath(RemoteBrowserError):
    """Raised for malformed or unsafe paths."""


class ProfileNotFound(RemoteBrowserError, KeyError):
    """Raised when no connection profile exists for an id.

    :param profile_id: The id that was looked up.
    """

    def __init__(self, profile_id: str) -> None:
        self.profile_id = profile_id
        super().__init__(f"Unknown connection profile: {profile_id}")

    def __str__(self) -> str:
        return RemoteBrowserError.__str__(self)


class KeyNotRecognized(RemoteBrowserError, KeyError):
    """Raised when a settings key is not part of the settings schema.

    :param key: The unrecognized key.
    :param known: The keys the schema does recognize.
    """

    def __init__(self, key: str, known: tuple[str, ...] = ()) -> None:
        self.key = key
        message = f"Setting {key!r} is not recognized"
        if known:
            message = f"{message}. Known settings: {list(known)}"
        super().__init__(message)

    def __str__(self) -> str:
        return RemoteBrowserError.__str__(self)


class InvalidSettingValue(RemoteBrowserError, ValueError):
    """Raised when a setting is updated with a value of the wrong type or range."""


class StateStoreError(RemoteBrowserError):
    """Raised when persisted state cannot be read or written."""


class CacheClearError(RemoteBrowserError):
    """Raised (on request) when one or more cache-clear steps failed.

    :param failed_steps: Names of the steps that failed, in execution order.
    """

    def __init__(self, message: str = "", *, failed_steps: tuple[str, ...] = ()) -> None:
        self.failed_steps = failed_steps
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.failed_steps:
            return f"{base} | failed_steps={list(self.failed_steps)!r}"
        return base
