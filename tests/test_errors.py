"""Tests for the error hierarchy and connection-failure classification."""

from __future__ import annotations

import pytest

from remote_browser._client import is_retryable
from remote_browser._errors import (
    AuthRejected,
    CacheClearError,
    InvalidPath,
    InvalidSettingValue,
    KeyNotRecognized,
    NotFound,
    PermissionDenied,
    ProfileNotFound,
    RemoteBrowserError,
    StateStoreError,
    StorageConnectionError,
    Timeout,
    Unreachable,
)


class TestBaseError:
    """RemoteBrowserError carries optional path and backend."""

    def test_default_attributes(self) -> None:
        e = RemoteBrowserError("boom")
        assert e.path is None
        assert e.backend is None

    def test_with_attributes(self) -> None:
        e = RemoteBrowserError("boom", path="/a/b.txt", backend="ssh")
        assert e.path == "/a/b.txt"
        assert e.backend == "ssh"

    def test_str_includes_context(self) -> None:
        e = RemoteBrowserError("boom", path="/a", backend="local")
        assert str(e) == "boom | path='/a' | backend='local'"

    def test_str_plain(self) -> None:
        assert str(RemoteBrowserError("boom")) == "boom"

    def test_repr(self) -> None:
        e = NotFound("gone", path="/x")
        assert repr(e) == "NotFound('gone', path='/x')"


class TestConnectionErrorKinds:
    """Every backend failure is one of five kinds under StorageConnectionError."""

    @pytest.mark.parametrize("cls", [Unreachable, Timeout, AuthRejected, NotFound, PermissionDenied])
    def test_subclass(self, cls: type[StorageConnectionError]) -> None:
        assert issubclass(cls, StorageConnectionError)
        assert issubclass(cls, RemoteBrowserError)

    @pytest.mark.parametrize(
        ("cls", "retryable"),
        [
            (Unreachable, True),
            (Timeout, True),
            (AuthRejected, False),
            (NotFound, False),
            (PermissionDenied, False),
            (StorageConnectionError, False),
        ],
    )
    def test_retryable_flag(self, cls: type[StorageConnectionError], retryable: bool) -> None:
        assert cls("x").retryable is retryable
        assert is_retryable(cls("x")) is retryable

    def test_kind_is_class_name(self) -> None:
        assert AuthRejected("nope").kind == "AuthRejected"

    def test_foreign_exception_not_retryable(self) -> None:
        assert not is_retryable(ConnectionError("raw"))


class TestLookupErrors:
    def test_profile_not_found_is_key_error(self) -> None:
        e = ProfileNotFound("abc")
        assert isinstance(e, KeyError)
        assert e.profile_id == "abc"
        assert str(e) == "Unknown connection profile: abc"

    def test_key_not_recognized_lists_known(self) -> None:
        e = KeyNotRecognized("fontSize", ("theme", "language"))
        assert isinstance(e, KeyError)
        assert e.key == "fontSize"
        assert "fontSize" in str(e)
        assert "theme" in str(e)

    def test_invalid_setting_value_is_value_error(self) -> None:
        assert issubclass(InvalidSettingValue, ValueError)


class TestOtherErrors:
    def test_invalid_path(self) -> None:
        assert InvalidPath("bad", path="..").path == ".."

    def test_state_store_error(self) -> None:
        assert issubclass(StateStoreError, RemoteBrowserError)

    def test_cache_clear_error_names_steps(self) -> None:
        e = CacheClearError("1 failed", failed_steps=("clear_connections",))
        assert e.failed_steps == ("clear_connections",)
        assert "clear_connections" in str(e)

    def test_catch_all(self) -> None:
        with pytest.raises(RemoteBrowserError):
            raise Timeout("slow")
