"""Storage abstraction and session/cache core for a multi-backend file browser."""

from remote_browser._client import StorageClient, is_retryable
from remote_browser._config import BrowserConfig
from remote_browser._connections import ConnectionStore
from remote_browser._context import BrowserContext
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
from remote_browser._factory import create_client, register_client
from remote_browser._history import NavigationHistoryService
from remote_browser._maintenance import CacheClearResult, CacheMaintenance
from remote_browser._models import (
    ConnectionProfile,
    DirectoryListing,
    Entry,
    HistoryEntry,
    Secret,
    Theme,
    UserSettings,
)
from remote_browser._path import BrowserPath, normalize_path
from remote_browser._session import BrowsingSession
from remote_browser._settings import SettingsStore
from remote_browser._state import JsonFileKeyValueStore, KeyValueStore, MemoryKeyValueStore, Namespace
from remote_browser._types import StorageClientType, StorageTypeInfo, storage_type_choices

__version__ = "0.1.0"

__all__ = [
    # Core
    "BrowserContext",
    "BrowsingSession",
    "StorageClient",
    "create_client",
    "register_client",
    "is_retryable",
    # Stores
    "ConnectionStore",
    "NavigationHistoryService",
    "SettingsStore",
    "CacheMaintenance",
    "CacheClearResult",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "Namespace",
    # Path, types & models
    "BrowserPath",
    "normalize_path",
    "StorageClientType",
    "StorageTypeInfo",
    "storage_type_choices",
    "ConnectionProfile",
    "Secret",
    "Entry",
    "DirectoryListing",
    "HistoryEntry",
    "Theme",
    "UserSettings",
    # Config
    "BrowserConfig",
    # Errors
    "RemoteBrowserError",
    "StorageConnectionError",
    "Unreachable",
    "Timeout",
    "AuthRejected",
    "NotFound",
    "PermissionDenied",
    "InvalidPath",
    "ProfileNotFound",
    "KeyNotRecognized",
    "InvalidSettingValue",
    "StateStoreError",
    "CacheClearError",
    # Version
    "__version__",
]
