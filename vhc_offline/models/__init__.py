from .config import WorkerConfig
from .http import SWRequest, SWResponse
from .sync import (
    PendingOpType,
    PendingSyncItem,
    SyncMessage,
    SyncResult,
    OfflineResult,
)
from .exceptions import (
    OfflineException,
    NetworkException,
    StorageException,
    CacheException,
    StorageNotInitializedException,
    LifecycleException,
    InstallationException,
    SyncException,
    ValidationException,
    ConfigurationException,
    OutputException,
    URLValidationException,
)

__all__ = [
    "WorkerConfig",
    "SWRequest",
    "SWResponse",
    "PendingOpType",
    "PendingSyncItem",
    "SyncMessage",
    "SyncResult",
    "OfflineResult",
    "OfflineException",
    "NetworkException",
    "StorageException",
    "CacheException",
    "StorageNotInitializedException",
    "LifecycleException",
    "InstallationException",
    "SyncException",
    "ValidationException",
    "ConfigurationException",
    "OutputException",
    "URLValidationException",
]
