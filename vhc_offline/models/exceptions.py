from typing import Any, Dict, Optional


class OfflineException(Exception):
    """Root of every error raised by the offline layer.

    ``context`` carries structured details for logs and CLI output; keyword
    fields given by subclasses are merged into it when they are set.
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None, **fields: Any):
        self.message = message
        self.context = dict(context or {})
        self.context.update({k: v for k, v in fields.items() if v is not None and v != ""})
        super().__init__(self.message)

    def __str__(self) -> str:
        context_str = f" - Context: {self.context}" if self.context else ""
        return f"{self.__class__.__name__}: {self.message}{context_str}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


class NetworkException(OfflineException):
    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context, url=url, status_code=status_code)


class StorageException(OfflineException):
    def __init__(self, message: str, store: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context, store=store)


class CacheException(StorageException):
    """Cache namespace read or write failed"""


class StorageNotInitializedException(StorageException):
    """Offline storage used before init() completed"""


class LifecycleException(OfflineException):
    def __init__(self, message: str, state: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context, state=state)


class InstallationException(LifecycleException):
    """Install step aborted"""


class SyncException(OfflineException):
    def __init__(self, message: str, tag: Optional[str] = None, item_id: Optional[int] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context, tag=tag, item_id=item_id)


class ValidationException(OfflineException):
    def __init__(self, message: str, field: Optional[str] = None, value: Any = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context, field=field, value=value)


class URLValidationException(ValidationException):
    """URL validation failed"""


class ConfigurationException(OfflineException):
    def __init__(self, message: str, config_key: Optional[str] = None, config_value: Any = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context, config_key=config_key, config_value=config_value)


class OutputException(OfflineException):
    def __init__(self, message: str, output_format: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context, output_format=output_format)
