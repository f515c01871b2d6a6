from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
from urllib.parse import urlparse, urljoin
import os

from config.constants import (
    DEFAULT_CONFIG,
    ENV_VARS,
    STATIC_MANIFEST,
    API_PREFIX,
    SYNC_TAG,
    current_cache_names,
    cache_name,
    is_valid_timeout,
)
from .exceptions import ConfigurationException


@dataclass
class WorkerConfig:
    origin: str = DEFAULT_CONFIG['origin']
    cache_prefix: str = DEFAULT_CONFIG['cache_prefix']
    cache_version: str = DEFAULT_CONFIG['cache_version']
    cache_db_path: str = DEFAULT_CONFIG['cache_db_path']
    storage_db_path: str = DEFAULT_CONFIG['storage_db_path']
    request_timeout: Optional[float] = DEFAULT_CONFIG['request_timeout']
    replay_timeout: int = DEFAULT_CONFIG['replay_timeout']
    replay_retries: int = DEFAULT_CONFIG['replay_retries']
    replay_backoff_factor: float = DEFAULT_CONFIG['replay_backoff_factor']
    api_prefix: str = API_PREFIX
    sync_tag: str = SYNC_TAG
    static_manifest: List[str] = field(default_factory=lambda: list(STATIC_MANIFEST))
    headers: Dict[str, str] = field(default_factory=dict)
    user_agent: str = DEFAULT_CONFIG['user_agent']
    log_level: str = DEFAULT_CONFIG['log_level']
    log_file: Optional[str] = None

    def validate(self):
        errors = []

        p = urlparse(self.origin or "")
        if p.scheme not in ("http", "https") or not p.netloc:
            errors.append("Origin must be an absolute http(s) URL")
        elif p.path not in ("", "/"):
            errors.append("Origin must not contain a path")

        if not self.cache_version or "-" in self.cache_version:
            errors.append("Cache version must be a non-empty tag without '-'")

        if not self.cache_prefix:
            errors.append("Cache prefix must not be empty")

        if self.request_timeout is not None and not is_valid_timeout(self.request_timeout):
            errors.append("Request timeout must be between 0 and 300 seconds")

        if not (1 <= self.replay_timeout <= 300):
            errors.append("Replay timeout must be between 1 and 300 seconds")

        if not (0 <= self.replay_retries <= 10):
            errors.append("Replay retries must be between 0 and 10")

        if not (self.api_prefix.startswith("/") and self.api_prefix.endswith("/")):
            errors.append("API prefix must start and end with '/'")

        if not self.sync_tag:
            errors.append("Sync tag must not be empty")

        for path in self.static_manifest:
            if not isinstance(path, str) or not path.startswith("/"):
                errors.append(f"Manifest entry must be an absolute path: {path!r}")

        for k, v in self.headers.items():
            if not k or v is None or v == "":
                errors.append(f"Invalid header: {k}={v}")

        if errors:
            raise ConfigurationException(
                "Configuration validation failed",
                context={"errors": errors, "config": self.to_dict()},
            )

    @property
    def static_cache(self) -> str:
        return cache_name("static", self.cache_version, self.cache_prefix)

    @property
    def api_cache(self) -> str:
        return cache_name("api", self.cache_version, self.cache_prefix)

    @property
    def image_cache(self) -> str:
        return cache_name("image", self.cache_version, self.cache_prefix)

    @property
    def cache_names(self) -> List[str]:
        return current_cache_names(self.cache_version, self.cache_prefix)

    def resolve(self, path: str) -> str:
        return urljoin(self.origin.rstrip("/") + "/", path)

    def manifest_urls(self) -> List[str]:
        return [self.resolve(p) for p in self.static_manifest]

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides) -> "WorkerConfig":
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for var, key in ENV_VARS.items():
            raw = env.get(var)
            if raw is None or raw == "":
                continue
            if key == "request_timeout":
                try:
                    values[key] = float(raw)
                except ValueError:
                    raise ConfigurationException(
                        "Timeout must be a number", config_key=var, config_value=raw
                    )
            else:
                values[key] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin": self.origin,
            "cache_prefix": self.cache_prefix,
            "cache_version": self.cache_version,
            "cache_db_path": self.cache_db_path,
            "storage_db_path": self.storage_db_path,
            "request_timeout": self.request_timeout,
            "replay_timeout": self.replay_timeout,
            "replay_retries": self.replay_retries,
            "replay_backoff_factor": self.replay_backoff_factor,
            "api_prefix": self.api_prefix,
            "sync_tag": self.sync_tag,
            "static_manifest": list(self.static_manifest),
            "headers": self.headers.copy(),
            "user_agent": self.user_agent,
            "log_level": self.log_level,
            "log_file": self.log_file,
            "cache_names": self.cache_names,
        }
