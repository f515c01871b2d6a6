import logging
import time
from enum import Enum
from typing import List, Tuple

from ..models.config import WorkerConfig
from ..models.exceptions import LifecycleException, InstallationException
from ..models.http import SWRequest
from .cache_store import CacheStorage, Fetch
from .clients import ClientRegistry

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    PARSED = "parsed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVE = "active"
    REDUNDANT = "redundant"


_ALLOWED = {
    LifecycleState.PARSED: {LifecycleState.INSTALLING},
    LifecycleState.REDUNDANT: {LifecycleState.INSTALLING},
    LifecycleState.INSTALLING: {LifecycleState.INSTALLED, LifecycleState.REDUNDANT},
    LifecycleState.INSTALLED: {LifecycleState.ACTIVATING},
    LifecycleState.ACTIVATING: {LifecycleState.ACTIVE, LifecycleState.INSTALLED},
    LifecycleState.ACTIVE: {LifecycleState.ACTIVATING},
}


class LifecycleManager:
    def __init__(self, storage: CacheStorage, config: WorkerConfig, fetch: Fetch, clients: ClientRegistry):
        self.storage = storage
        self.config = config
        self.fetch = fetch
        self.clients = clients
        self.state = LifecycleState.PARSED
        self.skip_waiting = False
        self.history: List[Tuple[LifecycleState, float]] = [(self.state, time.time())]

    def _transition(self, new_state: LifecycleState):
        if new_state not in _ALLOWED.get(self.state, set()):
            raise LifecycleException(
                f"Cannot move from {self.state.value} to {new_state.value}",
                state=self.state.value,
            )
        logger.debug(f"Lifecycle {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append((new_state, time.time()))

    @property
    def is_active(self) -> bool:
        return self.state == LifecycleState.ACTIVE

    async def install(self) -> int:
        self._transition(LifecycleState.INSTALLING)
        try:
            static = await self.storage.open(self.config.static_cache)
            requests = [SWRequest(url=u) for u in self.config.manifest_urls()]
            count = await static.add_all(requests, self.fetch)
            await self.storage.open(self.config.api_cache)
            await self.storage.open(self.config.image_cache)
        except Exception as e:
            self._transition(LifecycleState.REDUNDANT)
            logger.error(f"Install aborted: {e}")
            raise InstallationException(f"Install aborted: {e}", state=self.state.value) from e

        self.skip_waiting = True
        self._transition(LifecycleState.INSTALLED)
        logger.info(f"Installed {self.config.cache_version}: precached {count} static asset(s)")
        return count

    async def restore(self) -> bool:
        """Resume as the active version when its namespaces already exist."""
        if self.state != LifecycleState.PARSED:
            return self.is_active
        existing = set(await self.storage.keys())
        if not all(name in existing for name in self.config.cache_names):
            return False
        self.clients.claim()
        self.state = LifecycleState.ACTIVE
        self.history.append((self.state, time.time()))
        logger.debug(f"Restored active version {self.config.cache_version}")
        return True

    async def activate(self) -> List[str]:
        self._transition(LifecycleState.ACTIVATING)
        current = set(self.config.cache_names)
        deleted: List[str] = []
        try:
            for name in await self.storage.keys():
                if name not in current:
                    await self.storage.delete(name)
                    deleted.append(name)
                    logger.info(f"Deleted stale cache {name}")
        except Exception:
            self._transition(LifecycleState.INSTALLED)
            raise

        claimed = self.clients.claim()
        self._transition(LifecycleState.ACTIVE)
        logger.info(f"Activated {self.config.cache_version}: {len(deleted)} stale cache(s) removed, {claimed} client(s) claimed")
        return deleted
