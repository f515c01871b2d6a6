"""Client-side connectivity state and offline-first data helpers."""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from config.constants import SYNC_TAG
from ..models.exceptions import StorageNotInitializedException
from ..models.sync import OfflineResult, SyncMessage
from .clients import Client
from .events import EventEmitter
from .offline_storage import OfflineStorage

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[Any]]


class NetworkStatus:
    """Platform connectivity signal (``navigator.onLine`` plus its events)."""

    def __init__(self, online: bool = True):
        self.online = online
        self._events = EventEmitter()

    def add_listener(self, event: str, listener: Callable[[], Any]):
        self._events.add_listener(event, listener)

    def remove_listener(self, event: str, listener: Callable[[], Any]) -> bool:
        return self._events.remove_listener(event, listener)

    def listener_count(self, event: str) -> int:
        return self._events.listener_count(event)

    async def go_online(self):
        self.online = True
        await self._events.emit("online")

    async def go_offline(self):
        self.online = False
        await self._events.emit("offline")


class ConnectivityState:
    def __init__(self, online: bool = True):
        self._online = online
        self._initialized = False
        self._subscribers: List[Callable[["ConnectivityState"], Any]] = []

    @property
    def online(self) -> bool:
        return self._online

    @property
    def offline(self) -> bool:
        return not self._online

    @property
    def initialized(self) -> bool:
        return self._initialized

    def subscribe(self, callback: Callable[["ConnectivityState"], Any]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _notify(self):
        for cb in list(self._subscribers):
            cb(self)

    def set_online(self, online: bool):
        if online != self._online:
            self._online = online
            self._notify()

    def mark_initialized(self):
        if not self._initialized:
            self._initialized = True
            self._notify()

    def to_dict(self) -> Dict[str, Any]:
        return {"online": self._online, "offline": not self._online, "initialized": self._initialized}


class ConnectivityMonitor:
    """Mount/unmount lifecycle around platform signals and sync messages.

    ``sync_manager`` is optional; without it reconnecting only flips state.
    """

    def __init__(
        self,
        network: NetworkStatus,
        storage: OfflineStorage,
        client: Optional[Client] = None,
        sync_manager=None,
        sync_tag: str = SYNC_TAG,
    ):
        self.network = network
        self.storage = storage
        self.client = client
        self.sync_manager = sync_manager
        self.sync_tag = sync_tag
        self.state = ConnectivityState(online=network.online)
        self.sync_events: List[SyncMessage] = []
        self.mounted = False

    async def mount(self) -> ConnectivityState:
        if self.mounted:
            return self.state
        self.network.add_listener("online", self._handle_online)
        self.network.add_listener("offline", self._handle_offline)
        if self.client is not None:
            self.client.add_listener(self._handle_message)
        self.mounted = True

        try:
            await self.storage.init()
            self.state.mark_initialized()
        except Exception as e:
            logger.error(f"Failed to initialize offline storage: {e}")
        return self.state

    def unmount(self):
        if not self.mounted:
            return
        self.network.remove_listener("online", self._handle_online)
        self.network.remove_listener("offline", self._handle_offline)
        if self.client is not None:
            self.client.remove_listener(self._handle_message)
        self.mounted = False

    async def __aenter__(self) -> "ConnectivityMonitor":
        await self.mount()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.unmount()

    async def _handle_online(self):
        self.state.set_online(True)
        if self.sync_manager is not None:
            await self.sync_manager.register(self.sync_tag)

    async def _handle_offline(self):
        self.state.set_online(False)

    async def _handle_message(self, data: Dict[str, Any]):
        kind = SyncMessage.from_message(data)
        if kind is None:
            return
        self.sync_events.append(kind)
        if kind is SyncMessage.SYNC_START:
            logger.info("Sync started")
        else:
            logger.info("Sync completed")


class OfflineOperations:
    def __init__(self, state: ConnectivityState, storage: OfflineStorage):
        self.state = state
        self.storage = storage

    def _require_initialized(self):
        if not self.state.initialized:
            raise StorageNotInitializedException("Offline storage not initialized")

    async def save_with_fallback(
        self,
        online_operation: Operation,
        offline_operation: Operation,
        pending_operation: Optional[Operation] = None,
    ) -> Any:
        self._require_initialized()

        if self.state.online:
            try:
                result = await online_operation()
            except Exception as e:
                logger.warning(f"Online save failed, keeping a local copy: {e}")
                await offline_operation()
                if pending_operation is not None:
                    await pending_operation()
                raise
            await offline_operation()
            return result

        await offline_operation()
        if pending_operation is not None:
            await pending_operation()
        return OfflineResult()

    async def get_with_fallback(self, online_operation: Operation, offline_operation: Operation) -> Any:
        self._require_initialized()

        if self.state.online:
            try:
                return await online_operation()
            except Exception as e:
                logger.info(f"Online read failed, using local data: {e}")
                return await offline_operation()
        return await offline_operation()
