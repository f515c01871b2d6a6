import inspect
import logging
from typing import List, Optional

from ..models.config import WorkerConfig
from ..models.http import SWRequest, SWResponse
from ..models.sync import SyncResult
from .cache_store import CacheStorage, Fetch
from .clients import Client, ClientRegistry
from .connectivity import ConnectivityMonitor, NetworkStatus
from .fetcher import NetworkFetcher
from .lifecycle import LifecycleManager
from .offline_storage import OfflineStorage
from .push import Notification, build_notification, handle_notification_click
from .replayer import PendingReplayer
from .router import RequestRouter, Strategy
from .strategies import cache_first_image, network_first_api, network_first_static
from .sync import SyncCoordinator, SyncManager

logger = logging.getLogger(__name__)


class OfflineWorker:
    def __init__(
        self,
        config: Optional[WorkerConfig] = None,
        cache_storage: Optional[CacheStorage] = None,
        storage: Optional[OfflineStorage] = None,
        fetch: Optional[Fetch] = None,
        network: Optional[NetworkStatus] = None,
        clients: Optional[ClientRegistry] = None,
        replayer: Optional[PendingReplayer] = None,
    ):
        self.config = config or WorkerConfig()
        self.config.validate()

        self.caches = cache_storage or CacheStorage(self.config.cache_db_path)
        self.storage = storage or OfflineStorage(self.config.storage_db_path)
        self.fetch: Fetch = fetch or NetworkFetcher(
            timeout=self.config.request_timeout,
            user_agent=self.config.user_agent,
            headers=self.config.headers,
        )
        self.network = network or NetworkStatus()
        self.clients = clients or ClientRegistry()
        self.router = RequestRouter(self.config.api_prefix)
        self.lifecycle = LifecycleManager(self.caches, self.config, self.fetch, self.clients)

        self.replayer = replayer or PendingReplayer(
            self.storage,
            self.config.origin,
            timeout=self.config.replay_timeout,
            max_retries=self.config.replay_retries,
            backoff_factor=self.config.replay_backoff_factor,
            user_agent=self.config.user_agent,
            headers=self.config.headers,
        )
        self.coordinator = SyncCoordinator(self.clients, self.replayer.drain, tag=self.config.sync_tag)
        self.sync_manager = SyncManager(self.coordinator)
        self.notifications: List[Notification] = []

    # lifecycle events

    async def install(self) -> int:
        return await self.lifecycle.install()

    async def activate(self) -> List[str]:
        return await self.lifecycle.activate()

    async def restore(self) -> bool:
        return await self.lifecycle.restore()

    async def start(self) -> List[str]:
        await self.install()
        if self.lifecycle.skip_waiting:
            return await self.activate()
        return []

    # fetch event

    async def handle_fetch(self, request: SWRequest) -> SWResponse:
        if not self.lifecycle.is_active:
            return await self.fetch(request)

        strategy = self.router.classify(request)
        if strategy is Strategy.API:
            cache = await self.caches.open(self.config.api_cache)
            return await network_first_api(request, self.fetch, cache, self.network)
        if strategy is Strategy.IMAGE:
            cache = await self.caches.open(self.config.image_cache)
            return await cache_first_image(request, self.fetch, cache)
        cache = await self.caches.open(self.config.static_cache)
        return await network_first_static(request, self.fetch, cache)

    # sync events

    async def handle_sync(self, tag: str) -> Optional[SyncResult]:
        return await self.coordinator.handle_sync(tag)

    async def register_sync(self, tag: Optional[str] = None) -> Optional[SyncResult]:
        return await self.sync_manager.register(tag or self.config.sync_tag)

    # push events

    def handle_push(self, payload_text: Optional[str] = None) -> Notification:
        notification = build_notification(payload_text)
        self.notifications.append(notification)
        logger.debug(f"Push notification: {notification.body}")
        return notification

    def handle_notification_click(self, notification: Notification) -> Client:
        return handle_notification_click(notification, self.clients)

    # clients

    def connect_client(self, url: str = "/") -> Client:
        return self.clients.add(Client(url=url))

    def monitor(self, client: Optional[Client] = None) -> ConnectivityMonitor:
        return ConnectivityMonitor(
            self.network,
            self.storage,
            client=client,
            sync_manager=self.sync_manager,
            sync_tag=self.config.sync_tag,
        )

    async def close(self):
        close = getattr(self.fetch, "close", None)
        if close is not None:
            result = close()
            if inspect.isawaitable(result):
                await result
        self.replayer.close()
        await self.caches.close()
        await self.storage.close()

    async def __aenter__(self) -> "OfflineWorker":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
