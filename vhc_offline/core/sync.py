import logging
from typing import Awaitable, Callable, List, Optional, Set

from config.constants import SYNC_TAG
from ..models.sync import SyncMessage, SyncResult
from ..utils.logger import PerformanceLogger
from .clients import Client, ClientRegistry

logger = logging.getLogger(__name__)

Replay = Callable[[], Awaitable[SyncResult]]


class SyncCoordinator:
    def __init__(
        self,
        clients: ClientRegistry,
        replay: Optional[Replay] = None,
        tag: str = SYNC_TAG,
        perf: Optional[PerformanceLogger] = None,
    ):
        self.clients = clients
        self.replay = replay
        self.tag = tag
        self.perf = perf or PerformanceLogger(logger)
        self.last_result: Optional[SyncResult] = None

    async def _broadcast(self, clients: List[Client], message: SyncMessage):
        for c in clients:
            await c.post_message(message.to_message())

    async def handle_sync(self, tag: str) -> Optional[SyncResult]:
        if tag != self.tag:
            logger.debug(f"Ignoring sync for unknown tag '{tag}'")
            return None

        clients = self.clients.match_all()
        await self._broadcast(clients, SyncMessage.SYNC_START)
        self.perf.start_timer("sync")
        result = SyncResult()
        try:
            if self.replay is not None:
                result = await self.replay()
        except Exception as e:
            logger.error(f"Sync replay failed: {e}")
            result = SyncResult.failure(e)
        finally:
            result.duration = self.perf.log_operation("sync", {"tag": tag, "ok": result.ok})
            self.last_result = result
            await self._broadcast(clients, SyncMessage.SYNC_COMPLETE)

        if not result.ok:
            logger.warning(f"Sync '{tag}' finished with errors: {'; '.join(result.errors)}")
        return result


class SyncManager:
    """Background sync registrations.

    A registration made while a run for the same tag is in flight is
    coalesced into that run.
    """

    def __init__(self, coordinator: SyncCoordinator):
        self.coordinator = coordinator
        self._in_flight: Set[str] = set()
        self.registrations = 0

    async def register(self, tag: str) -> Optional[SyncResult]:
        self.registrations += 1
        if tag in self._in_flight:
            logger.debug(f"Sync '{tag}' already running")
            return None
        self._in_flight.add(tag)
        try:
            return await self.coordinator.handle_sync(tag)
        finally:
            self._in_flight.discard(tag)

    def get_tags(self) -> List[str]:
        return sorted(self._in_flight)
