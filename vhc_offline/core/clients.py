import logging
import uuid
from typing import Any, Callable, Dict, List, Optional

from .events import EventEmitter

logger = logging.getLogger(__name__)


class Client:
    def __init__(self, url: str = "/", client_id: Optional[str] = None):
        self.id = client_id or uuid.uuid4().hex
        self.url = url
        self.controlled = False
        self.messages: List[Dict[str, Any]] = []
        self._events = EventEmitter()

    async def post_message(self, data: Dict[str, Any]):
        self.messages.append(data)
        await self._events.emit("message", data)

    def add_listener(self, listener: Callable[[Dict[str, Any]], Any]):
        self._events.add_listener("message", listener)

    def remove_listener(self, listener: Callable[[Dict[str, Any]], Any]) -> bool:
        return self._events.remove_listener("message", listener)

    @property
    def listener_count(self) -> int:
        return self._events.listener_count("message")

    def __repr__(self) -> str:
        return f"Client(id={self.id!r}, url={self.url!r}, controlled={self.controlled})"


class ClientRegistry:
    def __init__(self):
        self._clients: Dict[str, Client] = {}
        self.controller_active = False

    def add(self, client: Client) -> Client:
        client.controlled = client.controlled or self.controller_active
        self._clients[client.id] = client
        return client

    def remove(self, client: Client) -> bool:
        return self._clients.pop(client.id, None) is not None

    def get(self, client_id: str) -> Optional[Client]:
        return self._clients.get(client_id)

    def match_all(self, include_uncontrolled: bool = False) -> List[Client]:
        return [c for c in self._clients.values() if include_uncontrolled or c.controlled]

    def claim(self) -> int:
        self.controller_active = True
        claimed = 0
        for c in self._clients.values():
            if not c.controlled:
                c.controlled = True
                claimed += 1
        logger.debug(f"Claimed {claimed} client(s), {len(self._clients)} open")
        return claimed

    def open_window(self, url: str) -> Client:
        client = self.add(Client(url=url))
        logger.info(f"Opened window {client.id} at {url}")
        return client

    async def broadcast(self, data: Dict[str, Any]) -> int:
        clients = self.match_all()
        for c in clients:
            await c.post_message(data)
        return len(clients)

    def __len__(self) -> int:
        return len(self._clients)
