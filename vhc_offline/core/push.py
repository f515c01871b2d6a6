import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config.constants import PUSH_DEFAULTS
from .clients import Client, ClientRegistry


@dataclass
class Notification:
    title: str
    body: str
    icon: str = PUSH_DEFAULTS['icon']
    badge: str = PUSH_DEFAULTS['badge']
    vibrate: List[int] = field(default_factory=lambda: list(PUSH_DEFAULTS['vibrate']))
    data: Dict[str, Any] = field(default_factory=dict)
    closed: bool = False

    def close(self):
        self.closed = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "icon": self.icon,
            "badge": self.badge,
            "vibrate": list(self.vibrate),
            "data": dict(self.data),
        }


def build_notification(payload_text: Optional[str] = None) -> Notification:
    body = payload_text if payload_text else PUSH_DEFAULTS['body']
    return Notification(
        title=PUSH_DEFAULTS['title'],
        body=body,
        data={
            "dateOfArrival": int(time.time() * 1000),
            "primaryKey": PUSH_DEFAULTS['primary_key'],
        },
    )


def handle_notification_click(notification: Notification, clients: ClientRegistry) -> Client:
    notification.close()
    return clients.open_window(PUSH_DEFAULTS['click_url'])
