import inspect
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class EventEmitter:
    """Named listener lists; coroutine listeners are awaited in order.

    A failing listener is logged and does not stop the remaining ones.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Callable[..., Any]]] = {}

    def add_listener(self, event: str, listener: Callable[..., Any]):
        bucket = self._listeners.setdefault(event, [])
        if listener not in bucket:
            bucket.append(listener)

    def remove_listener(self, event: str, listener: Callable[..., Any]) -> bool:
        bucket = self._listeners.get(event, [])
        if listener in bucket:
            bucket.remove(listener)
            return True
        return False

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    async def emit(self, event: str, *args: Any) -> int:
        called = 0
        for listener in list(self._listeners.get(event, [])):
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Listener for '{event}' failed")
            called += 1
        return called
