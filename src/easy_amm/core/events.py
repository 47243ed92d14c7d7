# /src/easy_amm/core/events.py
from typing import Callable, Generic, List, TypeVar

from easy_amm.core.logger import get_logger

log = get_logger(__name__)

T = TypeVar("T")

class Event(Generic[T]):
    """
    Ordered publish/subscribe list. ``publish`` calls every handler registered
    at the moment of publishing, in subscription order, with the same value.
    """
    def __init__(self, name: str = "event"):
        self.name = name
        self._handlers: List[Callable[[T], None]] = []

    def subscribe(self, handler: Callable[[T], None]):
        self._handlers.append(handler)

    def unsubscribe(self, handler: Callable[[T], None]):
        try:
            self._handlers.remove(handler)
        except ValueError:
            pass

    def publish(self, value: T):
        # Snapshot so handlers may (un)subscribe while being called
        for handler in list(self._handlers):
            try:
                handler(value)
            except Exception as e:
                log.error("EVENT_HANDLER_FAILED", stream=self.name, handler=getattr(handler, "__qualname__", repr(handler)), error=str(e), exc_info=True)

    def __len__(self) -> int:
        return len(self._handlers)
