from typing import Any, Callable, List, Optional
import structlog
from .models import LiveEvent

log = structlog.get_logger(__name__)


class EventBus:
    """In-process pub/sub for live contest events.

    - subscribe(handler, event_type=None): handler gets every event, or only
      events of `event_type`
    - publish(event): pushes one event to the matching subscribers
    """

    def __init__(self) -> None:
        self._subscribers: List[tuple] = []

    def subscribe(self, handler: Callable[[LiveEvent], Any], event_type: Optional[str] = None) -> None:
        self._subscribers.append((event_type, handler))

    def publish(self, event: LiveEvent) -> int:
        delivered = 0
        for event_type, handler in list(self._subscribers):
            if event_type is not None and event_type != event.type:
                continue
            try:
                handler(event)
                delivered += 1
            except Exception:
                # a failing handler does not stop delivery
                log.exception("live_handler_failed", event_type=event.type)
        return delivered
