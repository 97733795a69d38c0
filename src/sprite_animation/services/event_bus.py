"""
Event Bus - the EventSink shared by the loader and every engine

    bus.subscribe(EventType.ANIMATION_DONE, on_done, filter_fn=lambda e: e.name == "icon-loop")
    bus.once(EventType.CACHE_DRAINED, on_first_drain)
    bus.add_middleware(log_middleware)

    await bus.publish(AnimationDoneEvent(engine_id, "icon-loop"))

Delivery rules:
- middleware runs first, in registration order; returning None drops the event
- handlers run by priority (highest first), ties in subscription order
- a handler may be sync or async
- a one-shot handler is removed before it runs, so a publish made from
  inside it cannot deliver to it again
- a failing handler is logged and the remaining handlers still run
"""

import inspect
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional

from sprite_animation.models.events import Event, EventType
from sprite_animation.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.EVENT)

Middleware = Callable[[Event], Optional[Event]]


@dataclass
class EventHandler:
    """One subscription"""
    handler: Callable[[Event], None]
    priority: int
    filter_fn: Optional[Callable[[Event], bool]]
    once: bool = False

    def accepts(self, event: Event) -> bool:
        return self.filter_fn is None or self.filter_fn(event)

    @property
    def name(self) -> str:
        return getattr(self.handler, "__qualname__", None) or repr(self.handler)


class EventBus:
    """Priority pub-sub bus with one-shot handlers, middleware and a bounded history."""

    def __init__(self, history_limit: int = 100):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._middleware: List[Middleware] = []
        self._history: Deque[Event] = deque(maxlen=history_limit)

    # ------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------

    def subscribe(
        self,
        event_type: EventType,
        handler: Callable[[Event], None],
        priority: int = 0,
        filter_fn: Optional[Callable[[Event], bool]] = None
    ) -> None:
        """
        Args:
            event_type: Events to receive
            handler: Sync or async callable
            priority: Higher runs earlier
            filter_fn: Return False to skip an event
        """
        self._add(event_type, EventHandler(handler, priority, filter_fn))

    def once(
        self,
        event_type: EventType,
        handler: Callable[[Event], None],
        priority: int = 0,
        filter_fn: Optional[Callable[[Event], bool]] = None
    ) -> None:
        """Like subscribe(), but only for the first event that passes filter_fn."""
        self._add(event_type, EventHandler(handler, priority, filter_fn, once=True))

    def _add(self, event_type: EventType, entry: EventHandler) -> None:
        handlers = self._handlers.setdefault(event_type, [])
        position = len(handlers)
        while position > 0 and handlers[position - 1].priority < entry.priority:
            position -= 1
        handlers.insert(position, entry)

        log.debug(
            "Handler subscribed",
            event_type=event_type.name,
            handler=entry.name,
            priority=entry.priority,
            once=entry.once
        )

    def unsubscribe(self, event_type: EventType, handler: Callable[[Event], None]) -> bool:
        """Drop every subscription of handler to event_type; True if any existed."""
        handlers = self._handlers.get(event_type, [])
        kept = [h for h in handlers if h.handler != handler]
        if len(kept) == len(handlers):
            return False

        self._set_handlers(event_type, kept)
        log.debug("Handler unsubscribed", event_type=event_type.name, handler=getattr(handler, "__qualname__", handler))
        return True

    def _set_handlers(self, event_type: EventType, handlers: List[EventHandler]) -> None:
        if handlers:
            self._handlers[event_type] = handlers
        else:
            self._handlers.pop(event_type, None)

    def handler_count(self, event_type: EventType) -> int:
        return len(self._handlers.get(event_type, []))

    def add_middleware(self, middleware: Middleware) -> None:
        self._middleware.append(middleware)
        log.debug("Middleware added", middleware=getattr(middleware, "__qualname__", middleware))

    # ------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------

    async def publish(self, event: Event) -> None:
        for middleware in self._middleware:
            event = middleware(event)
            if event is None:
                return

        self._history.append(event)

        # handlers may (un)subscribe while this event is being delivered
        for entry in list(self._handlers.get(event.type, [])):
            if not entry.accepts(event):
                continue
            if entry.once and not self._claim(event.type, entry):
                continue
            await self._deliver(entry, event)

    def _claim(self, event_type: EventType, entry: EventHandler) -> bool:
        """Remove a one-shot entry; False if a nested publish already used it."""
        handlers = self._handlers.get(event_type, [])
        if not any(h is entry for h in handlers):
            return False
        self._set_handlers(event_type, [h for h in handlers if h is not entry])
        return True

    async def _deliver(self, entry: EventHandler, event: Event) -> None:
        try:
            result = entry.handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception as ex:
            log.error(f"Handler {entry.name} failed on {event.type.name}", exception=ex)

    # ------------------------------------------------------------
    # History
    # ------------------------------------------------------------

    def get_event_history(self, limit: int = 10) -> List[Event]:
        """Newest `limit` events, oldest first"""
        return list(self._history)[-limit:]

    def clear_history(self) -> None:
        self._history.clear()
