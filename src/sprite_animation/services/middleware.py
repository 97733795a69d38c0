"""
EventBus middleware

A middleware receives each event before any handler. Returning the event
passes it on; returning None drops it.
"""

from sprite_animation.models.events import Event
from sprite_animation.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.EVENT)


def log_middleware(event: Event) -> Event:
    """
    Trace every published event at DEBUG.

    Error objects are left out of the trace; their events are logged where
    the error happens.

    Usage:
        event_bus.add_middleware(log_middleware)
    """
    fields = {k: v for k, v in event.to_data().items() if k != "error"}
    log.debug(
        event.type.name,
        source=event.source.name if event.source else "-",
        **fields
    )
    return event
