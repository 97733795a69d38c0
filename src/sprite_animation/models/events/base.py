from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict

from sprite_animation.models.events.types import EventType
from sprite_animation.models.events.sources import EventSource

_METADATA = ("type", "source", "timestamp")


@dataclass(init=False)
class Event:
    """
    Base class of everything published on the EventBus.

    Subclasses take their payload as constructor arguments and fill in
    type/source themselves; timestamp is taken at construction.
    """

    type: EventType
    source: EventSource | None
    timestamp: float = field(default_factory=time.time)

    def __init__(self, *, type: EventType, source: EventSource | None):
        self.type = type
        self.source = source
        self.timestamp = time.time()

    def to_data(self) -> Dict[str, Any]:
        """Payload fields only (no type/source/timestamp)"""
        return {k: v for k, v in vars(self).items() if k not in _METADATA}


@dataclass(init=False)
class EngineEvent(Event):
    """Event raised by one PlaybackEngine; engine_id lets listeners tell instances apart"""
    engine_id: int

    def __init__(self, *, type: EventType, engine_id: int):
        super().__init__(type=type, source=EventSource.PLAYBACK_ENGINE)
        self.engine_id = engine_id
