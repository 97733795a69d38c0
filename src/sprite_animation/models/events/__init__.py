"""
Event system for the sprite animation runtime

Atlas cache events come from the shared loader/store; playback and most
error events carry the engine_id of the PlaybackEngine that raised them.
"""

from sprite_animation.models.events.types import EventType
from sprite_animation.models.events.base import Event, EngineEvent
from sprite_animation.models.events.sources import EventSource

from sprite_animation.models.events.cache_events import (
    AtlasLoadedEvent,
    CacheDrainedEvent,
)
from sprite_animation.models.events.playback_events import (
    SpriteReadyEvent,
    AnimationStartedEvent,
    AnimationLoopEvent,
    AnimationDoneEvent,
    AnimationStoppedEvent,
)
from sprite_animation.models.events.error_events import (
    LoadErrorEvent,
    ResolutionErrorEvent,
    RenderErrorEvent,
    EnvironmentUnsupportedEvent,
)

__all__ = [
    "EventType",
    "Event",
    "EngineEvent",
    "EventSource",

    # Cache
    "AtlasLoadedEvent",
    "CacheDrainedEvent",

    # Playback
    "SpriteReadyEvent",
    "AnimationStartedEvent",
    "AnimationLoopEvent",
    "AnimationDoneEvent",
    "AnimationStoppedEvent",

    # Errors
    "LoadErrorEvent",
    "ResolutionErrorEvent",
    "RenderErrorEvent",
    "EnvironmentUnsupportedEvent",
]
