from dataclasses import dataclass

from sprite_animation.models.events.base import Event, EngineEvent
from sprite_animation.models.events.types import EventType
from sprite_animation.models.events.sources import EventSource
from sprite_animation.models.errors import (
    LoadError,
    RenderError,
    ResolutionError,
    UnsupportedEnvironment,
)


@dataclass(init=False)
class LoadErrorEvent(Event):
    url: str
    error: LoadError

    def __init__(self, error: LoadError):
        super().__init__(
            type=EventType.LOAD_ERROR,
            source=EventSource.ATLAS_LOADER,
        )
        self.url = error.url
        self.error = error


@dataclass(init=False)
class ResolutionErrorEvent(EngineEvent):
    name: str
    error: ResolutionError

    def __init__(self, engine_id: int, name: str, error: ResolutionError):
        super().__init__(type=EventType.RESOLUTION_ERROR, engine_id=engine_id)
        self.name = name
        self.error = error


@dataclass(init=False)
class RenderErrorEvent(EngineEvent):
    error: RenderError

    def __init__(self, engine_id: int, error: RenderError):
        super().__init__(type=EventType.RENDER_ERROR, engine_id=engine_id)
        self.error = error


@dataclass(init=False)
class EnvironmentUnsupportedEvent(EngineEvent):
    error: UnsupportedEnvironment

    def __init__(self, engine_id: int, error: UnsupportedEnvironment):
        super().__init__(type=EventType.ENVIRONMENT_UNSUPPORTED, engine_id=engine_id)
        self.error = error
