from dataclasses import dataclass

from sprite_animation.models.events.base import EngineEvent
from sprite_animation.models.events.types import EventType


@dataclass(init=False)
class SpriteReadyEvent(EngineEvent):
    animations: int

    def __init__(self, engine_id: int, animations: int):
        super().__init__(type=EventType.SPRITE_READY, engine_id=engine_id)
        self.animations = animations


@dataclass(init=False)
class AnimationStartedEvent(EngineEvent):
    name: str
    from_frame: int
    to_frame: int
    loop: bool

    def __init__(self, engine_id: int, name: str, from_frame: int, to_frame: int, loop: bool):
        super().__init__(type=EventType.ANIMATION_STARTED, engine_id=engine_id)
        self.name = name
        self.from_frame = from_frame
        self.to_frame = to_frame
        self.loop = loop


@dataclass(init=False)
class AnimationLoopEvent(EngineEvent):
    name: str

    def __init__(self, engine_id: int, name: str):
        super().__init__(type=EventType.ANIMATION_LOOP, engine_id=engine_id)
        self.name = name


@dataclass(init=False)
class AnimationDoneEvent(EngineEvent):
    name: str

    def __init__(self, engine_id: int, name: str):
        super().__init__(type=EventType.ANIMATION_DONE, engine_id=engine_id)
        self.name = name


@dataclass(init=False)
class AnimationStoppedEvent(EngineEvent):
    name: str | None
    cleared: bool

    def __init__(self, engine_id: int, name: str | None, cleared: bool):
        super().__init__(type=EventType.ANIMATION_STOPPED, engine_id=engine_id)
        self.name = name
        self.cleared = cleared
