from dataclasses import dataclass
from typing import List

from sprite_animation.models.events.base import Event
from sprite_animation.models.events.types import EventType
from sprite_animation.models.events.sources import EventSource


@dataclass(init=False)
class AtlasLoadedEvent(Event):
    url: str
    image_url: str
    frame_count: int

    def __init__(self, url: str, image_url: str, frame_count: int):
        super().__init__(
            type=EventType.ATLAS_LOADED,
            source=EventSource.ATLAS_LOADER,
        )
        self.url = url
        self.image_url = image_url
        self.frame_count = frame_count


@dataclass(init=False)
class CacheDrainedEvent(Event):
    """The loader's pending queue ran empty; fired once per load cycle"""
    cycle: int
    loaded: List[str]
    failed: List[str]

    def __init__(self, cycle: int, loaded: List[str], failed: List[str]):
        super().__init__(
            type=EventType.CACHE_DRAINED,
            source=EventSource.ATLAS_LOADER,
        )
        self.cycle = cycle
        self.loaded = loaded
        self.failed = failed

