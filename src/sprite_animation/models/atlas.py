"""
Atlas data model

Immutable value objects for loaded atlas descriptors, the frames they
contain, and decoded backing images.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    w: int
    h: int


@dataclass(frozen=True)
class Size:
    w: int
    h: int


@dataclass(frozen=True)
class Offset:
    x: float
    y: float


@dataclass(frozen=True)
class FrameData:
    """One frame record as stored inside an atlas descriptor"""
    rect: Rect
    source_size: Size
    sprite_source_offset: Offset


@dataclass(frozen=True)
class AtlasMeta:
    image: str          # image path as written in the descriptor
    image_url: str      # image path resolved against the atlas URL
    scale: float = 1.0


@dataclass(frozen=True)
class AtlasDescriptor:
    """A loaded JSON-hash atlas, keyed in the store by its source URL"""
    url: str
    meta: AtlasMeta
    frames: Mapping[str, FrameData] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze the mapping so shared descriptors can't be edited in place
        object.__setattr__(self, "frames", MappingProxyType(dict(self.frames)))

    def __contains__(self, frame_name: str) -> bool:
        return frame_name in self.frames

    def frame(self, frame_name: str) -> Optional[FrameData]:
        return self.frames.get(frame_name)


@dataclass(frozen=True)
class FrameEntry:
    """
    A resolved animation frame.

    Carries the owning atlas's image URL and scale so the engine can draw
    without going back to the descriptor.
    """
    name: str
    rect: Rect
    source_size: Size
    sprite_source_offset: Offset
    atlas_url: str
    image_url: str
    scale: float = 1.0

    @classmethod
    def from_atlas(cls, name: str, atlas: AtlasDescriptor) -> FrameEntry:
        data = atlas.frames[name]
        return cls(
            name=name,
            rect=data.rect,
            source_size=data.source_size,
            sprite_source_offset=data.sprite_source_offset,
            atlas_url=atlas.url,
            image_url=atlas.meta.image_url,
            scale=atlas.meta.scale,
        )


@dataclass(frozen=True)
class ImageAsset:
    """Decoded raster shared by every descriptor that points at its URL"""
    url: str
    handle: Any
    width: int = 0
    height: int = 0
