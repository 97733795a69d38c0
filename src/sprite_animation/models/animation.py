"""
Animation domain models

AnimationDefinition is the per-engine registration of one named animation;
PlaybackState is the single mutable playback cursor of an engine.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from sprite_animation.models.atlas import FrameEntry
from sprite_animation.models.enums import PlaybackStatus

# A from/to bound: frame index or frame name
FrameRef = Union[int, str]


@dataclass(frozen=True)
class PendingIntent:
    """A play() request issued before the animation's frames were resolved"""
    loop: bool = False
    from_frame: Optional[FrameRef] = None
    to_frame: Optional[FrameRef] = None


@dataclass
class AnimationDefinition:
    name: str
    pattern: str
    delimiter: str
    start_index: int
    fps: float

    loop: bool = False
    from_frame: int = 0
    to_frame: int = -1

    status: PlaybackStatus = PlaybackStatus.UNRESOLVED
    pending: Optional[PendingIntent] = None
    frames: Tuple[FrameEntry, ...] = ()

    @property
    def resolved(self) -> bool:
        return self.status is not PlaybackStatus.UNRESOLVED

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    def index_of(self, frame_name: str) -> int:
        """Linear search for a frame by name, -1 when absent"""
        for i, frame in enumerate(self.frames):
            if frame.name == frame_name:
                return i
        return -1

    def take_pending(self) -> Optional[PendingIntent]:
        """Consume the pending intent (returns it once, then None)"""
        intent, self.pending = self.pending, None
        return intent


@dataclass
class PlaybackState:
    animation_name: Optional[str] = None
    frame_index: int = 0
    playing: bool = False
    stopped: bool = False
    frame_interval_ms: float = 0.0

    # Identifies the live advance schedule; bumped by every play/stop
    generation: int = field(default=0, repr=False)

