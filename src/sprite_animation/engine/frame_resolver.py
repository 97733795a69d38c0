"""
Frame Resolver

Turns a frame-name pattern into the ordered list of frames of one
animation, looking each generated name up across every stored atlas
(multipacked animations simply span several atlases).

Pattern rules:
- the delimiter span runs from the first to the last delimiter character
- the span is replaced by the frame counter, zero-padded to the number of
  delimiter characters ("icon_%%.png" → "icon_01.png")
- the counter starts at start_index and increases by one per frame
"""

from typing import List, Optional

from sprite_animation.models.atlas import AtlasDescriptor, FrameEntry
from sprite_animation.models.errors import ResolutionError
from sprite_animation.services.atlas_store import AtlasStore
from sprite_animation.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.RESOLVER)

DEFAULT_MAX_ATTEMPTS = 100_000


def frame_name(pattern: str, delimiter: str, counter: int) -> str:
    """
    Build the atlas key for one frame.

    Example:
        frame_name("icon-loop_%%.png", "%", 1)  -> "icon-loop_01.png"
        frame_name("walk_####", "#", 12)         -> "walk_0012"
    """
    if not delimiter or delimiter not in pattern:
        return pattern

    width = len(pattern.split(delimiter)) - 1
    first = pattern.index(delimiter)
    last = pattern.rindex(delimiter)
    return pattern[:first] + str(counter).zfill(width) + pattern[last + 1:]


class FrameResolver:
    """Builds frame lists from the atlases currently in an AtlasStore."""

    def __init__(self, store: AtlasStore, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.store = store
        self.max_attempts = max_attempts

    def find_atlas(self, name: str, atlases: Optional[List[AtlasDescriptor]] = None) -> Optional[AtlasDescriptor]:
        """First atlas (store insertion order) that contains the frame name"""
        for atlas in atlases if atlases is not None else self.store.atlases():
            if name in atlas:
                return atlas
        return None

    def resolve(self, pattern: str, delimiter: str, start_index: int) -> List[FrameEntry]:
        """
        Resolve consecutive frames starting at start_index.

        Stops at the first name that no atlas contains.

        Raises:
            ResolutionError: no frame matched, or max_attempts names were
                generated without running out (the error carries the frames
                found so far)
        """
        atlases = self.store.atlases()
        frames: List[FrameEntry] = []
        counter = start_index

        while len(frames) < self.max_attempts:
            name = frame_name(pattern, delimiter, counter)
            atlas = self.find_atlas(name, atlases)
            if atlas is None:
                break
            frames.append(FrameEntry.from_atlas(name, atlas))
            counter += 1
        else:
            raise ResolutionError(pattern, f"stopped after {self.max_attempts} frames", frames)

        if not frames:
            first = frame_name(pattern, delimiter, start_index)
            raise ResolutionError(pattern, f"no atlas contains '{first}'")

        log.debug(
            "Frames resolved",
            pattern=pattern,
            frames=len(frames),
            atlases=len({f.atlas_url for f in frames})
        )
        return frames
