"""
Renderer Protocol
=================
Drawing-surface abstraction for the PlaybackEngine.

The engine never touches pixels itself: it asks the renderer for a surface,
clears it, and draws one atlas region per frame.
"""

from __future__ import annotations

import math
from typing import Optional, Protocol, Tuple

from PIL import Image

from sprite_animation.models.atlas import ImageAsset, Offset, Rect

TRANSPARENT = (0, 0, 0, 0)


class Renderer(Protocol):
    """
    Protocol defining the drawing-surface contract.

    All implementations must provide:
    - is_supported: whether a surface can exist at all
    - ensure_surface: create (or grow) the surface
    - draw_frame: draw one atlas region
    - clear: erase the surface
    - set_offset: position the surface in its container
    - release: drop the surface
    """

    def is_supported(self) -> bool:
        ...

    def ensure_surface(self, width: float, height: float) -> None:
        ...

    def draw_frame(
        self,
        image: ImageAsset,
        src_rect: Rect,
        dst_offset: Offset,
        dst_size: Tuple[float, float]
    ) -> None:
        """Draw src_rect of image at dst_offset, stretched to dst_size."""
        ...

    def clear(self) -> None:
        ...

    def set_offset(self, x: float, y: float) -> None:
        ...

    def release(self) -> None:
        ...


class PillowRenderer(Renderer):
    """
    Offscreen RGBA surface backed by Pillow.

    Useful headless (exporting frames, tests) and as the reference
    implementation of the protocol.
    """

    def __init__(self, resample: Image.Resampling = Image.Resampling.LANCZOS):
        self.surface: Optional[Image.Image] = None
        self.offset = Offset(0, 0)
        self.resample = resample
        self.draw_count = 0

    def is_supported(self) -> bool:
        return True

    def ensure_surface(self, width: float, height: float) -> None:
        size = (max(1, math.ceil(width)), max(1, math.ceil(height)))
        if self.surface is None:
            self.surface = Image.new("RGBA", size, TRANSPARENT)
            return

        if size[0] > self.surface.width or size[1] > self.surface.height:
            grown = Image.new(
                "RGBA",
                (max(size[0], self.surface.width), max(size[1], self.surface.height)),
                TRANSPARENT
            )
            grown.paste(self.surface, (0, 0))
            self.surface = grown

    def draw_frame(
        self,
        image: ImageAsset,
        src_rect: Rect,
        dst_offset: Offset,
        dst_size: Tuple[float, float]
    ) -> None:
        if self.surface is None:
            raise RuntimeError("draw_frame called without a surface")

        source = image.handle
        if source.mode != "RGBA":
            source = source.convert("RGBA")

        region = source.crop((src_rect.x, src_rect.y, src_rect.x + src_rect.w, src_rect.y + src_rect.h))
        size = (max(1, round(dst_size[0])), max(1, round(dst_size[1])))
        if region.size != size:
            region = region.resize(size, self.resample)

        dest = (max(0, round(dst_offset.x)), max(0, round(dst_offset.y)))
        self.surface.alpha_composite(region, dest=dest)
        self.draw_count += 1

    def clear(self) -> None:
        if self.surface is not None:
            self.surface = Image.new("RGBA", self.surface.size, TRANSPARENT)

    def set_offset(self, x: float, y: float) -> None:
        self.offset = Offset(x, y)

    def release(self) -> None:
        self.surface = None

    def snapshot(self) -> Optional[Image.Image]:
        """Copy of the current surface contents"""
        return self.surface.copy() if self.surface is not None else None
