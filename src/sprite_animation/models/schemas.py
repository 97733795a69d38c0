"""
Atlas document schemas - Pydantic models for JSON-hash atlas descriptors

A JSON-hash atlas (TexturePacker "JSON (Hash)" export) looks like:

    {
        "frames": {
            "icon-loop_01.png": {
                "frame": {"x": 0, "y": 0, "w": 64, "h": 60},
                "rotated": false,
                "trimmed": true,
                "spriteSourceSize": {"x": 2, "y": 4, "w": 64, "h": 60},
                "sourceSize": {"w": 68, "h": 68}
            }
        },
        "meta": {"image": "icon-loop.png", "scale": "1"}
    }

Unknown keys are ignored. Rotation is not supported: "rotated" is parsed
only so it can be reported.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sprite_animation.models.atlas import (
    AtlasDescriptor,
    AtlasMeta,
    FrameData,
    Offset,
    Rect,
    Size,
)
from sprite_animation.models.errors import LoadError
from sprite_animation.utils.logger import get_logger, LogCategory
from sprite_animation.utils.urls import resolve_image_url

log = get_logger().for_category(LogCategory.LOADER)


class RectSchema(BaseModel):
    x: int
    y: int
    w: int
    h: int


class SizeSchema(BaseModel):
    w: int
    h: int


class OffsetSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    x: float = 0
    y: float = 0


class FrameSchema(BaseModel):
    """One entry of the "frames" hash"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    frame: RectSchema
    rotated: bool = False
    trimmed: bool = False
    source_size: Optional[SizeSchema] = Field(None, alias="sourceSize")
    sprite_source_size: Optional[OffsetSchema] = Field(None, alias="spriteSourceSize")


class MetaSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    image: str = Field(min_length=1, description="Backing image, relative to the atlas")
    scale: float = Field(1.0, gt=0, description="Atlas-to-device scale factor")


class AtlasDocument(BaseModel):
    """Complete JSON-hash atlas descriptor"""
    model_config = ConfigDict(extra="ignore")

    frames: Dict[str, FrameSchema]
    meta: MetaSchema

    def to_descriptor(self, url: str) -> AtlasDescriptor:
        frames = {}
        rotated = 0
        for name, entry in self.frames.items():
            if entry.rotated:
                rotated += 1
            rect = Rect(entry.frame.x, entry.frame.y, entry.frame.w, entry.frame.h)
            size = entry.source_size or SizeSchema(w=rect.w, h=rect.h)
            offset = entry.sprite_source_size or OffsetSchema()
            frames[name] = FrameData(
                rect=rect,
                source_size=Size(size.w, size.h),
                sprite_source_offset=Offset(offset.x, offset.y),
            )

        if rotated:
            log.warn("Rotated frames are not supported, drawing them unrotated", url=url, rotated=rotated)

        return AtlasDescriptor(
            url=url,
            meta=AtlasMeta(
                image=self.meta.image,
                image_url=resolve_image_url(url, self.meta.image),
                scale=self.meta.scale,
            ),
            frames=frames,
        )


def parse_atlas(url: str, data: Any) -> AtlasDescriptor:
    """
    Validate a decoded JSON document and build its AtlasDescriptor.

    Raises:
        LoadError: the document is not a JSON-hash atlas
    """
    try:
        document = AtlasDocument.model_validate(data)
    except ValidationError as ex:
        raise LoadError(url, f"invalid atlas descriptor ({ex.error_count()} errors)") from ex
    return document.to_descriptor(url)
