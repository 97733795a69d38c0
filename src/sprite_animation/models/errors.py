"""
Error types for the sprite animation runtime

None of these are raised out of public engine operations: they travel to
consumers as error events on the EventBus and are logged where they occur.
"""

from typing import Optional


class SpriteAnimationError(Exception):
    """Base class for sprite animation errors"""
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class LoadError(SpriteAnimationError):
    """Fetching or decoding an atlas descriptor or image failed"""
    def __init__(self, url: str, reason: str):
        super().__init__(
            code="LOAD_FAILED",
            message=f"Failed to load '{url}': {reason}",
            details={"url": url, "reason": reason}
        )
        self.url = url
        self.reason = reason


class ResolutionError(SpriteAnimationError):
    """A frame-name pattern matched nothing, or hit the attempt cap"""
    def __init__(self, pattern: str, reason: str, frames: Optional[list] = None):
        super().__init__(
            code="RESOLUTION_FAILED",
            message=f"Could not resolve frames for '{pattern}': {reason}",
            details={"pattern": pattern, "reason": reason}
        )
        self.pattern = pattern
        self.frames = list(frames or [])


class InvalidFrameReference(SpriteAnimationError):
    """A named from/to bound is not in the animation's frame list"""
    def __init__(self, animation: str, frame_name: str):
        super().__init__(
            code="INVALID_FRAME_REFERENCE",
            message=f"Frame '{frame_name}' not found in animation '{animation}'",
            details={"animation": animation, "frame": frame_name}
        )


class UnsupportedEnvironment(SpriteAnimationError):
    """The drawing surface is unavailable"""
    def __init__(self, reason: str = "drawing surface unavailable"):
        super().__init__(
            code="UNSUPPORTED_ENVIRONMENT",
            message=reason
        )


class RenderError(SpriteAnimationError):
    """Drawing a single frame failed"""
    def __init__(self, animation: Optional[str], frame_index: int, reason: str):
        super().__init__(
            code="RENDER_FAILED",
            message=f"Failed to draw frame {frame_index} of '{animation}': {reason}",
            details={"animation": animation, "frame_index": frame_index, "reason": reason}
        )
        self.animation = animation
        self.frame_index = frame_index
