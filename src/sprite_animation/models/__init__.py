"""
Models package - Data models for atlas caching and sprite playback
"""

from .enums import PlaybackStatus, LogLevel, LogCategory
from .atlas import Rect, Size, Offset, FrameData, AtlasMeta, AtlasDescriptor, FrameEntry, ImageAsset
from .animation import FrameRef, PendingIntent, AnimationDefinition, PlaybackState
from .errors import (
    SpriteAnimationError,
    LoadError,
    ResolutionError,
    InvalidFrameReference,
    UnsupportedEnvironment,
    RenderError,
)

__all__ = [
    'PlaybackStatus',
    'LogLevel',
    'LogCategory',
    'Rect',
    'Size',
    'Offset',
    'FrameData',
    'AtlasMeta',
    'AtlasDescriptor',
    'FrameEntry',
    'ImageAsset',
    'FrameRef',
    'PendingIntent',
    'AnimationDefinition',
    'PlaybackState',
    'SpriteAnimationError',
    'LoadError',
    'ResolutionError',
    'InvalidFrameReference',
    'UnsupportedEnvironment',
    'RenderError',
]
