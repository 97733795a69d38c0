"""
Engine - frame resolution, playback and drawing surfaces
"""

from .frame_resolver import FrameResolver, frame_name, DEFAULT_MAX_ATTEMPTS
from .renderer import Renderer, PillowRenderer
from .playback_engine import PlaybackEngine

__all__ = [
    'FrameResolver',
    'frame_name',
    'DEFAULT_MAX_ATTEMPTS',
    'Renderer',
    'PillowRenderer',
    'PlaybackEngine',
]
