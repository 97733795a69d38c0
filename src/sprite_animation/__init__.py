"""
sprite_animation - texture-atlas sprite playback for asyncio

Atlases (JSON-hash descriptors plus their sheet images) are loaded once into
a shared AtlasStore; any number of PlaybackEngine instances resolve frame-name
patterns against it and play them onto their own Renderer surface.
"""

from sprite_animation.engine import FrameResolver, PlaybackEngine, PillowRenderer, Renderer
from sprite_animation.managers import ConfigManager, SpriteAnimationConfig
from sprite_animation.models import PlaybackStatus
from sprite_animation.models.events import EventType
from sprite_animation.services import AssetFetcher, AtlasLoader, AtlasStore, EventBus
from sprite_animation.services.service_container import ServiceContainer

__version__ = "0.1.0"

__all__ = [
    'AssetFetcher',
    'AtlasLoader',
    'AtlasStore',
    'ConfigManager',
    'EventBus',
    'EventType',
    'FrameResolver',
    'PillowRenderer',
    'PlaybackEngine',
    'PlaybackStatus',
    'Renderer',
    'ServiceContainer',
    'SpriteAnimationConfig',
]
