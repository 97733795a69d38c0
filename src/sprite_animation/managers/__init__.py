"""
Managers - runtime configuration
"""

from .config_manager import (
    ConfigManager,
    SpriteAnimationConfig,
    LoggingConfig,
    LoaderConfig,
    ResolverConfig,
    PlaybackConfig,
)

__all__ = [
    'ConfigManager',
    'SpriteAnimationConfig',
    'LoggingConfig',
    'LoaderConfig',
    'ResolverConfig',
    'PlaybackConfig',
]
