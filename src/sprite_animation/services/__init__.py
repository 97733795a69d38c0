"""
Services - event routing, the shared atlas store and the load pipeline
"""

from .event_bus import EventBus, EventHandler
from .middleware import log_middleware
from .atlas_store import AtlasStore
from .asset_fetcher import AssetFetcher, Fetcher
from .atlas_loader import AtlasLoader, select_urls

__all__ = [
    'EventBus',
    'EventHandler',
    'log_middleware',
    'AtlasStore',
    'AssetFetcher',
    'Fetcher',
    'AtlasLoader',
    'select_urls',
]
