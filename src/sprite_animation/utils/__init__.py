"""
Utility functions for the sprite animation runtime
"""

from .urls import resolve_image_url, is_remote, to_local_path

__all__ = [
    'resolve_image_url',
    'is_remote',
    'to_local_path',
]
