"""URL helpers for atlas and image locations"""

from pathlib import Path
from urllib.parse import urlparse, unquote

REMOTE_SCHEMES = ("http", "https")


def resolve_image_url(atlas_url: str, image: str) -> str:
    """
    Resolve an atlas's meta.image against the atlas URL's directory.

    Example:
        resolve_image_url("https://cdn/sprites/icon-0.json", "icon-0.png")
        -> "https://cdn/sprites/icon-0.png"

    An atlas URL without any "/" resolves to the bare image name.
    """
    if "/" not in atlas_url:
        return image
    return atlas_url[:atlas_url.rfind("/")] + "/" + image


def is_remote(url: str) -> bool:
    return urlparse(url).scheme in REMOTE_SCHEMES


def to_local_path(url: str) -> Path:
    """Turn a file:// URL or plain filesystem path into a Path"""
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(url)
