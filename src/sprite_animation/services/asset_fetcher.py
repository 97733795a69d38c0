"""
Asset Fetcher

Fetches atlas JSON documents and backing images.

- http(s) URLs: requests, run in the loop's default executor
- file:// URLs and plain paths: aiofiles
- images are decoded with Pillow into RGBA

Every failure is raised as LoadError so the loader handles one error type.
"""

import asyncio
import functools
import json
from io import BytesIO
from typing import Any, Optional, Protocol

import aiofiles
import requests
from PIL import Image, UnidentifiedImageError

from sprite_animation.models.atlas import ImageAsset
from sprite_animation.models.errors import LoadError
from sprite_animation.utils.logger import get_logger, LogCategory
from sprite_animation.utils.urls import is_remote, to_local_path

log = get_logger().for_category(LogCategory.LOADER)


class Fetcher(Protocol):
    """Anything the AtlasLoader can pull atlases and images through."""

    async def fetch_json(self, url: str) -> Any:
        """Return the decoded JSON document at url (raises LoadError)."""
        ...

    async def fetch_image(self, url: str) -> ImageAsset:
        """Return the decoded image at url (raises LoadError)."""
        ...


class AssetFetcher:
    """Default Fetcher for remote and local assets."""

    def __init__(self, timeout_s: float = 10.0, session: Optional[requests.Session] = None):
        self.timeout_s = timeout_s
        self._session = session or requests.Session()

    async def fetch_json(self, url: str) -> Any:
        raw = await self._read(url)
        try:
            return json.loads(raw)
        except ValueError as ex:
            raise LoadError(url, f"invalid JSON: {ex}") from ex

    async def fetch_image(self, url: str) -> ImageAsset:
        raw = await self._read(url)
        try:
            with Image.open(BytesIO(raw)) as img:
                decoded = img.convert("RGBA")
        except (UnidentifiedImageError, OSError) as ex:
            raise LoadError(url, f"cannot decode image: {ex}") from ex

        return ImageAsset(url=url, handle=decoded, width=decoded.width, height=decoded.height)

    async def _read(self, url: str) -> bytes:
        if is_remote(url):
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, functools.partial(self._http_get, url))

        path = to_local_path(url)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as ex:
            raise LoadError(url, f"cannot read {path}: {ex.strerror or ex}") from ex

    def _http_get(self, url: str) -> bytes:
        try:
            response = self._session.get(url, timeout=self.timeout_s)
            response.raise_for_status()
        except requests.RequestException as ex:
            raise LoadError(url, str(ex)) from ex

        log.debug("Fetched", url=url, bytes=len(response.content))
        return response.content

    def close(self) -> None:
        self._session.close()
