"""
Atlas Store - shared cache of atlas descriptors and decoded images

One store is constructed by the application and injected into the loader
and every PlaybackEngine, so an atlas is fetched once and reused by every
instance.

Keys:
- atlas descriptors by atlas URL
- images by resolved image URL

In-flight markers record URLs whose fetch is currently running; the loader
uses them to skip duplicate requests.
"""

from typing import Dict, Iterable, List, Optional, Set, Union

from sprite_animation.models.atlas import AtlasDescriptor, ImageAsset
from sprite_animation.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.CACHE)

StoreValue = Union[AtlasDescriptor, ImageAsset]


class AtlasStore:
    """
    Key-value store of atlases and images.

    Example:
        store = AtlasStore()
        store.put(descriptor.url, descriptor)
        store.put(image.url, image)

        store.has("sprites/icon-0.json")        # True
        store.flush(["sprites/icon-0.json"])     # drops atlas + its image
        store.flush()                            # drops everything
    """

    def __init__(self):
        # dicts keep insertion order; frame resolution scans atlases in it
        self._atlases: Dict[str, AtlasDescriptor] = {}
        self._images: Dict[str, ImageAsset] = {}
        self._loading: Set[str] = set()

    # ------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------

    def has(self, url: str) -> bool:
        return url in self._atlases or url in self._images

    def get(self, url: str) -> Optional[StoreValue]:
        """Atlas for url, else image for url, else None"""
        atlas = self._atlases.get(url)
        if atlas is not None:
            return atlas
        return self._images.get(url)

    def atlas(self, url: str) -> Optional[AtlasDescriptor]:
        return self._atlases.get(url)

    def image(self, url: str) -> Optional[ImageAsset]:
        return self._images.get(url)

    def atlases(self) -> List[AtlasDescriptor]:
        """Stored descriptors in insertion order (a copy)"""
        return list(self._atlases.values())

    def images(self) -> Dict[str, ImageAsset]:
        return dict(self._images)

    def is_populated(self) -> bool:
        return bool(self._atlases)

    # ------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------

    def put(self, url: str, value: StoreValue) -> None:
        """
        Store an atlas or an image under url.

        Raises:
            TypeError: value is neither an AtlasDescriptor nor an ImageAsset
        """
        if isinstance(value, AtlasDescriptor):
            self._atlases[url] = value
            log.debug("Atlas stored", url=url, frames=len(value.frames))
        elif isinstance(value, ImageAsset):
            self._images[url] = value
            log.debug("Image stored", url=url, size=f"{value.width}x{value.height}")
        else:
            raise TypeError(f"Cannot store {type(value).__name__} in AtlasStore")

    def flush(self, urls: Optional[Union[str, Iterable[str]]] = None) -> List[str]:
        """
        Remove atlases (and their images) from the store.

        flush() clears every atlas and image. flush(urls) removes each named
        atlas and the image its meta points at, even when another stored
        atlas still references that image; such atlases are logged as
        dangling. Unknown URLs are ignored. In-flight markers are untouched.

        Returns:
            The image URLs that were removed
        """
        if urls is None:
            removed_images = list(self._images)
            log.info("Store flushed", atlases=len(self._atlases), images=len(self._images))
            self._atlases.clear()
            self._images.clear()
            return removed_images

        if isinstance(urls, str):
            urls = [urls]

        removed_images: List[str] = []
        for url in urls:
            atlas = self._atlases.pop(url, None)
            if atlas is None:
                continue

            image_url = atlas.meta.image_url
            if self._images.pop(image_url, None) is not None:
                removed_images.append(image_url)
                dangling = [a.url for a in self._atlases.values() if a.meta.image_url == image_url]
                if dangling:
                    log.warn(
                        "Flushed image is still referenced by other atlases",
                        image=image_url,
                        atlases=", ".join(dangling)
                    )

            log.info("Atlas flushed", url=url, image=image_url)

        return removed_images

    # ------------------------------------------------------------
    # In-flight bookkeeping (used by AtlasLoader)
    # ------------------------------------------------------------

    def mark_loading(self, url: str) -> None:
        self._loading.add(url)

    def is_loading(self, url: str) -> bool:
        return url in self._loading

    def finish_loading(self, url: str) -> None:
        self._loading.discard(url)

    def __len__(self) -> int:
        return len(self._atlases)

    def __contains__(self, url: str) -> bool:
        return self.has(url)
