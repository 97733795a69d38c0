"""
Atlas Loader

Sequential fetch pipeline that fills the AtlasStore.

Flow of one load cycle:
1. enqueue() appends URLs to the pending queue and starts a cycle task if
   none is running (otherwise the URLs are folded into the running cycle)
2. The cycle pops ONE URL at a time from the END of the queue (LIFO)
3. URLs already stored or already in flight are skipped
4. Otherwise: fetch JSON → validate → fetch image (unless stored) → store
5. Queue empty → CacheDrainedEvent is published once for the cycle

Failures are published as LoadErrorEvent and the cycle moves on to the
next URL. Nothing is retried automatically.
"""

import asyncio
from typing import Iterable, List, Optional, Union

from sprite_animation.lifecycle.task_registry import create_tracked_task, TaskCategory
from sprite_animation.models.errors import LoadError
from sprite_animation.models.events import AtlasLoadedEvent, CacheDrainedEvent, LoadErrorEvent
from sprite_animation.models.schemas import parse_atlas
from sprite_animation.services.asset_fetcher import Fetcher
from sprite_animation.services.atlas_store import AtlasStore
from sprite_animation.services.event_bus import EventBus
from sprite_animation.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.LOADER)

UrlList = Union[str, Iterable[str]]


def select_urls(
    urls: Optional[UrlList],
    retina_urls: Optional[UrlList] = None,
    wants_retina: bool = False
) -> List[str]:
    """Retina URLs when wanted and given, else the regular URLs."""
    def as_list(value: Optional[UrlList]) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return list(value)

    retina = as_list(retina_urls)
    if wants_retina and retina:
        return retina
    return as_list(urls)


class AtlasLoader:
    """
    Loads atlases into a shared AtlasStore, one URL at a time.

    Example:
        loader = AtlasLoader(store, AssetFetcher(), bus)
        bus.subscribe(EventType.CACHE_DRAINED, on_drained)

        loader.enqueue(["sprites/icon-0.json", "sprites/icon-1.json"])
        # or wait for the cycle to finish:
        drained = await loader.load("sprites/icon-0.json")
    """

    def __init__(self, store: AtlasStore, fetcher: Fetcher, event_bus: EventBus):
        self.store = store
        self.fetcher = fetcher
        self.event_bus = event_bus

        self._queue: List[str] = []
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._cycle = 0
        self._waiters: List[asyncio.Future] = []

    @property
    def is_loading(self) -> bool:
        return self._running

    @property
    def pending(self) -> List[str]:
        """URLs still queued, in pop order"""
        return list(reversed(self._queue))

    def enqueue(
        self,
        urls: Optional[UrlList],
        retina_urls: Optional[UrlList] = None,
        wants_retina: bool = False
    ) -> None:
        """
        Queue atlas URLs for loading.

        Must be called with a running event loop. A cycle already in
        progress picks the new URLs up; otherwise a new cycle starts.
        """
        load_urls = select_urls(urls, retina_urls, wants_retina)
        self._queue.extend(load_urls)

        if self._running:
            log.debug("Folded URLs into running load cycle", urls=len(load_urls), queued=len(self._queue))
            return

        self._running = True
        self._cycle += 1
        self._task = create_tracked_task(
            self._run_cycle(self._cycle),
            category=TaskCategory.LOADER,
            description=f"Atlas load cycle #{self._cycle}"
        )

    async def load(
        self,
        urls: Optional[UrlList],
        retina_urls: Optional[UrlList] = None,
        wants_retina: bool = False
    ) -> CacheDrainedEvent:
        """Enqueue and wait until the cycle that picks the URLs up drains."""
        waiter = self._new_waiter()
        self.enqueue(urls, retina_urls, wants_retina)
        return await waiter

    async def wait_drained(self) -> Optional[CacheDrainedEvent]:
        """Wait for the running cycle to drain (None when idle)."""
        if not self._running:
            return None
        return await self._new_waiter()

    def _new_waiter(self) -> asyncio.Future:
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return waiter

    # ------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------

    async def _run_cycle(self, cycle: int) -> None:
        loaded: List[str] = []
        failed: List[str] = []
        log.debug(f"Load cycle #{cycle} started", queued=len(self._queue))

        try:
            while self._queue:
                url = self._queue.pop()

                if self.store.has(url) or self.store.is_loading(url):
                    log.debug("Skipping cached or in-flight atlas", url=url)
                    continue

                self.store.mark_loading(url)
                try:
                    await self._load_atlas(url)
                    loaded.append(url)
                except LoadError as ex:
                    failed.append(url)
                    await self._report_failure(ex)
                except Exception as ex:
                    failed.append(url)
                    await self._report_failure(LoadError(url, f"{type(ex).__name__}: {ex}"))
                finally:
                    self.store.finish_loading(url)
        except BaseException:
            # Cancelled (or broken) cycle: release waiters and let the next enqueue start fresh
            self._running = False
            for waiter in self._take_waiters():
                waiter.cancel()
            raise

        # Cleared before publishing so drain handlers can start a new cycle
        self._running = False

        event = CacheDrainedEvent(cycle=cycle, loaded=loaded, failed=failed)
        log.info(f"Load cycle #{cycle} drained", loaded=len(loaded), failed=len(failed))

        for waiter in self._take_waiters():
            if not waiter.done():
                waiter.set_result(event)

        await self.event_bus.publish(event)

    async def _report_failure(self, error: LoadError) -> None:
        log.error("Atlas load failed, continuing", url=error.url, reason=error.reason)
        await self.event_bus.publish(LoadErrorEvent(error))

    def _take_waiters(self) -> List[asyncio.Future]:
        waiters, self._waiters = self._waiters, []
        return waiters

    async def _load_atlas(self, url: str) -> None:
        data = await self.fetcher.fetch_json(url)
        atlas = parse_atlas(url, data)
        image_url = atlas.meta.image_url

        if not self.store.has(image_url):
            image = await self.fetcher.fetch_image(image_url)
            self.store.put(image_url, image)
        else:
            log.debug("Image already cached", image=image_url)

        # Stored only once its image is available
        self.store.put(url, atlas)
        log.info("Atlas loaded", url=url, frames=len(atlas.frames), image=image_url)

        await self.event_bus.publish(
            AtlasLoadedEvent(url=url, image_url=image_url, frame_count=len(atlas.frames))
        )

    async def close(self) -> None:
        """Cancel a running cycle and drop queued URLs."""
        self._queue.clear()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._running = False
