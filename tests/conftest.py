import asyncio

import pytest
from unittest.mock import MagicMock
from PIL import Image

from sprite_animation.engine.playback_engine import PlaybackEngine
from sprite_animation.models.atlas import ImageAsset
from sprite_animation.models.errors import LoadError
from sprite_animation.models.schemas import parse_atlas
from sprite_animation.services.atlas_loader import AtlasLoader
from sprite_animation.services.atlas_store import AtlasStore
from sprite_animation.services.event_bus import EventBus

FRAME_SIZE = 16

# icon-loop_01..05 multipacked over two atlases
ICON_URLS = ["sprites/icon-0.json", "sprites/icon-1.json"]


def atlas_document(image, frame_names, size=(FRAME_SIZE, FRAME_SIZE), scale="1"):
    """JSON-hash document with frames laid out left to right"""
    w, h = size
    frames = {}
    for i, name in enumerate(frame_names):
        frames[name] = {
            "frame": {"x": i * w, "y": 0, "w": w, "h": h},
            "rotated": False,
            "trimmed": False,
            "spriteSourceSize": {"x": 0, "y": 0, "w": w, "h": h},
            "sourceSize": {"w": w, "h": h},
        }
    return {"frames": frames, "meta": {"image": image, "scale": scale}}


def make_atlas(url, image, frame_names, **kwargs):
    return parse_atlas(url, atlas_document(image, frame_names, **kwargs))


def image_asset(url, width=128, height=FRAME_SIZE):
    handle = Image.new("RGBA", (width, height), (255, 0, 0, 255))
    return ImageAsset(url=url, handle=handle, width=width, height=height)


def icon_frames(first, last):
    return [f"icon-loop_{i:02d}.png" for i in range(first, last + 1)]


async def settle(rounds=20):
    """Let every runnable task advance to its next real suspension point"""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeFetcher:
    """In-memory Fetcher recording every request"""

    def __init__(self, documents=None, images=None):
        self.documents = dict(documents or {})
        self.images = dict(images or {})
        self.json_calls = []
        self.image_calls = []

    async def fetch_json(self, url):
        self.json_calls.append(url)
        await asyncio.sleep(0)
        if url not in self.documents:
            raise LoadError(url, "404 Not Found")
        return self.documents[url]

    async def fetch_image(self, url):
        self.image_calls.append(url)
        await asyncio.sleep(0)
        if url not in self.images:
            raise LoadError(url, "404 Not Found")
        return self.images[url]


class ManualClock:
    """
    Replacement for asyncio.sleep: sleepers wait until tick() releases them.

    One tick = one frame interval elapsed for every sleeping schedule.
    """

    def __init__(self):
        self.delays = []
        self._waiters = []

    async def sleep(self, seconds):
        self.delays.append(seconds)
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter

    @property
    def sleeping(self):
        return sum(1 for w in self._waiters if not w.done())

    async def tick(self, count=1):
        for _ in range(count):
            await settle()
            waiters, self._waiters = self._waiters, []
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_result(None)
            await settle()


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def store():
    return AtlasStore()


@pytest.fixture
def fetcher():
    return FakeFetcher(
        documents={
            "sprites/icon-0.json": atlas_document("icon-0.png", icon_frames(1, 3)),
            "sprites/icon-1.json": atlas_document("icon-1.png", icon_frames(4, 5)),
        },
        images={
            "sprites/icon-0.png": image_asset("sprites/icon-0.png"),
            "sprites/icon-1.png": image_asset("sprites/icon-1.png"),
        },
    )


@pytest.fixture
def loader(store, fetcher, event_bus):
    return AtlasLoader(store, fetcher, event_bus)


@pytest.fixture
def renderer():
    renderer = MagicMock()
    renderer.is_supported.return_value = True
    return renderer


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def engine(store, loader, renderer, event_bus, clock):
    return PlaybackEngine(store, loader, renderer, event_bus, sleep=clock.sleep)


@pytest.fixture
def collect(event_bus):
    """collect(EventType.X) -> list filled with every published X event"""
    def _collect(event_type):
        received = []
        event_bus.subscribe(event_type, received.append)
        return received
    return _collect
