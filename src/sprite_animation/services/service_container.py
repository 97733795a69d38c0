"""Service Container - the shared services every PlaybackEngine is built from"""

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from sprite_animation.managers.config_manager import SpriteAnimationConfig
from sprite_animation.services.asset_fetcher import AssetFetcher, Fetcher
from sprite_animation.services.atlas_loader import AtlasLoader
from sprite_animation.services.atlas_store import AtlasStore
from sprite_animation.services.event_bus import EventBus
from sprite_animation.services.middleware import log_middleware

if TYPE_CHECKING:
    from sprite_animation.engine.playback_engine import PlaybackEngine
    from sprite_animation.engine.renderer import Renderer


@dataclass
class ServiceContainer:
    """
    One store, one loader and one bus shared by every engine.

    Usage:
        services = ServiceContainer.create(ConfigManager("sprites.yaml").load())

        header = services.create_engine(PillowRenderer())
        footer = services.create_engine(PillowRenderer())

        # both engines request the same atlas; it is fetched once
        await header.load("sprites/icon-0.json")
        await footer.load("sprites/icon-0.json")

        await services.close()
    """

    config: SpriteAnimationConfig
    store: AtlasStore
    fetcher: Fetcher
    event_bus: EventBus
    loader: AtlasLoader = field(init=False)

    def __post_init__(self):
        self.loader = AtlasLoader(self.store, self.fetcher, self.event_bus)

    @classmethod
    def create(
        cls,
        config: Optional[SpriteAnimationConfig] = None,
        fetcher: Optional[Fetcher] = None,
        log_events: bool = False
    ) -> "ServiceContainer":
        config = config or SpriteAnimationConfig()
        event_bus = EventBus()
        if log_events:
            event_bus.add_middleware(log_middleware)

        return cls(
            config=config,
            store=AtlasStore(),
            fetcher=fetcher or AssetFetcher(timeout_s=config.loader.timeout_s),
            event_bus=event_bus,
        )

    def create_engine(self, renderer: "Renderer", **kwargs) -> "PlaybackEngine":
        from sprite_animation.engine.playback_engine import PlaybackEngine

        return PlaybackEngine.from_config(
            self.config,
            self.store,
            self.loader,
            renderer,
            self.event_bus,
            **kwargs
        )

    async def close(self) -> None:
        await self.loader.close()
        close = getattr(self.fetcher, "close", None)
        if close is not None:
            close()
