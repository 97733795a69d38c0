"""
Playback Engine

Drives frame-sequence animations sourced from the shared AtlasStore onto
one Renderer surface.

Per-animation state machine:
    UNRESOLVED → IDLE → PLAYING → {LOOPING | DONE} → STOPPED
STOPPED is reachable from any state via stop() and re-enters PLAYING on play().

Timing:
- play() draws the first frame before it returns
- an advance task then sleeps frame_interval_ms between frames
- wrapping past `to` while looping redraws `from` with no extra delay
- every advance task carries the generation it was started with; once
  play()/stop() bump the generation the old task exits without acting
"""

import asyncio
import itertools
import math
import numbers
from dataclasses import replace
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from sprite_animation.engine.frame_resolver import DEFAULT_MAX_ATTEMPTS, FrameResolver
from sprite_animation.engine.renderer import Renderer
from sprite_animation.lifecycle.task_registry import create_tracked_task, TaskCategory
from sprite_animation.managers.config_manager import SpriteAnimationConfig
from sprite_animation.models.animation import AnimationDefinition, FrameRef, PendingIntent, PlaybackState
from sprite_animation.models.atlas import Offset
from sprite_animation.models.enums import PlaybackStatus
from sprite_animation.models.errors import (
    InvalidFrameReference,
    RenderError,
    ResolutionError,
    UnsupportedEnvironment,
)
from sprite_animation.models.events import (
    AnimationDoneEvent,
    AnimationLoopEvent,
    AnimationStartedEvent,
    AnimationStoppedEvent,
    EnvironmentUnsupportedEvent,
    Event,
    EventType,
    RenderErrorEvent,
    ResolutionErrorEvent,
    SpriteReadyEvent,
)
from sprite_animation.services.atlas_loader import AtlasLoader, UrlList
from sprite_animation.services.atlas_store import AtlasStore
from sprite_animation.services.event_bus import EventBus
from sprite_animation.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.ANIMATION)
render_log = log.with_category(LogCategory.RENDER)

SleepFn = Callable[[float], Awaitable[None]]


class PlaybackEngine:
    """
    One sprite animation instance bound to one drawing surface.

    Every engine shares the injected AtlasStore/AtlasLoader, so an atlas
    requested by several engines is fetched once. Public operations never
    raise on load, resolution or render failures: those are logged and
    published on the bus as error events.

    Example:
        engine = PlaybackEngine(store, loader, PillowRenderer(), bus)
        engine.on(EventType.ANIMATION_DONE, on_done)

        await engine.load(["sprites/icon-0.json", "sprites/icon-1.json"])
        await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 1, 30)
        await engine.play("icon-loop", loop=True, from_frame=0, to_frame=2)
        ...
        await engine.stop(clear=True)
    """

    _ids = itertools.count(1)

    def __init__(
        self,
        store: AtlasStore,
        loader: AtlasLoader,
        renderer: Renderer,
        event_bus: EventBus,
        *,
        ignore_atlas_scale: bool = True,
        retina: bool = False,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: SleepFn = asyncio.sleep
    ):
        """
        Args:
            store: Shared atlas/image store
            loader: Shared loader filling the store
            renderer: Drawing surface owned by this engine
            event_bus: Bus for readiness, playback and error events
            ignore_atlas_scale: Draw at scale 1 regardless of meta.scale
            retina: Load the retina URL list when one is given
            max_attempts: Frame resolution safety cap
            sleep: Awaitable delay between frames (seconds)
        """
        self.id = next(PlaybackEngine._ids)
        self._log = log.bind(engine=self.id)
        self._render_log = render_log.bind(engine=self.id)
        self.store = store
        self.loader = loader
        self.renderer = renderer
        self.event_bus = event_bus
        self.resolver = FrameResolver(store, max_attempts)
        self.ignore_atlas_scale = ignore_atlas_scale
        self.retina = retina
        self._sleep = sleep

        # insertion order decides which pending play launches first
        self._animations: Dict[str, AnimationDefinition] = {}
        self._state = PlaybackState()
        self._task: Optional[asyncio.Task] = None

        self._loaded = False
        self._awaiting_ready = False
        self._ready = asyncio.Event()
        self._supported = True
        self._disposed = False
        self._surface_ready = False

        # (event_type, handler) pairs registered through on()/once()
        self._subscriptions: List[Tuple[EventType, Callable]] = []

    @classmethod
    def from_config(
        cls,
        config: SpriteAnimationConfig,
        store: AtlasStore,
        loader: AtlasLoader,
        renderer: Renderer,
        event_bus: EventBus,
        **kwargs
    ) -> "PlaybackEngine":
        return cls(
            store,
            loader,
            renderer,
            event_bus,
            ignore_atlas_scale=config.playback.ignore_atlas_scale,
            retina=config.loader.retina,
            max_attempts=config.resolver.max_attempts,
            **kwargs
        )

    @property
    def _active(self) -> bool:
        return self._supported and not self._disposed

    # ============================================================
    # Loading and registration
    # ============================================================

    async def load(self, urls: Optional[UrlList], retina_urls: Optional[UrlList] = None) -> None:
        """
        Request atlases through the shared loader.

        Returns once the URLs are queued; use wait_ready() (or the
        SPRITE_READY event) to know when animations are resolved.
        """
        if not self._active:
            return

        if not self.renderer.is_supported():
            self._supported = False
            error = UnsupportedEnvironment()
            self._log.error("Drawing surface unavailable, engine disabled")
            await self.event_bus.publish(EnvironmentUnsupportedEvent(self.id, error))
            return

        self._loaded = False
        self._ready.clear()
        self._wait_for_ready()
        self.loader.enqueue(urls, retina_urls, self.retina)

    async def wait_ready(self) -> None:
        """Block until the next readiness signal has been fully handled."""
        await self._ready.wait()

    async def add_animation(
        self,
        name: str,
        pattern: str,
        delimiter: str,
        start_index: int,
        fps: float
    ) -> None:
        """
        Register (or re-register) a named animation.

        Before the atlases are loaded the animation stays UNRESOLVED and is
        resolved on the readiness signal; afterwards it is resolved now.
        Re-registering keeps a pending play and the loop flag.

        Raises:
            ValueError: fps is not positive
        """
        if not self._active:
            return
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")

        animation = AnimationDefinition(
            name=name,
            pattern=pattern,
            delimiter=delimiter,
            start_index=start_index,
            fps=fps
        )

        previous = self._animations.get(name)
        if previous is not None:
            animation.pending = previous.pending
            animation.loop = previous.loop

        self._animations[name] = animation
        self._log.debug("Animation registered", name=name, pattern=pattern, fps=fps, loaded=self._loaded)

        if not self._loaded:
            self._wait_for_ready()
            return

        await self._resolve(animation)
        intent = animation.take_pending()
        if intent is not None:
            await self._start(animation, intent.loop, intent.from_frame, intent.to_frame)

    register = add_animation

    def _wait_for_ready(self) -> None:
        if self._awaiting_ready:
            return
        self._awaiting_ready = True
        self.event_bus.once(EventType.CACHE_DRAINED, self._on_drained)

    async def _on_drained(self, event: Event) -> None:
        self._awaiting_ready = False
        if self._disposed:
            return

        self._loaded = True
        # every definition is re-resolved: a later load may add multipacked parts
        for animation in list(self._animations.values()):
            await self._resolve(animation)

        self._log.info("Sprite ready", animations=len(self._animations))
        await self.event_bus.publish(SpriteReadyEvent(self.id, len(self._animations)))

        # at most one intent is pending: a newer deferred play clears the rest
        for animation in list(self._animations.values()):
            intent = animation.take_pending()
            if intent is not None and self._active:
                await self._start(animation, intent.loop, intent.from_frame, intent.to_frame)
                break

        self._ready.set()

    async def _resolve(self, animation: AnimationDefinition) -> None:
        try:
            frames = self.resolver.resolve(animation.pattern, animation.delimiter, animation.start_index)
        except ResolutionError as ex:
            frames = ex.frames
            self._log.warn(
                "Frame resolution failed",
                name=animation.name,
                pattern=animation.pattern,
                reason=ex.details["reason"],
                frames=len(frames)
            )
            await self.event_bus.publish(ResolutionErrorEvent(self.id, animation.name, ex))

        animation.frames = tuple(frames)
        last = len(frames) - 1

        if self._is_playing(animation):
            # the running window survives; it only shrinks if frames went away
            animation.to_frame = min(animation.to_frame, last)
            return

        animation.from_frame = 0
        animation.to_frame = last
        if not animation.resolved:
            animation.status = PlaybackStatus.IDLE

    def _is_playing(self, animation: AnimationDefinition) -> bool:
        return (
            self._state.playing
            and self._state.animation_name == animation.name
            and animation.status in (PlaybackStatus.PLAYING, PlaybackStatus.LOOPING)
        )

    # ============================================================
    # Playback control
    # ============================================================

    async def play(
        self,
        name: str,
        loop: bool = False,
        from_frame: Optional[FrameRef] = None,
        to_frame: Optional[FrameRef] = None
    ) -> None:
        """
        Play a registered animation.

        from_frame/to_frame accept a frame index (clamped to the frame list)
        or a frame name; unknown names fall back to the first/last frame.
        On an UNRESOLVED animation the request is remembered and launched
        on readiness.
        """
        if not self._active:
            return

        animation = self._animations.get(name)
        if animation is None:
            self._log.warn("Cannot play unknown animation", name=name)
            return

        if not animation.resolved:
            # the newest deferred play wins, whatever the registration order;
            # readiness then has at most one intent to launch
            for other in self._animations.values():
                other.pending = None
            animation.pending = PendingIntent(loop=loop, from_frame=from_frame, to_frame=to_frame)
            self._log.debug("Play deferred until atlases are ready", name=name, loop=loop)
            return

        await self._start(animation, loop, from_frame, to_frame)

    async def _start(
        self,
        animation: AnimationDefinition,
        loop: bool,
        from_frame: Optional[FrameRef],
        to_frame: Optional[FrameRef]
    ) -> None:
        state = self._state
        self._cancel_schedule()

        current = self._current()
        if current is not None and current is not animation and current.status in (PlaybackStatus.PLAYING, PlaybackStatus.LOOPING):
            current.status = PlaybackStatus.STOPPED

        animation.from_frame = self._frame_index(animation, from_frame, 0)
        animation.to_frame = self._frame_index(animation, to_frame, animation.frame_count - 1)
        animation.loop = bool(loop)
        animation.status = PlaybackStatus.PLAYING

        state.generation += 1
        state.animation_name = animation.name
        state.frame_index = animation.from_frame
        state.playing = True
        state.stopped = False
        state.frame_interval_ms = 1000.0 / animation.fps
        generation = state.generation

        self._log.info(
            f"Playing '{animation.name}'",
            frames=f"{animation.from_frame}..{animation.to_frame}",
            loop=animation.loop,
            interval_ms=round(state.frame_interval_ms, 1)
        )
        await self.event_bus.publish(
            AnimationStartedEvent(self.id, animation.name, animation.from_frame, animation.to_frame, animation.loop)
        )

        if not self._is_current(generation):
            return

        if await self._step(generation):
            self._task = create_tracked_task(
                self._run_schedule(generation),
                category=TaskCategory.PLAYBACK,
                description=f"Engine #{self.id} playback '{animation.name}'"
            )

    def _frame_index(self, animation: AnimationDefinition, ref: Optional[FrameRef], default: int) -> int:
        if ref is None:
            return default

        if isinstance(ref, str):
            index = animation.index_of(ref)
            if index == -1:
                error = InvalidFrameReference(animation.name, ref)
                self._log.debug(error.message, fallback=default)
                return default
            return index

        if not animation.frame_count:
            return default
        return max(0, min(int(ref), animation.frame_count - 1))

    async def stop(self, clear: bool = False) -> None:
        """
        Halt playback and drop every pending play.

        Cooperative: a frame already being drawn completes, the next
        scheduled advance does not happen.
        """
        if not self._active:
            return
        await self._halt(clear)

    async def _halt(self, clear: bool) -> None:
        state = self._state
        state.stopped = True
        state.playing = False
        state.generation += 1
        self._cancel_schedule()

        for animation in self._animations.values():
            animation.pending = None

        current = self._current()
        if current is not None and current.resolved:
            current.status = PlaybackStatus.STOPPED

        if clear:
            self.renderer.clear()

        self._log.info("Playback stopped", name=state.animation_name, cleared=clear)
        await self.event_bus.publish(AnimationStoppedEvent(self.id, state.animation_name, clear))

    async def dispose(self) -> None:
        """
        Stop, release the surface and detach from the bus.

        The shared store is left alone. Every public operation is a no-op
        afterwards.
        """
        if self._disposed:
            return

        if not self._state.stopped:
            await self._halt(clear=False)

        self.renderer.clear()
        self.renderer.release()
        self._surface_ready = False

        if self._awaiting_ready:
            self.event_bus.unsubscribe(EventType.CACHE_DRAINED, self._on_drained)
            self._awaiting_ready = False
        for event_type, handler in self._subscriptions:
            self.event_bus.unsubscribe(event_type, handler)
        self._subscriptions.clear()

        self._disposed = True
        self._ready.set()
        self._log.info("Engine disposed")

    async def set_frame(self, n) -> None:
        """
        Jump to frame n of the current animation and draw it.

        playing/stopped are left untouched, so a running schedule continues
        from n. Non-numeric, negative or out-of-range input is ignored.
        """
        if not self._active:
            return

        if isinstance(n, bool) or not isinstance(n, numbers.Real) or not math.isfinite(n):
            self._log.debug("Ignoring non-numeric frame", value=repr(n))
            return

        animation = self._current()
        if animation is None or not animation.resolved:
            return

        index = round(n)
        if not 0 <= index < animation.frame_count:
            self._log.debug("Ignoring out-of-range frame", name=animation.name, frame=index, frames=animation.frame_count)
            return

        self._state.frame_index = index
        await self._draw(animation, index)

    def set_animation(self, name: str) -> None:
        """Make name the current animation without drawing or playing it"""
        if not self._active:
            return
        if name not in self._animations:
            self._log.warn("Cannot select unknown animation", name=name)
            return
        self._state.animation_name = name

    def set_offset(self, x: float, y: float) -> None:
        if not self._active:
            return
        self.renderer.set_offset(x, y)

    # ============================================================
    # Advance loop
    # ============================================================

    def _is_current(self, generation: int) -> bool:
        state = self._state
        return not self._disposed and not state.stopped and state.generation == generation

    def _cancel_schedule(self) -> None:
        task, self._task = self._task, None
        # A handler running inside the schedule task (e.g. play() from an
        # ANIMATION_DONE handler) must not cancel its own task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run_schedule(self, generation: int) -> None:
        while True:
            await self._sleep(self._state.frame_interval_ms / 1000.0)
            if not self._is_current(generation):
                return

            self._state.frame_index += 1
            if not await self._step(generation):
                return

    async def _step(self, generation: int) -> bool:
        """
        Advance until a frame is drawn or playback ends.

        Returns True when the caller should wait one interval and continue.
        """
        state = self._state

        while self._is_current(generation):
            animation = self._animations[state.animation_name]

            if self._in_window(animation, state.frame_index):
                await self._draw(animation, state.frame_index)
                return state.playing and self._is_current(generation)

            if animation.loop and self._in_window(animation, animation.from_frame):
                animation.status = PlaybackStatus.LOOPING
                self._log.debug(f"Animation '{animation.name}' looped", frame=animation.from_frame)
                await self.event_bus.publish(AnimationLoopEvent(self.id, animation.name))
                state.frame_index = animation.from_frame
                continue

            if animation.loop:
                self._log.warn(
                    f"Animation '{animation.name}' has no drawable frames between {animation.from_frame} and {animation.to_frame}",
                    frames=animation.frame_count
                )

            await self._finish(animation)
            return False

        return False

    @staticmethod
    def _in_window(animation: AnimationDefinition, index: int) -> bool:
        return 0 <= index < animation.frame_count and index <= animation.to_frame

    async def _finish(self, animation: AnimationDefinition) -> None:
        self._state.playing = False
        animation.status = PlaybackStatus.DONE
        self._log.info(f"Animation '{animation.name}' done")
        await self.event_bus.publish(AnimationDoneEvent(self.id, animation.name))

    # ============================================================
    # Drawing
    # ============================================================

    async def _draw(self, animation: AnimationDefinition, index: int) -> bool:
        """Clear the surface and draw one frame; failures skip the frame."""
        frame = animation.frames[index]

        try:
            image = self.store.image(frame.image_url)
            if image is None:
                raise RenderError(animation.name, index, f"image '{frame.image_url}' is not in the store")

            self._ensure_surface()
            scale = 1.0 if self.ignore_atlas_scale else frame.scale

            self.renderer.clear()
            self.renderer.draw_frame(
                image,
                frame.rect,
                Offset(frame.sprite_source_offset.x / scale, frame.sprite_source_offset.y / scale),
                (frame.rect.w / scale, frame.rect.h / scale)
            )
            return True
        except RenderError as ex:
            error = ex
        except Exception as ex:
            error = RenderError(animation.name, index, f"{type(ex).__name__}: {ex}")

        self._render_log.error("Frame skipped", name=animation.name, frame=frame.name, reason=error.details["reason"])
        await self.event_bus.publish(RenderErrorEvent(self.id, error))
        return False

    def _ensure_surface(self) -> None:
        if self._surface_ready:
            return
        width, height = self.max_size()
        self.renderer.ensure_surface(width, height)
        self._surface_ready = True
        self._render_log.debug("Surface created", size=f"{width}x{height}")

    def max_size(self) -> Tuple[float, float]:
        """
        Surface size needed for every registered animation.

        A frame only raises the maximum when both its width and height
        exceed it.
        """
        width, height = 0.0, 0.0
        for animation in self._animations.values():
            for frame in animation.frames:
                if frame.source_size.w > width and frame.source_size.h > height:
                    scale = 1.0 if self.ignore_atlas_scale else frame.scale
                    width = frame.source_size.w / scale
                    height = frame.source_size.h / scale
        return width, height

    # ============================================================
    # Events and accessors
    # ============================================================

    def _own_events(self, event: Event) -> bool:
        return getattr(event, "engine_id", self.id) == self.id

    def on(self, event_type: EventType, handler: Callable[[Event], None], priority: int = 0) -> None:
        """Subscribe to this engine's events (and to shared loader events)"""
        self.event_bus.subscribe(event_type, handler, priority, filter_fn=self._own_events)
        self._subscriptions.append((event_type, handler))

    def once(self, event_type: EventType, handler: Callable[[Event], None], priority: int = 0) -> None:
        self.event_bus.once(event_type, handler, priority, filter_fn=self._own_events)
        self._subscriptions.append((event_type, handler))

    def off(self, event_type: EventType, handler: Callable[[Event], None]) -> bool:
        self._subscriptions = [(t, h) for t, h in self._subscriptions if not (t == event_type and h == handler)]
        return self.event_bus.unsubscribe(event_type, handler)

    @property
    def cache(self) -> AtlasStore:
        """The shared store (get/put/flush)"""
        return self.store

    def is_supported(self) -> bool:
        return self._supported and self.renderer.is_supported()

    def is_retina(self) -> bool:
        return self.retina

    @property
    def state(self) -> PlaybackState:
        """Snapshot of the playback cursor"""
        return replace(self._state)

    @property
    def is_ready(self) -> bool:
        return self._loaded

    def animation(self, name: str) -> Optional[AnimationDefinition]:
        return self._animations.get(name)

    def animations(self) -> List[str]:
        return list(self._animations)

    def _current(self) -> Optional[AnimationDefinition]:
        if self._state.animation_name is None:
            return None
        return self._animations.get(self._state.animation_name)
