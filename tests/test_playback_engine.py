"""
Tests for PlaybackEngine: readiness, deferred play, frame advance timing,
looping, completion, stop/dispose and error reporting.

Time is driven by ManualClock: each tick() releases one frame interval.
"""

import pytest
from unittest.mock import MagicMock

from sprite_animation.engine.playback_engine import PlaybackEngine
from sprite_animation.managers.config_manager import SpriteAnimationConfig, PlaybackConfig, ResolverConfig
from sprite_animation.models.enums import PlaybackStatus
from sprite_animation.models.events import EventType
from sprite_animation.services.atlas_loader import AtlasLoader

from conftest import FRAME_SIZE, ICON_URLS, FakeFetcher, atlas_document, icon_frames, image_asset, settle


async def make_ready(engine, urls=ICON_URLS):
    await engine.load(urls)
    await engine.wait_ready()


async def icon_loop(engine):
    await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 1, 30)
    await make_ready(engine)


def drawn_frames(renderer):
    """Names of drawn frames, recovered from the source rect and image"""
    names = []
    for call in renderer.draw_frame.call_args_list:
        image, src_rect = call.args[0], call.args[1]
        position = src_rect.x // FRAME_SIZE
        first = 1 if image.url.endswith("icon-0.png") else 4
        names.append(first + position)
    return names


class TestReadiness:

    @pytest.mark.asyncio
    async def test_animation_registered_before_load_is_unresolved(self, engine):
        await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 1, 30)

        assert engine.animation("icon-loop").status is PlaybackStatus.UNRESOLVED
        assert engine.animation("icon-loop").frames == ()

    @pytest.mark.asyncio
    async def test_readiness_resolves_multipacked_frames(self, engine, collect):
        ready = collect(EventType.SPRITE_READY)

        await icon_loop(engine)

        animation = engine.animation("icon-loop")
        assert animation.status is PlaybackStatus.IDLE
        assert [f.name for f in animation.frames] == icon_frames(1, 5)
        assert (animation.from_frame, animation.to_frame) == (0, 4)
        assert len(ready) == 1
        assert ready[0].engine_id == engine.id
        assert engine.is_ready

    @pytest.mark.asyncio
    async def test_later_load_extends_resolved_frames(self, engine):
        await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 1, 30)
        await make_ready(engine, ["sprites/icon-0.json"])
        assert engine.animation("icon-loop").frame_count == 3

        await make_ready(engine, ["sprites/icon-1.json"])

        animation = engine.animation("icon-loop")
        assert [f.name for f in animation.frames] == icon_frames(1, 5)
        assert (animation.from_frame, animation.to_frame) == (0, 4)
        assert animation.status is PlaybackStatus.IDLE

    @pytest.mark.asyncio
    async def test_later_load_keeps_running_window(self, engine, renderer, clock):
        await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 1, 30)
        await make_ready(engine, ["sprites/icon-0.json"])
        await engine.play("icon-loop", loop=True, from_frame=1)

        await make_ready(engine, ["sprites/icon-1.json"])

        animation = engine.animation("icon-loop")
        assert animation.frame_count == 5
        assert (animation.from_frame, animation.to_frame) == (1, 2)
        assert animation.status is PlaybackStatus.PLAYING
        assert engine.state.playing

        await clock.tick(2)
        assert drawn_frames(renderer) == [2, 3, 2]
        await engine.stop()

    @pytest.mark.asyncio
    async def test_animation_added_after_ready_resolves_immediately(self, engine):
        await make_ready(engine)

        await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 1, 30)

        assert engine.animation("icon-loop").frame_count == 5

    @pytest.mark.asyncio
    async def test_unmatched_pattern_reports_resolution_error(self, engine, collect):
        errors = collect(EventType.RESOLUTION_ERROR)
        await engine.add_animation("walk", "walk_%%.png", "%", 1, 12)

        await make_ready(engine)

        assert len(errors) == 1
        assert errors[0].name == "walk"
        assert engine.animation("walk").frames == ()
        assert engine.animation("walk").status is PlaybackStatus.IDLE

    @pytest.mark.asyncio
    async def test_non_positive_fps_rejected(self, engine):
        with pytest.raises(ValueError):
            await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 1, 0)

    @pytest.mark.asyncio
    async def test_engines_share_one_fetch(self, store, loader, fetcher, event_bus, clock):
        first = PlaybackEngine(store, loader, _renderer(), event_bus, sleep=clock.sleep)
        second = PlaybackEngine(store, loader, _renderer(), event_bus, sleep=clock.sleep)

        await first.load(ICON_URLS)
        await second.load(ICON_URLS)
        await first.wait_ready()
        await second.wait_ready()

        assert sorted(fetcher.json_calls) == sorted(ICON_URLS)
        assert first.is_ready and second.is_ready

    @pytest.mark.asyncio
    async def test_retina_engine_loads_retina_urls(self, store, loader, fetcher, event_bus):
        fetcher.documents["sprites/icon@2x.json"] = atlas_document("icon@2x.png", icon_frames(1, 5))
        fetcher.images["sprites/icon@2x.png"] = image_asset("sprites/icon@2x.png")
        engine = PlaybackEngine(store, loader, _renderer(), event_bus, retina=True)

        await engine.load(ICON_URLS, retina_urls=["sprites/icon@2x.json"])
        await engine.wait_ready()

        assert engine.is_retina()
        assert fetcher.json_calls == ["sprites/icon@2x.json"]


class TestPlayback:

    @pytest.mark.asyncio
    async def test_icon_loop_scenario(self, engine, renderer, clock, collect):
        loops = collect(EventType.ANIMATION_LOOP)
        done = collect(EventType.ANIMATION_DONE)
        await icon_loop(engine)

        await engine.play("icon-loop", True, 0, 2)
        # first frame is drawn before play() returns
        assert drawn_frames(renderer) == [1]

        await clock.tick(5)

        assert drawn_frames(renderer) == [1, 2, 3, 1, 2, 3]
        assert clock.delays == [pytest.approx(1 / 30)] * len(clock.delays)
        assert len(loops) == 1
        assert done == []

        await engine.stop()

    @pytest.mark.asyncio
    async def test_loop_window_emits_loop_on_every_wrap(self, engine, renderer, clock, collect):
        loops = collect(EventType.ANIMATION_LOOP)
        done = collect(EventType.ANIMATION_DONE)
        await icon_loop(engine)

        await engine.play("icon-loop", loop=True, from_frame=2, to_frame=4)
        await clock.tick(6)

        # indices 2,3,4,2,3,4,2
        assert drawn_frames(renderer) == [3, 4, 5, 3, 4, 5, 3]
        assert [e.name for e in loops] == ["icon-loop", "icon-loop"]
        assert done == []
        assert engine.animation("icon-loop").status is PlaybackStatus.LOOPING

        await engine.stop()

    @pytest.mark.asyncio
    async def test_non_looping_play_finishes_once(self, engine, renderer, clock, collect):
        done = collect(EventType.ANIMATION_DONE)
        await icon_loop(engine)

        await engine.play("icon-loop")
        await clock.tick(8)

        assert drawn_frames(renderer) == [1, 2, 3, 4, 5]
        assert [e.name for e in done] == ["icon-loop"]
        assert engine.state.playing is False
        assert engine.animation("icon-loop").status is PlaybackStatus.DONE
        assert clock.sleeping == 0

    @pytest.mark.asyncio
    async def test_started_event_carries_window(self, engine, collect):
        started = collect(EventType.ANIMATION_STARTED)
        await icon_loop(engine)

        await engine.play("icon-loop", loop=True, from_frame=1, to_frame=3)

        assert (started[0].from_frame, started[0].to_frame, started[0].loop) == (1, 3, True)
        await engine.stop()

    @pytest.mark.asyncio
    async def test_frame_names_as_bounds(self, engine, renderer):
        await icon_loop(engine)

        await engine.play("icon-loop", from_frame="icon-loop_02.png", to_frame="icon-loop_04.png")

        animation = engine.animation("icon-loop")
        assert (animation.from_frame, animation.to_frame) == (1, 3)
        assert drawn_frames(renderer) == [2]
        await engine.stop()

    @pytest.mark.asyncio
    async def test_unknown_frame_name_falls_back_to_default_bound(self, engine):
        await icon_loop(engine)

        await engine.play("icon-loop", from_frame="nope.png", to_frame="missing.png")

        animation = engine.animation("icon-loop")
        assert (animation.from_frame, animation.to_frame) == (0, 4)
        await engine.stop()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bounds, window", [
        ((-1, None), (0, 4)),
        ((-5, -2), (0, 0)),
        ((7, 9), (4, 4)),
        ((1, 99), (1, 4)),
    ])
    async def test_index_bounds_are_clamped(self, engine, renderer, bounds, window):
        await icon_loop(engine)

        await engine.play("icon-loop", loop=True, from_frame=bounds[0], to_frame=bounds[1])

        animation = engine.animation("icon-loop")
        assert (animation.from_frame, animation.to_frame) == window
        assert engine.state.frame_index == window[0]
        assert engine.state.playing
        assert drawn_frames(renderer) == [window[0] + 1]
        await engine.stop()

    @pytest.mark.asyncio
    async def test_unknown_animation_is_ignored(self, engine, renderer):
        await make_ready(engine)

        await engine.play("nope")

        renderer.draw_frame.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_loop_window_finishes(self, engine, renderer, clock, collect):
        done = collect(EventType.ANIMATION_DONE)
        loops = collect(EventType.ANIMATION_LOOP)
        await icon_loop(engine)

        await engine.play("icon-loop", loop=True, from_frame=3, to_frame=1)

        renderer.draw_frame.assert_not_called()
        assert loops == []
        assert len(done) == 1
        assert clock.sleeping == 0

    @pytest.mark.asyncio
    async def test_new_play_supersedes_running_schedule(self, engine, renderer, clock):
        await icon_loop(engine)

        await engine.play("icon-loop", loop=True, from_frame=0, to_frame=1)
        await clock.tick(1)
        await engine.play("icon-loop", loop=True, from_frame=3, to_frame=4)
        await settle()
        renderer.draw_frame.reset_mock()

        await clock.tick(4)

        assert clock.sleeping == 1
        assert drawn_frames(renderer) == [5, 4, 5, 4]
        await engine.stop()

    @pytest.mark.asyncio
    async def test_stale_schedule_is_noop(self, engine, renderer, clock):
        await icon_loop(engine)
        await engine.play("icon-loop", loop=True)
        await settle()
        stale_generation = engine.state.generation

        await engine.play("icon-loop", loop=True)
        renderer.draw_frame.reset_mock()

        # an old schedule resumed after the restart must not draw
        await engine._step(stale_generation)
        renderer.draw_frame.assert_not_called()
        await engine.stop()


class TestDeferredPlay:

    @pytest.mark.asyncio
    async def test_play_before_ready_starts_on_ready(self, engine, renderer, clock):
        await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 1, 30)

        await engine.play("icon-loop", loop=True, from_frame=1, to_frame=3)
        assert engine.animation("icon-loop").pending is not None
        renderer.draw_frame.assert_not_called()

        await make_ready(engine)

        animation = engine.animation("icon-loop")
        assert animation.pending is None
        assert (animation.from_frame, animation.to_frame, animation.loop) == (1, 3, True)
        assert drawn_frames(renderer) == [2]
        assert engine.state.playing

        await clock.tick(3)
        assert drawn_frames(renderer) == [2, 3, 4, 2]
        await engine.stop()

    @pytest.mark.asyncio
    async def test_newer_deferred_play_supersedes_older(self, engine, renderer):
        await engine.add_animation("intro", "icon-loop_%%.png", "%", 4, 30)
        await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 1, 30)

        await engine.play("intro")
        await engine.play("icon-loop", loop=True)
        assert engine.animation("intro").pending is None

        await make_ready(engine)

        assert engine.state.animation_name == "icon-loop"
        await engine.stop()

    @pytest.mark.asyncio
    async def test_reregister_keeps_pending_play(self, engine, renderer):
        await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 1, 30)
        await engine.play("icon-loop", loop=True)

        await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 1, 15)
        await make_ready(engine)

        assert engine.state.playing
        assert engine.state.frame_interval_ms == pytest.approx(1000 / 15)
        await engine.stop()

    @pytest.mark.asyncio
    async def test_stop_clears_pending_play(self, engine, renderer):
        await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 1, 30)
        await engine.play("icon-loop")

        await engine.stop()
        await make_ready(engine)

        renderer.draw_frame.assert_not_called()
        assert not engine.state.playing


class TestStopAndDispose:

    @pytest.mark.asyncio
    async def test_stop_halts_advance(self, engine, renderer, clock, collect):
        stopped = collect(EventType.ANIMATION_STOPPED)
        await icon_loop(engine)
        await engine.play("icon-loop", loop=True)
        await clock.tick(1)

        await engine.stop()
        drawn = len(renderer.draw_frame.call_args_list)
        await clock.tick(3)

        assert len(renderer.draw_frame.call_args_list) == drawn
        assert engine.state.stopped and not engine.state.playing
        assert engine.animation("icon-loop").status is PlaybackStatus.STOPPED
        assert stopped[0].name == "icon-loop"
        assert stopped[0].cleared is False

    @pytest.mark.asyncio
    async def test_stop_with_clear_erases_surface(self, engine, renderer):
        await icon_loop(engine)
        await engine.play("icon-loop")
        renderer.clear.reset_mock()

        await engine.stop(clear=True)

        renderer.clear.assert_called_once()

    @pytest.mark.asyncio
    async def test_play_after_stop_restarts(self, engine, renderer, clock):
        await icon_loop(engine)
        await engine.play("icon-loop", loop=True)
        await engine.stop()

        await engine.play("icon-loop", from_frame=3)

        assert engine.state.playing and not engine.state.stopped
        assert drawn_frames(renderer)[-1] == 4
        await engine.stop()

    @pytest.mark.asyncio
    async def test_stop_from_loop_handler(self, engine, renderer, clock):
        await icon_loop(engine)

        async def on_loop(event):
            await engine.stop()

        engine.on(EventType.ANIMATION_LOOP, on_loop)
        await engine.play("icon-loop", loop=True, from_frame=0, to_frame=1)
        await clock.tick(4)

        assert drawn_frames(renderer) == [1, 2]
        assert engine.state.stopped
        assert clock.sleeping == 0

    @pytest.mark.asyncio
    async def test_dispose_releases_surface_and_disables_engine(self, engine, renderer, event_bus, clock):
        await icon_loop(engine)
        engine.on(EventType.ANIMATION_DONE, lambda e: None)
        await engine.play("icon-loop", loop=True)

        await engine.dispose()
        renderer.draw_frame.reset_mock()
        await engine.play("icon-loop")
        await engine.set_frame(2)
        await clock.tick(2)

        renderer.release.assert_called_once()
        renderer.draw_frame.assert_not_called()
        assert event_bus.handler_count(EventType.ANIMATION_DONE) == 0

    @pytest.mark.asyncio
    async def test_dispose_keeps_shared_store(self, engine, store):
        await icon_loop(engine)

        await engine.dispose()

        assert store.has("sprites/icon-0.json")


class TestSetFrame:

    @pytest.mark.asyncio
    async def test_set_frame_draws_single_frame(self, engine, renderer):
        await icon_loop(engine)
        engine.set_animation("icon-loop")

        await engine.set_frame(2.4)

        assert engine.state.frame_index == 2
        assert drawn_frames(renderer) == [3]
        assert engine.state.playing is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["3", None, float("nan"), -1, 5, True])
    async def test_invalid_frame_is_noop(self, engine, renderer, value):
        await icon_loop(engine)
        engine.set_animation("icon-loop")

        await engine.set_frame(value)

        renderer.draw_frame.assert_not_called()
        assert engine.state.frame_index == 0

    @pytest.mark.asyncio
    async def test_set_frame_during_playback_continues_from_there(self, engine, renderer, clock):
        await icon_loop(engine)
        await engine.play("icon-loop", loop=True)

        await engine.set_frame(3)
        await clock.tick(1)

        assert drawn_frames(renderer) == [1, 4, 5]
        assert engine.state.playing
        await engine.stop()


class TestDrawing:

    @pytest.mark.asyncio
    async def test_surface_created_once_at_max_size(self, engine, renderer):
        await icon_loop(engine)

        await engine.play("icon-loop")
        await engine.set_frame(1)

        renderer.ensure_surface.assert_called_once_with(float(FRAME_SIZE), float(FRAME_SIZE))

    @pytest.mark.asyncio
    async def test_max_size_needs_both_dimensions_larger(self, store, event_bus, clock):
        fetcher = FakeFetcher(
            documents={
                "s/wide.json": atlas_document("wide.png", ["wide_1.png"], size=(32, 8)),
                "s/big.json": atlas_document("big.png", ["big_1.png"], size=(24, 24)),
            },
            images={"s/wide.png": image_asset("s/wide.png"), "s/big.png": image_asset("s/big.png")},
        )
        engine = PlaybackEngine(store, AtlasLoader(store, fetcher, event_bus), _renderer(), event_bus, sleep=clock.sleep)
        await engine.add_animation("wide", "wide_#.png", "#", 1, 10)
        await engine.add_animation("big", "big_#.png", "#", 1, 10)
        await make_ready(engine, ["s/wide.json", "s/big.json"])

        # 24x24 is taller but not wider than 32x8
        assert engine.max_size() == (32.0, 8.0)

    @pytest.mark.asyncio
    async def test_atlas_scale_applied_when_not_ignored(self, store, event_bus, clock):
        fetcher = FakeFetcher(
            documents={"s/hd.json": atlas_document("hd.png", ["hd_1.png"], size=(32, 32), scale="2")},
            images={"s/hd.png": image_asset("s/hd.png")},
        )
        renderer = _renderer()
        engine = PlaybackEngine(
            store, AtlasLoader(store, fetcher, event_bus), renderer, event_bus,
            ignore_atlas_scale=False, sleep=clock.sleep
        )
        await engine.add_animation("hd", "hd_#.png", "#", 1, 10)
        await make_ready(engine, ["s/hd.json"])

        await engine.play("hd")

        renderer.ensure_surface.assert_called_once_with(16.0, 16.0)
        dst_offset, dst_size = renderer.draw_frame.call_args.args[2:]
        assert dst_size == (16.0, 16.0)
        assert (dst_offset.x, dst_offset.y) == (0.0, 0.0)

    @pytest.mark.asyncio
    async def test_flushed_image_reports_render_error_and_keeps_playing(self, engine, renderer, store, clock, collect):
        errors = collect(EventType.RENDER_ERROR)
        await icon_loop(engine)
        store.flush(["sprites/icon-1.json"])

        await engine.play("icon-loop", loop=True, from_frame=2, to_frame=4)
        await clock.tick(2)

        # frames 4 and 5 lived in the flushed atlas
        assert drawn_frames(renderer) == [3]
        assert len(errors) == 2
        assert errors[0].error.frame_index == 3
        assert engine.state.playing
        await engine.stop()

    @pytest.mark.asyncio
    async def test_renderer_failure_skips_tick(self, engine, renderer, clock, collect):
        errors = collect(EventType.RENDER_ERROR)
        await icon_loop(engine)
        renderer.draw_frame.side_effect = RuntimeError("context lost")

        await engine.play("icon-loop", loop=True)
        await clock.tick(1)

        assert len(errors) == 2
        assert "context lost" in errors[0].error.message
        assert engine.state.playing and clock.sleeping == 1
        await engine.stop()

    @pytest.mark.asyncio
    async def test_set_offset_delegates_to_renderer(self, engine, renderer):
        engine.set_offset(10, -4)

        renderer.set_offset.assert_called_once_with(10, -4)


class TestEnvironmentAndEvents:

    @pytest.mark.asyncio
    async def test_unsupported_surface_disables_engine(self, engine, renderer, fetcher, collect):
        unsupported = collect(EventType.ENVIRONMENT_UNSUPPORTED)
        renderer.is_supported.return_value = False

        await engine.load(ICON_URLS)
        await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 1, 30)
        await engine.play("icon-loop")
        await settle()

        assert len(unsupported) == 1
        assert not engine.is_supported()
        assert fetcher.json_calls == []
        assert engine.animation("icon-loop") is None

    @pytest.mark.asyncio
    async def test_on_receives_only_own_events(self, store, loader, event_bus, clock):
        first = PlaybackEngine(store, loader, _renderer(), event_bus, sleep=clock.sleep)
        second = PlaybackEngine(store, loader, _renderer(), event_bus, sleep=clock.sleep)
        received = []
        first.on(EventType.ANIMATION_DONE, received.append)

        for engine in (first, second):
            await engine.add_animation("icon-loop", "icon-loop_%%.png", "%", 4, 30)
            await make_ready(engine)
            await engine.play("icon-loop")
        await clock.tick(3)

        assert [e.engine_id for e in received] == [first.id]

    @pytest.mark.asyncio
    async def test_once_and_off(self, engine, clock):
        await icon_loop(engine)
        once_calls, on_calls = [], []
        engine.once(EventType.ANIMATION_STARTED, once_calls.append)
        engine.on(EventType.ANIMATION_STARTED, on_calls.append)

        await engine.play("icon-loop")
        await engine.play("icon-loop")
        engine.off(EventType.ANIMATION_STARTED, on_calls.append)
        await engine.play("icon-loop")

        assert len(once_calls) == 1
        assert len(on_calls) == 2
        await engine.stop()

    @pytest.mark.asyncio
    async def test_cache_is_the_shared_store(self, engine, store):
        assert engine.cache is store

    @pytest.mark.asyncio
    async def test_state_is_a_snapshot(self, engine):
        await icon_loop(engine)
        engine.set_animation("icon-loop")

        snapshot = engine.state
        snapshot.frame_index = 3

        assert engine.state.frame_index == 0


class TestFromConfig:

    def test_engine_built_from_config(self, store, loader, renderer, event_bus):
        config = SpriteAnimationConfig(
            resolver=ResolverConfig(max_attempts=50),
            playback=PlaybackConfig(ignore_atlas_scale=False),
        )

        engine = PlaybackEngine.from_config(config, store, loader, renderer, event_bus)

        assert engine.resolver.max_attempts == 50
        assert engine.ignore_atlas_scale is False
        assert engine.is_retina() is False


def _renderer():
    renderer = MagicMock()
    renderer.is_supported.return_value = True
    return renderer
