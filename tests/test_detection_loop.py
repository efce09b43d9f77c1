"""
Tests for the detection loop.

Ticks are paced by an injected sleep so nothing here depends on wall-clock
timing.
"""

import asyncio

import numpy as np
import pytest

from focuswatch.detection.capture import Frame
from focuswatch.detection.detect import Detection
from focuswatch.detection.detection_loop import DETECTION_INTERVAL_MS, DetectionLoop
from focuswatch.detection.events import StaticMessageProvider
from focuswatch.detection.loop_types import LoopState

PHONE = Detection(class_name="cell phone", confidence=0.9, bbox=(10, 50, 100, 150))
BOOK = Detection(class_name="book", confidence=0.9, bbox=(10, 50, 100, 150))


class FakeCamera:
    def __init__(self, height=480, ready=True):
        data = np.zeros((height, 640, 3), dtype=np.uint8)
        self.frame = Frame(data=data, frame_number=1, width=640, height=height)
        self.ready = ready

    def is_ready(self):
        return self.ready

    def get_current_frame(self):
        return self.frame


class ScriptedModel:
    """Returns scripted detection sets in order; exceptions in the script are raised."""

    def __init__(self, script):
        self.script = list(script)
        self.calls = 0

    async def detect(self, frame):
        self.calls += 1
        item = self.script.pop(0) if self.script else []
        if isinstance(item, Exception):
            raise item
        return item


class FakeSleep:
    """Records each pause; stops the loop once max_sleeps is exceeded."""

    def __init__(self, max_sleeps=50):
        self.delays = []
        self.max_sleeps = max_sleeps
        self.loop = None

    async def __call__(self, seconds):
        self.delays.append(seconds)
        if len(self.delays) > self.max_sleeps:
            self.loop.stop()
        await asyncio.sleep(0)


def make_loop(model, camera=None, sleep=None, **kwargs):
    events = []
    sleep = sleep or FakeSleep()
    loop = DetectionLoop(
        frame_source=camera or FakeCamera(),
        model=model,
        on_trigger=events.append,
        sleep=sleep,
        **kwargs,
    )
    if isinstance(sleep, FakeSleep):
        sleep.loop = loop
    return loop, events, sleep


def run_to_end(loop):
    async def scenario():
        loop.start()
        return await loop.wait()

    return asyncio.run(scenario())


class TestLifecycle:
    """State transitions and start/stop rules."""

    def test_initial_state(self):
        loop, _, _ = make_loop(ScriptedModel([]))
        assert loop.state == LoopState.IDLE
        assert loop.tick_count == 0
        assert loop.event is None

    def test_default_interval(self):
        loop, _, _ = make_loop(ScriptedModel([]))
        assert DETECTION_INTERVAL_MS == 400
        assert loop.interval_seconds == pytest.approx(0.4)

    def test_pauses_use_interval(self):
        loop, _, sleep = make_loop(ScriptedModel([[], [], [PHONE]]))
        run_to_end(loop)
        assert sleep.delays == [0.4, 0.4, 0.4]

    def test_cannot_start_twice(self):
        loop, _, _ = make_loop(ScriptedModel([[PHONE]]))

        async def scenario():
            loop.start()
            with pytest.raises(RuntimeError):
                loop.start()
            await loop.wait()

        asyncio.run(scenario())

    def test_cannot_restart_after_trigger(self):
        loop, _, _ = make_loop(ScriptedModel([[PHONE]]))
        run_to_end(loop)

        async def scenario():
            with pytest.raises(RuntimeError):
                loop.start()

        asyncio.run(scenario())

    def test_stop_before_start(self):
        loop, events, _ = make_loop(ScriptedModel([[PHONE]]))
        loop.stop()
        assert loop.state == LoopState.STOPPED
        assert asyncio.run(loop.wait()) == LoopState.STOPPED
        assert events == []

    def test_stop_is_idempotent(self):
        loop, _, _ = make_loop(ScriptedModel([]))
        loop.stop()
        loop.stop()
        assert loop.state == LoopState.STOPPED


class TestTrigger:
    """At-most-once trigger behavior."""

    def test_triggers_once_and_stops_ticking(self):
        model = ScriptedModel([[], [BOOK], [PHONE], [PHONE], [PHONE]])
        loop, events, sleep = make_loop(model)

        state = run_to_end(loop)

        assert state == LoopState.TRIGGERED
        assert len(events) == 1
        assert model.calls == 3
        assert loop.tick_count == 3
        assert len(sleep.delays) == 3

    def test_event_payload(self):
        loop, events, _ = make_loop(
            ScriptedModel([[BOOK, PHONE]]),
            message_provider=StaticMessageProvider("get back to it"),
        )
        run_to_end(loop)

        event = events[0]
        assert event is loop.event
        assert event.message == "get back to it"
        assert event.detection is PHONE
        assert event.frame.height == 480
        assert event.to_dict()["detection"]["class_name"] == "cell phone"

    def test_default_message_is_not_empty(self):
        loop, events, _ = make_loop(ScriptedModel([[PHONE]]))
        run_to_end(loop)
        assert isinstance(events[0].message, str)
        assert events[0].message

    def test_uses_frame_height_for_spatial_gate(self):
        """y=50 is in the lower half of a 90px frame."""
        model = ScriptedModel([[PHONE]])
        loop, events, sleep = make_loop(model, camera=FakeCamera(height=90), sleep=FakeSleep(3))

        state = run_to_end(loop)

        assert state == LoopState.STOPPED
        assert events == []

    def test_manual_ticks_after_trigger_do_nothing(self):
        model = ScriptedModel([[PHONE], [PHONE]])
        loop, events, _ = make_loop(model)

        async def scenario():
            assert await loop.tick() is True
            assert await loop.tick() is False

        asyncio.run(scenario())
        assert len(events) == 1
        assert model.calls == 1
        assert loop.state == LoopState.TRIGGERED

    def test_on_trigger_error_surfaces_from_wait(self):
        def explode(event):
            raise ValueError("sink broke")

        loop = DetectionLoop(
            frame_source=FakeCamera(),
            model=ScriptedModel([[PHONE]]),
            on_trigger=explode,
            sleep=FakeSleep(),
        )
        with pytest.raises(ValueError, match="sink broke"):
            run_to_end(loop)
        assert loop.state == LoopState.TRIGGERED


class TestGuards:
    """Ticks without a frame or a model skip inference."""

    def test_camera_not_ready_skips_inference(self):
        model = ScriptedModel([[PHONE]])
        loop, events, _ = make_loop(model, camera=FakeCamera(ready=False), sleep=FakeSleep(5))

        state = run_to_end(loop)

        assert state == LoopState.STOPPED
        assert model.calls == 0
        assert loop.tick_count == 5
        assert events == []

    def test_no_model_skips_inference(self):
        loop, events, _ = make_loop(None, sleep=FakeSleep(3))
        assert run_to_end(loop) == LoopState.STOPPED
        assert loop.tick_count == 3
        assert events == []

    def test_camera_becoming_ready_starts_inference(self):
        camera = FakeCamera(ready=False)
        model = ScriptedModel([[PHONE]])

        async def sleep(seconds):
            camera.ready = len(calls) >= 2
            calls.append(seconds)
            await asyncio.sleep(0)

        calls = []
        loop, events, _ = make_loop(model, camera=camera, sleep=sleep)

        assert run_to_end(loop) == LoopState.TRIGGERED
        assert loop.tick_count == 3
        assert model.calls == 1


class TestResilience:
    """A failing inference call never ends monitoring."""

    def test_failed_inference_is_followed_by_another_tick(self):
        model = ScriptedModel([RuntimeError("bad frame"), [PHONE]])
        loop, events, sleep = make_loop(model)

        state = run_to_end(loop)

        assert state == LoopState.TRIGGERED
        assert model.calls == 2
        assert len(sleep.delays) == 2
        assert len(events) == 1

    def test_failed_tick_reports_no_trigger(self):
        loop, events, _ = make_loop(ScriptedModel([RuntimeError("boom")]))

        async def scenario():
            return await loop.tick()

        assert asyncio.run(scenario()) is False
        assert events == []

    def test_repeated_failures_keep_running(self):
        model = ScriptedModel([RuntimeError("x")] * 4 + [[PHONE]])
        loop, events, _ = make_loop(model)

        assert run_to_end(loop) == LoopState.TRIGGERED
        assert model.calls == 5
        assert len(events) == 1

    def test_failure_is_logged(self, caplog):
        loop, _, _ = make_loop(ScriptedModel([RuntimeError("bad frame"), [PHONE]]))
        with caplog.at_level("WARNING"):
            run_to_end(loop)
        assert any("bad frame" in r.message for r in caplog.records)


class TestCancellation:
    """stop() halts the loop with no further ticks."""

    def test_stop_during_gap(self):
        model = ScriptedModel([[], [], [PHONE]])
        async def scenario():
            blocked = asyncio.Event()
            pauses = []

            async def sleep(seconds):
                pauses.append(seconds)
                if len(pauses) > 2:
                    await blocked.wait()  # third pause never ends on its own

            loop, events, _ = make_loop(model, sleep=sleep)
            loop.start()
            while len(pauses) < 3:
                await asyncio.sleep(0)

            loop.stop()
            state = await loop.wait()
            blocked.set()
            await asyncio.sleep(0.05)
            return loop, events, state

        loop, events, state = asyncio.run(scenario())

        assert state == LoopState.STOPPED
        assert loop.tick_count == 2
        assert model.calls == 2
        assert events == []

    def test_stop_from_within_pause_prevents_next_tick(self):
        model = ScriptedModel([[], [PHONE]])
        loop, events, sleep = make_loop(model, sleep=FakeSleep(max_sleeps=1))

        assert run_to_end(loop) == LoopState.STOPPED
        assert model.calls == 1
        assert events == []

    def test_stop_during_inference_discards_result(self):
        holder = {}

        class StoppingModel:
            calls = 0

            async def detect(self, frame):
                self.calls += 1
                holder["loop"].stop()
                return [PHONE]

        model = StoppingModel()
        loop, events, _ = make_loop(model)
        holder["loop"] = loop

        assert run_to_end(loop) == LoopState.STOPPED
        assert model.calls == 1
        assert events == []

    def test_stop_while_inference_pending(self):
        async def scenario():
            started = asyncio.Event()
            release = asyncio.Event()

            class SlowModel:
                async def detect(self, frame):
                    started.set()
                    await release.wait()
                    return [PHONE]

            loop, events, _ = make_loop(SlowModel())
            loop.start()
            await started.wait()
            loop.stop()
            release.set()
            state = await loop.wait()
            return state, events

        state, events = asyncio.run(scenario())
        assert state == LoopState.STOPPED
        assert events == []

    def test_fresh_loop_after_stop(self):
        model = ScriptedModel([[PHONE]])
        first, _, _ = make_loop(model)
        first.stop()

        second, events, _ = make_loop(model)
        assert second.state == LoopState.IDLE
        assert run_to_end(second) == LoopState.TRIGGERED
        assert len(events) == 1
