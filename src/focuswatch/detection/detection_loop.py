"""
Periodic detection loop.

One DetectionLoop is one activation: it samples the camera every
interval, runs inference, and stops for good the first time the trigger
rule fires, handing a single DistractionEvent to on_trigger. stop() may
be called at any point; a tick that has not started yet never runs, and
a tick that is waiting on inference throws its result away.

The pause between ticks starts after the previous tick finishes, so the
real cadence is interval + inference time.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Protocol

from focuswatch.detection.capture import Frame
from focuswatch.detection.detect import Detection
from focuswatch.detection.events import DistractionEvent, MessageProvider, StaticMessageProvider
from focuswatch.detection.loop_types import LoopState
from focuswatch.detection.trigger import DEFAULT_RULE, TriggerRule
from focuswatch.utils.logger import get_logger

logger = get_logger(__name__)

DETECTION_INTERVAL_MS = 400


class FrameSource(Protocol):
    def is_ready(self) -> bool: ...

    def get_current_frame(self) -> Frame | None: ...


class Model(Protocol):
    async def detect(self, frame: Frame) -> list[Detection]: ...


class DetectionLoop:
    """
    Cancellable sample → infer → evaluate loop.

    States:
    - IDLE: created, start() not called yet
    - RUNNING: ticking
    - TRIGGERED: a distraction was emitted, no further ticks
    - STOPPED: stop() was called

    Usage:
        loop = DetectionLoop(camera, detector, on_trigger=handle)
        loop.start()
        state = await loop.wait()
    """

    def __init__(
        self,
        frame_source: FrameSource,
        model: Model | None,
        on_trigger: Callable[[DistractionEvent], None],
        interval_ms: float = DETECTION_INTERVAL_MS,
        rule: TriggerRule = DEFAULT_RULE,
        message_provider: MessageProvider | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            frame_source: Anything with is_ready() and get_current_frame()
            model: Anything with an async detect(frame); None skips inference
            on_trigger: Called exactly once when a distraction is caught
            interval_ms: Pause between the end of one tick and the next
            rule: Trigger thresholds
            message_provider: Builds the event message from the matching detection
            sleep: Coroutine used for the pause (swap out in tests)
            clock: Timestamp source for events
        """
        self.frame_source = frame_source
        self.model = model
        self.on_trigger = on_trigger
        self.interval_ms = interval_ms
        self.rule = rule
        self.message_provider = message_provider or StaticMessageProvider()
        self._sleep = sleep
        self._clock = clock

        self.state = LoopState.IDLE
        self.tick_count = 0
        self.event: DistractionEvent | None = None
        self._task: asyncio.Task | None = None
        self._stop_requested = False

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def is_active(self) -> bool:
        return self.state == LoopState.RUNNING

    # ──────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────────────────
    def start(self) -> asyncio.Task:
        """Schedule the loop on the running event loop. One start per instance."""
        if self.state != LoopState.IDLE:
            raise RuntimeError(f"Detection loop cannot start from state {self.state.value}")

        self.state = LoopState.RUNNING
        self._task = asyncio.create_task(self._run(), name="detection-loop")
        logger.info(f"Detection loop started (interval={self.interval_ms:.0f}ms)")
        return self._task

    def stop(self) -> None:
        """Halt the loop. No tick body runs after this returns."""
        if self.state == LoopState.STOPPED:
            return

        self._stop_requested = True
        self.state = LoopState.STOPPED
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.info(f"Detection loop stopped after {self.tick_count} ticks")

    async def wait(self) -> LoopState:
        """
        Wait for the loop to trigger or be stopped.

        Re-raises anything on_trigger raised.
        """
        if self._task is None:
            return self.state

        await asyncio.wait({self._task})
        if not self._task.cancelled():
            self._task.result()
        return self.state

    async def _run(self) -> None:
        try:
            while True:
                await self._sleep(self.interval_seconds)
                if self._stop_requested:
                    return
                if await self.tick():
                    return
                if self._stop_requested:
                    return
        except asyncio.CancelledError:
            logger.debug("Detection loop task cancelled")
            raise

    # ──────────────────────────────────────────────────────────────────────────
    # Tick
    # ──────────────────────────────────────────────────────────────────────────
    def _sample(self) -> Frame | None:
        if self.model is None:
            logger.debug("No model yet, skipping tick")
            return None
        if not self.frame_source.is_ready():
            logger.debug("Camera not ready, skipping tick")
            return None
        return self.frame_source.get_current_frame()

    async def tick(self) -> bool:
        """
        Run one sample → infer → evaluate pass.

        Returns:
            True if this tick caught a distraction (the loop must not continue)
        """
        if self.state in (LoopState.TRIGGERED, LoopState.STOPPED):
            return False

        self.tick_count += 1
        frame = self._sample()
        if frame is None:
            return False

        try:
            detections = await self.model.detect(frame)
        except Exception as e:
            logger.warning(f"Inference failed on tick {self.tick_count}: {e}")
            detections = []

        if self._stop_requested:
            logger.debug("Stopped during inference, discarding result")
            return False

        self._log_candidates(detections, frame.height)

        match = self.rule.first_match(detections, frame.height)
        if match is None:
            return False

        self._trigger(match, frame)
        return True

    def _log_candidates(self, detections: list[Detection], frame_height: int) -> None:
        for d in detections:
            if self.rule.is_watched(d) and self.rule.is_confident(d):
                upper = self.rule.is_upper_region(d, frame_height)
                logger.debug(
                    f"Found {d.class_name} ({d.confidence * 100:.1f}%) at y={d.y:.0f}, "
                    f"upper region: {'YES' if upper else 'NO'}"
                )

    def _trigger(self, detection: Detection, frame: Frame) -> None:
        self.state = LoopState.TRIGGERED
        self.event = DistractionEvent(
            message=self.message_provider(detection),
            detection=detection,
            timestamp=self._clock(),
            frame=frame,
        )
        logger.event(
            f"📱 Distraction: {detection.class_name} "
            f"({detection.confidence:.2f}) on tick {self.tick_count}"
        )
        self.on_trigger(self.event)
