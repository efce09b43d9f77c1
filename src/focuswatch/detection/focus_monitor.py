"""
Focus monitoring from the command line.

Opens the camera, loads the detector, and keeps a DetectionLoop watching
until it catches a distraction. With rearm_seconds > 0 a fresh loop is
started after the pause, otherwise the monitor stops on the first catch.
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Awaitable, Callable

from focuswatch.detection.capture import CameraCapture
from focuswatch.detection.detect import DEFAULT_MODEL_PATH, PhoneDetector
from focuswatch.detection.detection_loop import DETECTION_INTERVAL_MS, DetectionLoop
from focuswatch.detection.event_handler import DistractionEventHandler
from focuswatch.detection.events import (
    DEFAULT_TRIGGER_MESSAGE,
    DistractionEvent,
    StaticMessageProvider,
)
from focuswatch.detection.loader import ModelLoader, ModelLoadError
from focuswatch.detection.loop_types import LoopState, ModelStatus
from focuswatch.detection.session import FocusSession
from focuswatch.detection.trigger import DEFAULT_RULE, TriggerRule
from focuswatch.utils.config import load_config
from focuswatch.utils.logger import get_logger, set_level, setup_logging_from_config
from focuswatch.utils.notifications import NotificationManager

logger = get_logger(__name__)


class FocusMonitor:
    """
    Runs focus monitoring for one session.

    Orchestrates:
    - CameraCapture: live frames from the webcam
    - ModelLoader: one-time YOLO load with status reporting
    - DetectionLoop: one per activation, replaced after each re-arm
    - DistractionEventHandler: logging, snapshots, notifications
    - FocusSession: in-memory distraction count
    """

    def __init__(
        self,
        camera_source: int | str = 0,
        frame_width: int = 640,
        frame_height: int = 480,
        model_path: str = DEFAULT_MODEL_PATH,
        inference_confidence: float = 0.25,
        interval_ms: float = DETECTION_INTERVAL_MS,
        rule: TriggerRule = DEFAULT_RULE,
        trigger_message: str = DEFAULT_TRIGGER_MESSAGE,
        rearm_seconds: float = 0,
        event_handler: DistractionEventHandler | None = None,
        on_status_change: Callable[[ModelStatus], None] | None = None,
        capture: CameraCapture | None = None,
        loader: ModelLoader | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self.capture = capture or CameraCapture(
            camera_source, frame_width=frame_width, frame_height=frame_height
        )
        self.loader = loader or ModelLoader(
            model_path=model_path,
            inference_confidence=inference_confidence,
        )
        self.loader.on_status_change = self._on_status_change
        self.event_handler = event_handler or DistractionEventHandler()
        self.interval_ms = interval_ms
        self.rule = rule
        self.message_provider = StaticMessageProvider(trigger_message)
        self.rearm_seconds = rearm_seconds
        self.session = FocusSession()

        self.loop: DetectionLoop | None = None
        self._status_sink = on_status_change
        self._sleep = sleep
        self._stopping = False
        self._stop_event = asyncio.Event()

    @classmethod
    def from_config(cls, config: dict, **kwargs) -> FocusMonitor:
        return cls(
            camera_source=config.get("camera_source", 0),
            frame_width=config.get("frame_width", 640),
            frame_height=config.get("frame_height", 480),
            model_path=config.get("model_path", DEFAULT_MODEL_PATH),
            inference_confidence=config.get("inference_confidence", 0.25),
            interval_ms=config.get("detection_interval_ms", DETECTION_INTERVAL_MS),
            rule=TriggerRule.from_config(config),
            trigger_message=config.get("trigger_message", DEFAULT_TRIGGER_MESSAGE),
            rearm_seconds=config.get("rearm_seconds", 0),
            event_handler=DistractionEventHandler(
                notifications=NotificationManager(config),
                snapshots_dir=config.get("snapshots_dir", "snapshots"),
                save_snapshots=config.get("save_snapshots", True),
            ),
            **kwargs,
        )

    @property
    def state(self) -> LoopState:
        """LOADING while the model loads, otherwise the current loop's state."""
        if self.loader.status == ModelStatus.LOADING:
            return LoopState.LOADING
        if self.loop is None:
            return LoopState.IDLE
        return self.loop.state

    def _on_status_change(self, status: ModelStatus) -> None:
        logger.info(f"Model status: {status.value} ({self.loader.status_text})")
        if self._status_sink is not None:
            self._status_sink(status)

    def _handle_trigger(self, event: DistractionEvent) -> None:
        message = self.session.record(event)
        self.event_handler.handle_event(event)
        logger.info(f"💬 {message} (distraction #{self.session.distraction_count})")

    def _new_loop(self, detector: PhoneDetector) -> DetectionLoop:
        return DetectionLoop(
            frame_source=self.capture,
            model=detector,
            on_trigger=self._handle_trigger,
            interval_ms=self.interval_ms,
            rule=self.rule,
            message_provider=self.message_provider,
        )

    def stop(self) -> None:
        """Stop monitoring; the active loop runs no further ticks."""
        self._stopping = True
        self._stop_event.set()
        if self.loop is not None:
            self.loop.stop()

    async def _pause(self, seconds: float) -> None:
        """Sleep between activations, returning early if stop() is called."""
        pause = asyncio.ensure_future(self._sleep(seconds))
        stopped = asyncio.ensure_future(self._stop_event.wait())
        try:
            await asyncio.wait({pause, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pause.cancel()
            stopped.cancel()

    async def run(self) -> int:
        """
        Monitor until stopped, or until the first distraction when not re-arming.

        Returns:
            Process exit code (1 if the camera or model could not be started)
        """
        logger.info("=" * 60)
        logger.info("Starting Focus Monitoring")
        logger.info(f"Camera: {self.capture.source!r}")
        logger.info(f"Watching: {', '.join(sorted(self.rule.watched_classes))}")
        logger.info(
            f"Confidence > {self.rule.confidence_threshold}, "
            f"top edge above {self.rule.upper_region_fraction:.0%} of frame height"
        )
        logger.info(f"Interval: {self.interval_ms:.0f}ms, re-arm: {self.rearm_seconds}s")
        logger.info("=" * 60)

        if not self.capture.connect():
            logger.error("Camera unavailable, not starting detection")
            return 1

        try:
            try:
                detector = await self.loader.load()
            except ModelLoadError as e:
                logger.error(f"{self.loader.status_text} ({e})")
                return 1

            while not self._stopping:
                self.loop = self._new_loop(detector)
                self.loop.start()
                state = await self.loop.wait()

                if state != LoopState.TRIGGERED or self.rearm_seconds <= 0:
                    break

                logger.info(f"⏸️  Back to work. Watching again in {self.rearm_seconds}s")
                await self._pause(self.rearm_seconds)
            return 0

        finally:
            if self.loop is not None and self.loop.is_active:
                self.loop.stop()
            self.capture.disconnect()
            logger.event(f"📊 Session: {self.session.summary()}")
            logger.info("Monitoring stopped")


def _parse_camera(value: str) -> int | str:
    return int(value) if value.isdigit() else value


def main(argv: list[str] | None = None) -> int:
    """Entry point for focus monitoring with CLI support."""
    parser = argparse.ArgumentParser(
        description="Watch the webcam and call you out when your phone comes up",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Default webcam:       focuswatch
  Second camera:        focuswatch --camera 1
  Keep watching:        focuswatch --rearm 30
  Custom config:        focuswatch --config my_config.yaml
        """,
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "--camera",
        type=_parse_camera,
        help="Webcam index or video path/URL (overrides camera_source)",
    )
    parser.add_argument(
        "--rearm",
        type=float,
        metavar="SECONDS",
        help="Start watching again this long after a catch (0 = stop)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log_level from config",
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    if args.camera is not None:
        config["camera_source"] = args.camera
    if args.rearm is not None:
        config["rearm_seconds"] = args.rearm
    setup_logging_from_config(config)
    if args.log_level:
        set_level(args.log_level)

    monitor = FocusMonitor.from_config(config)
    try:
        return asyncio.run(monitor.run())
    except KeyboardInterrupt:
        logger.info("⏸️  Monitor interrupted by user")
        return 0
    except Exception as e:
        logger.error(f"Monitor failed: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    raise SystemExit(main())
