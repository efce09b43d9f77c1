"""
Camera capture for the focus monitor.

Wraps an OpenCV VideoCapture on a webcam (or a file/URL for testing) with a
background reader thread that always holds the most recent frame, so the
detection loop can sample "what the camera sees now" without blocking.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

import cv2
import numpy as np

from focuswatch.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Frame:
    """A captured video frame with metadata."""

    data: np.ndarray
    frame_number: int
    width: int
    height: int

    @property
    def shape(self) -> tuple[int, int, int]:
        """Return (height, width, channels)."""
        return self.data.shape


class CameraCapture:
    """
    Live frame source backed by cv2.VideoCapture.

    is_ready() turns True once the first frame has been decoded.
    get_current_frame() returns the latest frame without waiting.
    """

    def __init__(
        self,
        source: int | str = 0,
        frame_width: int = 640,
        frame_height: int = 480,
        read_retry_delay: float = 0.5,
    ):
        """
        Initialize camera capture.

        Args:
            source: Webcam index or a video path/URL
            frame_width: Requested capture width
            frame_height: Requested capture height
            read_retry_delay: Seconds to wait after a failed read
        """
        self.source = source
        self.frame_width = frame_width
        self.frame_height = frame_height
        self.read_retry_delay = read_retry_delay
        self._cap: cv2.VideoCapture | None = None
        self._frame_count = 0
        self._latest: Frame | None = None
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._reader: threading.Thread | None = None

    def connect(self) -> bool:
        """
        Open the camera and start the reader thread.

        Returns True if the device opened.
        """
        try:
            self._cap = cv2.VideoCapture(self.source)
            if not self._cap.isOpened():
                logger.error(f"Failed to open camera source {self.source!r}")
                self._cap = None
                return False

            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.frame_width)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.frame_height)
        except cv2.error as e:
            logger.error(f"Camera connection failed: {e}")
            self._cap = None
            return False

        self._stop_event.clear()
        self._reader = threading.Thread(target=self._read_loop, name="camera-reader", daemon=True)
        self._reader.start()
        logger.info(f"✅ Connected to camera {self.source!r}")
        return True

    def disconnect(self) -> None:
        """Stop the reader thread and release the device."""
        self._stop_event.set()
        if self._reader is not None:
            self._reader.join(timeout=2.0)
            self._reader = None

        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.debug("Disconnected from camera")

        with self._lock:
            self._latest = None

    def read_frame(self) -> Frame | None:
        """
        Read a single frame from the device.

        Returns None if the read fails.
        """
        cap = self._cap
        if cap is None:
            return None

        ret, data = cap.read()
        if not ret or data is None:
            return None

        self._frame_count += 1
        h, w = data.shape[:2]
        return Frame(data=data, frame_number=self._frame_count, width=w, height=h)

    def _read_loop(self) -> None:
        while not self._stop_event.is_set():
            frame = self.read_frame()
            if frame is None:
                logger.debug("Camera read failed, retrying")
                time.sleep(self.read_retry_delay)
                continue
            with self._lock:
                self._latest = frame

    def is_ready(self) -> bool:
        """True once at least one frame has been decoded."""
        with self._lock:
            return self._latest is not None

    def get_current_frame(self) -> Frame | None:
        """Most recent frame, or None before the first one arrives."""
        with self._lock:
            return self._latest

    @property
    def frame_count(self) -> int:
        """Total frames read."""
        return self._frame_count

    @property
    def is_connected(self) -> bool:
        """True if currently connected."""
        return self._cap is not None and self._cap.isOpened()
