"""
OpenCV capture device.

Frames are read on a daemon thread and published by swapping a single
reference, so readers always get a complete frame. Dimensions stay 0x0 until
the first frame arrives: the requested width/height are only hints, the real
size is whatever the driver delivers.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Tuple

import cv2
import numpy as np

from facecam.config import Settings
from facecam.errors import CameraUnavailable

logger = logging.getLogger(__name__)


class CaptureDevice:
    """Continuously updating RGBA frame source."""
    def __init__(self, index: int = 0, width_hint: int | None = None, height_hint: int | None = None):
        self.index = index
        self.width_hint = width_hint
        self.height_hint = height_hint
        self._cap = None
        self._run = False
        self._thread: Optional[threading.Thread] = None
        self._latest: Optional[np.ndarray] = None
        self._frames = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "CaptureDevice":
        return cls(settings.CAMERA_INDEX, settings.IDEAL_WIDTH, settings.IDEAL_HEIGHT)

    # ---- lifecycle ----
    def open(self) -> None:
        if self._run:
            return
        cap = cv2.VideoCapture(self.index)
        if not cap.isOpened():
            raise CameraUnavailable(f"Could not open camera index {self.index}")
        if self.width_hint:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, int(self.width_hint))
        if self.height_hint:
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, int(self.height_hint))
        logger.debug(f"[capture] opened index={self.index} hint={self.width_hint}x{self.height_hint}")

        self._cap = cap
        self._run = True
        self._thread = threading.Thread(target=self._read_loop, daemon=True)
        self._thread.start()

    def close(self) -> None:
        self._run = False
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        logger.debug(f"[capture] closed after {self._frames} frames")

    # ---- queries ----
    def dimensions(self) -> Tuple[int, int]:
        frame = self._latest
        if frame is None:
            return 0, 0
        h, w = frame.shape[:2]
        return int(w), int(h)

    def frame(self) -> Optional[np.ndarray]:
        """Latest frame as a fresh (H, W, 4) RGBA array, or None before the first frame."""
        frame = self._latest
        return None if frame is None else frame.copy()

    # ---- reader ----
    def _read_loop(self) -> None:
        while self._run:
            ok, bgr = self._cap.read()
            if not ok or bgr is None:
                time.sleep(0.05)
                continue
            self._publish(bgr)

    def _publish(self, bgr: np.ndarray) -> None:
        self._latest = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGBA)
        self._frames += 1
