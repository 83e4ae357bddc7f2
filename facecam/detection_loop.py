"""
Self-rescheduling detection loop.

One cycle = grab frame -> await detector -> swap snapshot, then sleep a fixed
delay measured from cycle completion. A slow detector therefore slows the
polling rate instead of building a backlog. Failures keep the previous
snapshot and never end the loop.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from facecam.capture import CaptureDevice
from facecam.context import Context
from facecam.detector import FaceDetector
from facecam.errors import DetectionCycleFailure, FacecamError

logger = logging.getLogger(__name__)

DETECTION_ERROR_MESSAGE = "Face detection error. Check the camera and try again."


class DetectionLoop:
    def __init__(self, context: Context, detector: FaceDetector, capture: CaptureDevice,
                 interval: float = 0.45):
        self.ctx = context
        self.detector = detector
        self.capture = capture
        self.interval = float(interval)
        self.cycles = 0
        self.failures = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Schedule the loop on the running event loop; no-op if already started."""
        if self._task is not None:
            return False
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug(f"[detect] loop started interval={self.interval}s")
        return True

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await self.run_cycle()
            await asyncio.sleep(self.interval)

    async def run_cycle(self) -> bool:
        """Run one detection pass. Returns True when the snapshot was replaced."""
        self.cycles += 1
        try:
            frame = self.capture.frame()
            if frame is None:
                raise DetectionCycleFailure("no camera frame available")
            result = tuple(await self.detector.detect(frame))
        except FacecamError as e:
            # Expected failure kinds (no frame yet, detector refused): no traceback
            self._record_failure()
            logger.warning(f"[detect] cycle {self.cycles} failed: {e}; keeping {len(self.ctx.detections)} detections")
            return False
        except Exception:
            self._record_failure()
            logger.exception(f"[detect] cycle {self.cycles} failed; keeping {len(self.ctx.detections)} detections")
            return False

        # Whole-tuple swap: readers see the old or the new snapshot, never a mix
        self.ctx.detections = result
        self.ctx.last_error = ""
        logger.debug(f"[detect] cycle {self.cycles} faces={len(result)}")
        return True

    def _record_failure(self) -> None:
        self.failures += 1
        self.ctx.last_error = DETECTION_ERROR_MESSAGE
