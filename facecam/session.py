"""
Session state machine.

    NOT_STARTED --gesture--> AWAITING_READINESS --camera+models--> RUNNING
    any --detector init failure--> ERRORED (terminal)

Camera readiness is polled (frame size becomes non-zero); model readiness is a
single awaited load with a timeout. Entering RUNNING starts the detection
loop exactly once.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional

from facecam.capture import CaptureDevice
from facecam.config import Settings
from facecam.context import Context
from facecam.detection_loop import DetectionLoop
from facecam.detector import FaceDetector
from facecam.models import FitMode, SessionPhase, SessionState
from facecam.transform import compute_transform

logger = logging.getLogger(__name__)

STATUS_TAP = "TAP TO START"
STATUS_LOADING = "LOADING FACE MODELS…"
STATUS_CAMERA = "STARTING CAMERA…"
STATUS_NO_CAMERA = "CAMERA UNAVAILABLE…"
STATUS_RUNNING = "RUNNING"
MODEL_ERROR_MESSAGE = "Face models failed to load. Restart to try again."


class SessionStateMachine:
    def __init__(self,
                 context: Context,
                 capture: CaptureDevice,
                 detector: FaceDetector,
                 loop_factory: Callable[[], DetectionLoop],
                 settings: Settings):
        self.ctx = context
        self.capture = capture
        self.detector = detector
        self.loop_factory = loop_factory
        self.s = settings
        self.camera_ready = False
        self.models_ready = False
        self.camera_unavailable = False
        self.detection_loop: Optional[DetectionLoop] = None
        self._tasks: List[asyncio.Task] = []
        self._begun = False
        self._refresh_status()

    @property
    def phase(self) -> SessionPhase:
        return self.ctx.session.phase

    # ---- inputs ----
    def begin(self) -> None:
        """Kick off model loading and camera polling (before any gesture)."""
        if self._begun:
            return
        self._begun = True
        loop = asyncio.get_running_loop()
        self._tasks.append(loop.create_task(self._load_models()))
        self._tasks.append(loop.create_task(self._poll_camera()))

    def start(self) -> bool:
        """User start gesture. Only the first one counts."""
        if self.phase is not SessionPhase.NOT_STARTED:
            return False
        self._set_phase(SessionPhase.AWAITING_READINESS)
        self.begin()
        self._maybe_run()
        return True

    def on_resize(self, width: int, height: int) -> None:
        self.ctx.canvas_size = (int(width), int(height))
        self._update_transform()

    def fail(self, message: str) -> None:
        if self.phase is SessionPhase.ERRORED:
            return
        logger.error(f"[session] errored: {message}")
        self.ctx.session = SessionState(phase=SessionPhase.ERRORED, message=message)
        self._refresh_status()

    async def close(self) -> None:
        for t in self._tasks:
            t.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        if self.detection_loop is not None:
            await self.detection_loop.stop()

    # ---- readiness ----
    async def _load_models(self) -> None:
        try:
            await asyncio.wait_for(self.detector.load(), timeout=self.s.MODEL_LOAD_TIMEOUT)
        except asyncio.TimeoutError:
            logger.error(f"[session] model load timed out after {self.s.MODEL_LOAD_TIMEOUT}s")
            self.fail(MODEL_ERROR_MESSAGE)
            return
        except Exception:
            logger.exception("[session] model load failed")
            self.fail(MODEL_ERROR_MESSAGE)
            return
        logger.debug("[session] models ready")
        self.models_ready = True
        self._refresh_status()
        self._maybe_run()

    async def _poll_camera(self) -> None:
        t0 = time.monotonic()
        interval = self.s.CAMERA_POLL_MS / 1000.0
        while True:
            w, h = self.capture.dimensions()
            if w and h:
                self._on_camera_ready(w, h)
                return
            if not self.camera_unavailable and (time.monotonic() - t0) >= self.s.CAMERA_WAIT_SECONDS:
                logger.warning(f"[session] no camera frames after {self.s.CAMERA_WAIT_SECONDS}s; still polling")
                self.camera_unavailable = True
                self._refresh_status()
            await asyncio.sleep(interval)

    def _on_camera_ready(self, width: int, height: int) -> None:
        logger.debug(f"[session] camera ready {width}x{height}")
        self.ctx.frame_size = (int(width), int(height))
        self.camera_ready = True
        self.camera_unavailable = False
        self._update_transform()
        self._refresh_status()
        self._maybe_run()

    def _maybe_run(self) -> None:
        if self.phase is not SessionPhase.AWAITING_READINESS:
            return
        if not (self.camera_ready and self.models_ready):
            return
        self._set_phase(SessionPhase.RUNNING)
        if self.detection_loop is None:
            self.detection_loop = self.loop_factory()
            self.detection_loop.start()

    # ---- derived state ----
    def _set_phase(self, phase: SessionPhase) -> None:
        logger.info(f"[session] {self.phase.value} -> {phase.value}")
        self.ctx.session = SessionState(phase=phase)
        self._refresh_status()

    def _update_transform(self) -> None:
        cw, ch = self.ctx.canvas_size
        if not self.ctx.frame_known or cw <= 0 or ch <= 0:
            return
        fw, fh = self.ctx.frame_size
        self.ctx.transform = compute_transform(cw, ch, fw, fh, FitMode(self.s.FIT_MODE), self.s.MIRROR_CAMERA)

    def status_line(self) -> str:
        phase = self.phase
        if phase is SessionPhase.ERRORED:
            return self.ctx.session.message or MODEL_ERROR_MESSAGE
        if phase is SessionPhase.RUNNING:
            return STATUS_RUNNING
        if not self.models_ready:
            return STATUS_LOADING
        if phase is SessionPhase.NOT_STARTED:
            return STATUS_TAP
        if not self.camera_ready:
            return STATUS_NO_CAMERA if self.camera_unavailable else STATUS_CAMERA
        return STATUS_RUNNING

    def _refresh_status(self) -> None:
        self.ctx.status = self.status_line()
