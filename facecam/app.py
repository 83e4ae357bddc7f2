"""
Application wiring: OpenCV window + asyncio event loop.

The render task and the detection task share one event loop, so they never
run at the same time. Mouse/key callbacks fire inside cv2.waitKey, i.e. on the
same loop, and feed the start gesture to the session state machine.
Press 'q' or Esc to quit.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

import cv2

from facecam.capture import CaptureDevice
from facecam.config import Settings
from facecam.context import Context
from facecam.detection_loop import DetectionLoop
from facecam.detector import DeepFaceDetector, FaceDetector
from facecam.errors import CameraUnavailable
from facecam.recolor import RecolorFilter
from facecam.render import RenderLoop
from facecam.session import SessionStateMachine

logger = logging.getLogger(__name__)

QUIT_KEYS = (ord("q"), 27)
START_KEYS = (ord(" "),)


class App:
    def __init__(self, settings: Settings,
                 capture: Optional[CaptureDevice] = None,
                 detector: Optional[FaceDetector] = None):
        self.s = settings
        self.ctx = Context()
        self.capture = capture or CaptureDevice.from_settings(settings)
        self.detector = detector or DeepFaceDetector.from_settings(settings)
        self.session = SessionStateMachine(self.ctx, self.capture, self.detector,
                                           self._make_detection_loop, settings)
        self.render = RenderLoop(self.ctx, self.capture, RecolorFilter.from_settings(settings), settings)
        self._quit = False

    def _make_detection_loop(self) -> DetectionLoop:
        return DetectionLoop(self.ctx, self.detector, self.capture,
                             interval=self.s.DETECT_INTERVAL_MS / 1000.0)

    # ---- input boundary ----
    def on_mouse(self, event, x, y, flags, param) -> None:
        if event == cv2.EVENT_LBUTTONDOWN:
            self.session.start()

    def on_key(self, key: int) -> None:
        if key in QUIT_KEYS:
            self._quit = True
        elif key in START_KEYS:
            self.session.start()

    # ---- display boundary ----
    def sync_canvas_size(self) -> None:
        try:
            _, _, w, h = cv2.getWindowImageRect(self.s.WINDOW_NAME)
        except cv2.error:
            return
        if w > 0 and h > 0 and (w, h) != self.ctx.canvas_size:
            logger.debug(f"[app] canvas resized to {w}x{h}")
            self.session.on_resize(w, h)

    def window_closed(self) -> bool:
        try:
            return cv2.getWindowProperty(self.s.WINDOW_NAME, cv2.WND_PROP_VISIBLE) < 1
        except cv2.error:
            return True

    # ---- main loop ----
    async def run(self, max_frames: Optional[int] = None) -> None:
        try:
            self.capture.open()
        except CameraUnavailable:
            # Status text reports it once the readiness poll gives up waiting
            logger.exception("[app] camera open failed")

        name = self.s.WINDOW_NAME
        cv2.namedWindow(name, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(name, self.s.CANVAS_WIDTH, self.s.CANVAS_HEIGHT)
        cv2.setMouseCallback(name, self.on_mouse)

        self.session.on_resize(self.s.CANVAS_WIDTH, self.s.CANVAS_HEIGHT)
        self.session.begin()

        frame_dt = 1.0 / max(1.0, self.s.REFRESH_HZ)
        frames = 0
        try:
            while not self._quit:
                t0 = time.monotonic()
                self.sync_canvas_size()
                cv2.imshow(name, self.render.tick())
                self.on_key(cv2.waitKey(1) & 0xFF)
                frames += 1
                if max_frames is not None and frames >= max_frames:
                    break
                if not self._quit and self.window_closed():
                    break
                # Yield to the detection task for the rest of the refresh interval
                await asyncio.sleep(max(0.0, frame_dt - (time.monotonic() - t0)))
        finally:
            await self.session.close()
            self.capture.close()
            cv2.destroyAllWindows()
            logger.debug(f"[app] exit after {frames} frames")


def run_app(settings: Settings) -> None:
    asyncio.run(App(settings).run())
