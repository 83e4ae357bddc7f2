import asyncio
import numpy as np
import pytest

from facecam.config import Settings
from facecam.models import Box, Detection, Expressions, Point


class FakeCapture:
    """Capture device stand-in: fixed RGBA frame, dimensions toggled by tests."""
    def __init__(self, width=320, height=240, ready=True):
        self.width, self.height = width, height
        self.ready = ready
        self.opened = False
        self.closed = False
        self.frame_calls = 0
        self._frame = np.zeros((height, width, 4), dtype=np.uint8)
        self._frame[..., 3] = 255

    def open(self):
        self.opened = True

    def close(self):
        self.closed = True

    def dimensions(self):
        return (self.width, self.height) if self.ready else (0, 0)

    def frame(self):
        self.frame_calls += 1
        return self._frame.copy() if self.ready else None


class StubDetector:
    """Scripted detector: each detect() pops the next item; Exceptions are raised."""
    def __init__(self, script=None, load_error=None, load_delay=0.0, detect_delay=0.0):
        self.script = list(script or [])
        self.load_error = load_error
        self.load_delay = load_delay
        self.detect_delay = detect_delay
        self.loads = 0
        self.calls = 0
        self.started_at = []

    async def load(self):
        self.loads += 1
        if self.load_delay:
            await asyncio.sleep(self.load_delay)
        if self.load_error is not None:
            raise self.load_error

    async def detect(self, frame):
        self.calls += 1
        self.started_at.append(asyncio.get_running_loop().time())
        if self.detect_delay:
            await asyncio.sleep(self.detect_delay)
        item = self.script.pop(0) if self.script else ()
        if isinstance(item, Exception):
            raise item
        return item


def make_detection(x=10, y=20, w=50, h=40, **probs):
    return Detection(
        box=Box(x=x, y=y, width=w, height=h),
        landmarks=(Point(x=x + 10, y=y + 10), Point(x=x + w - 10, y=y + 10)),
        expressions=Expressions(**probs),
    )


async def wait_until(pred, timeout=2.0):
    loop = asyncio.get_running_loop()
    end = loop.time() + timeout
    while not pred():
        if loop.time() > end:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def fast_settings():
    return Settings(CAMERA_POLL_MS=5, DETECT_INTERVAL_MS=10, MODEL_LOAD_TIMEOUT=2,
                    CAMERA_WAIT_SECONDS=5, CANVAS_WIDTH=800, CANVAS_HEIGHT=600,
                    MIRROR_CAMERA=True, FIT_MODE="contain")
