import asyncio

import pytest

from conftest import FakeCapture, StubDetector, wait_until
from facecam.config import Settings
from facecam.context import Context
from facecam.models import SessionPhase
import facecam.session as session_mod
from facecam.session import SessionStateMachine


class FakeLoop:
    def __init__(self):
        self.starts = 0
        self.stopped = False

    def start(self):
        self.starts += 1
        return True

    async def stop(self):
        self.stopped = True


def _machine(settings, capture=None, detector=None):
    ctx = Context()
    made = []

    def factory():
        made.append(FakeLoop())
        return made[-1]

    sm = SessionStateMachine(ctx, capture or FakeCapture(), detector or StubDetector(), factory, settings)
    sm.on_resize(settings.CANVAS_WIDTH, settings.CANVAS_HEIGHT)
    return sm, ctx, made


def test_double_gesture_transitions_once_and_starts_one_loop(fast_settings):
    sm, ctx, made = _machine(fast_settings)

    async def scenario():
        assert ctx.phase is SessionPhase.NOT_STARTED
        assert sm.start() is True
        assert sm.start() is False
        assert ctx.phase is SessionPhase.AWAITING_READINESS
        await wait_until(lambda: ctx.phase is SessionPhase.RUNNING)
        assert sm.start() is False
        await sm.close()

    asyncio.run(scenario())
    assert len(made) == 1
    assert made[0].starts == 1
    assert made[0].stopped
    assert ctx.status == session_mod.STATUS_RUNNING


def test_running_requires_camera_and_models(fast_settings):
    cap = FakeCapture(ready=False)
    det = StubDetector(load_delay=0.05)
    sm, ctx, made = _machine(fast_settings, cap, det)

    async def scenario():
        sm.begin()
        sm.start()
        assert ctx.status == session_mod.STATUS_LOADING
        await wait_until(lambda: sm.models_ready)
        await asyncio.sleep(0.03)
        assert ctx.phase is SessionPhase.AWAITING_READINESS
        assert ctx.status == session_mod.STATUS_CAMERA
        assert ctx.transform is None
        assert made == []

        cap.ready = True
        await wait_until(lambda: ctx.phase is SessionPhase.RUNNING)
        await sm.close()

    asyncio.run(scenario())
    assert det.loads == 1
    assert len(made) == 1
    assert ctx.frame_size == (320, 240)
    assert ctx.transform.scale == pytest.approx(2.5)
    assert ctx.transform.mirror is True


def test_models_ready_before_gesture_shows_tap_prompt(fast_settings):
    sm, ctx, made = _machine(fast_settings)

    async def scenario():
        sm.begin()
        await wait_until(lambda: sm.models_ready and sm.camera_ready)
        assert ctx.phase is SessionPhase.NOT_STARTED
        assert ctx.status == session_mod.STATUS_TAP
        assert made == []
        sm.start()
        assert ctx.phase is SessionPhase.RUNNING
        await sm.close()

    asyncio.run(scenario())


def test_model_load_failure_is_terminal(fast_settings):
    sm, ctx, made = _machine(fast_settings, detector=StubDetector(load_error=RuntimeError("no weights")))

    async def scenario():
        sm.start()
        await wait_until(lambda: ctx.phase is SessionPhase.ERRORED)
        await asyncio.sleep(0.02)
        assert sm.start() is False
        await sm.close()

    asyncio.run(scenario())
    assert ctx.phase is SessionPhase.ERRORED
    assert ctx.session.message == session_mod.MODEL_ERROR_MESSAGE
    assert ctx.status == session_mod.MODEL_ERROR_MESSAGE
    assert made == []


def test_model_load_timeout_errors():
    s = Settings(CAMERA_POLL_MS=5, MODEL_LOAD_TIMEOUT=0.05)
    sm, ctx, made = _machine(s, detector=StubDetector(load_delay=5.0))

    async def scenario():
        sm.start()
        await wait_until(lambda: ctx.phase is SessionPhase.ERRORED)
        await sm.close()

    asyncio.run(scenario())
    assert made == []


def test_camera_unavailable_is_a_status_not_an_error():
    s = Settings(CAMERA_POLL_MS=5, CAMERA_WAIT_SECONDS=0.02)
    cap = FakeCapture(ready=False)
    sm, ctx, made = _machine(s, capture=cap)

    async def scenario():
        sm.start()
        await wait_until(lambda: sm.camera_unavailable)
        assert ctx.phase is SessionPhase.AWAITING_READINESS
        assert ctx.status == session_mod.STATUS_NO_CAMERA
        # polling continues: a late camera still gets picked up
        cap.ready = True
        await wait_until(lambda: ctx.phase is SessionPhase.RUNNING)
        await sm.close()

    asyncio.run(scenario())
    assert len(made) == 1


def test_resize_recomputes_transform():
    sm, ctx, _ = _machine(Settings(CAMERA_POLL_MS=5, FIT_MODE="cover", MIRROR_CAMERA=False,
                                   CANVAS_WIDTH=800, CANVAS_HEIGHT=600))

    async def scenario():
        sm.begin()
        await wait_until(lambda: sm.camera_ready)
        await sm.close()

    asyncio.run(scenario())
    assert ctx.transform.scale == pytest.approx(2.5)
    sm.on_resize(640, 960)
    assert ctx.canvas_size == (640, 960)
    assert ctx.transform.scale == pytest.approx(4.0)
    assert ctx.transform.offset_x == pytest.approx((640 - 1280) / 2)
