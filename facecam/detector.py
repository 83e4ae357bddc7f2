"""
Face / landmark / expression detector boundary.

The compositor only talks to the FaceDetector protocol. DeepFaceDetector is
the concrete adapter: DeepFace is imported lazily (heavy TF stack, and tests
inject a fake module), blocking calls run on daemon threads (an abandoned
call, e.g. after a load timeout, cannot keep the process alive), and every payload
is validated into Detection records before it leaves this module.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, runtime_checkable

import cv2
import numpy as np

from facecam.config import Settings
from facecam.errors import DetectionCycleFailure, ModelLoadFailure
from facecam.models import Box, Detection, DetectorConfig, Expressions, Point, Snapshot

logger = logging.getLogger(__name__)

# DeepFace emotion keys -> our label set
DEEPFACE_LABELS: Dict[str, str] = {
    "neutral": "neutral",
    "happy": "happy",
    "angry": "angry",
    "sad": "sad",
    "disgust": "disgusted",
    "surprise": "surprised",
    "fear": "fearful",
}


@runtime_checkable
class FaceDetector(Protocol):
    """Asynchronous face detector."""

    async def load(self) -> None:
        """Load models; raise on failure."""
        ...

    async def detect(self, frame: np.ndarray) -> Snapshot:
        """Detect faces in an RGBA frame."""
        ...


def run_in_daemon(fn: Callable[..., Any], *args: Any) -> asyncio.Future:
    """Run a blocking call on a daemon thread and resolve a future on the running loop.

    Unlike asyncio.to_thread the worker is not joined at loop shutdown, so a
    hung DeepFace call that the caller stopped waiting for does not block exit.
    """
    loop = asyncio.get_running_loop()
    fut = loop.create_future()

    def _settle(result: Any, exc: Optional[BaseException]) -> None:
        if fut.done():
            return
        if exc is not None:
            fut.set_exception(exc)
        else:
            fut.set_result(result)

    def _worker() -> None:
        try:
            result, exc = fn(*args), None
        except Exception as e:
            result, exc = None, e
        try:
            loop.call_soon_threadsafe(_settle, result, exc)
        except RuntimeError:
            # Loop already closed: nobody is waiting for this result any more
            logger.debug(f"[detect] dropped late result from {getattr(fn, '__name__', fn)}")

    threading.Thread(target=_worker, daemon=True).start()
    return fut


def detector_config_from_settings(settings: Settings) -> DetectorConfig:
    return DetectorConfig(
        with_landmarks=settings.WITH_LANDMARKS,
        with_expressions=settings.WITH_EXPRESSIONS,
        with_descriptors=settings.WITH_DESCRIPTORS,
        min_confidence=settings.MIN_CONFIDENCE,
    )


def _region_of(r: Dict[str, Any]) -> Dict[str, Any]:
    return (r or {}).get("region") or (r or {}).get("facial_area") or {}


def _same_region(a: Dict[str, Any], b: Dict[str, Any]) -> bool:
    return all(int(a.get(k, -1)) == int(b.get(k, -2)) for k in ("x", "y", "w", "h"))


def _to_expressions(emotion: Any) -> Expressions:
    if not isinstance(emotion, dict):
        return Expressions()
    probs = {}
    for key, value in emotion.items():
        label = DEEPFACE_LABELS.get(key)
        if label is None:
            continue
        # DeepFace reports percentages
        probs[label] = min(1.0, max(0.0, float(value) / 100.0))
    return Expressions(**probs)


def _to_landmarks(region: Dict[str, Any]) -> List[Point]:
    points = []
    for key in ("left_eye", "right_eye", "nose", "mouth_left", "mouth_right"):
        p = region.get(key)
        if p is None:
            continue
        points.append(Point(x=float(p[0]), y=float(p[1])))
    return points


def parse_analysis(results: Iterable[Dict[str, Any]],
                   frame_w: int,
                   frame_h: int,
                   config: DetectorConfig,
                   embeddings: Optional[List[Dict[str, Any]]] = None) -> Snapshot:
    """Convert DeepFace.analyze output into validated Detection records.

    Low-confidence faces are dropped, as is DeepFace's whole-frame region,
    which it returns when enforce_detection=False finds nothing.
    """
    out: List[Detection] = []
    for r in results or []:
        reg = _region_of(r)
        w, h = int(reg.get("w", 0)), int(reg.get("h", 0))
        if w <= 0 or h <= 0:
            continue
        if w >= frame_w and h >= frame_h:
            continue
        score = float(r.get("face_confidence", 1.0) or 0.0)
        if score < config.min_confidence:
            continue

        descriptor = None
        if config.with_descriptors and embeddings:
            for e in embeddings:
                if _same_region(_region_of(e), reg):
                    descriptor = tuple(float(v) for v in e.get("embedding") or ())
                    break

        out.append(Detection(
            box=Box(x=float(reg.get("x", 0)), y=float(reg.get("y", 0)), width=float(w), height=float(h)),
            landmarks=tuple(_to_landmarks(reg)) if config.with_landmarks else (),
            expressions=_to_expressions(r.get("emotion")) if config.with_expressions else Expressions(),
            score=min(1.0, max(0.0, score)),
            descriptor=descriptor,
        ))
    return tuple(out)


class DeepFaceDetector:
    """FaceDetector backed by DeepFace (emotion model + OpenCV face detector by default)."""
    def __init__(self, config: DetectorConfig | None = None, detector_backend: str = "opencv"):
        self.config = config or DetectorConfig()
        self.detector_backend = detector_backend
        self._df = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "DeepFaceDetector":
        return cls(detector_config_from_settings(settings), settings.DETECTOR_BACKEND)

    @property
    def loaded(self) -> bool:
        return self._df is not None

    async def load(self) -> None:
        await run_in_daemon(self._load_blocking)

    async def detect(self, frame: np.ndarray) -> Snapshot:
        if not self.loaded:
            raise DetectionCycleFailure("detector used before load()")
        bgr = cv2.cvtColor(frame, cv2.COLOR_RGBA2BGR)
        return await run_in_daemon(self._detect_blocking, bgr)

    # ---- blocking parts (worker thread) ----
    def _load_blocking(self) -> None:
        try:
            from deepface import DeepFace
        except Exception as e:
            raise ModelLoadFailure("DeepFace import failed. Ensure deepface/tensorflow stack is installed.") from e

        logger.debug(f"[detect] warming up DeepFace backend={self.detector_backend}")
        blank = np.zeros((64, 64, 3), dtype=np.uint8)
        try:
            # First analyze call builds and caches the emotion + detector models
            DeepFace.analyze(blank, actions=["emotion"], enforce_detection=False,
                             detector_backend=self.detector_backend)
            if self.config.with_descriptors:
                DeepFace.represent(img_path=blank, enforce_detection=False,
                                   detector_backend=self.detector_backend)
        except Exception as e:
            raise ModelLoadFailure(f"DeepFace model warm-up failed: {e}") from e
        self._df = DeepFace
        logger.debug("[detect] DeepFace ready")

    def _detect_blocking(self, bgr: np.ndarray) -> Snapshot:
        h, w = bgr.shape[:2]
        result = self._df.analyze(bgr, actions=["emotion"], enforce_detection=False,
                                  detector_backend=self.detector_backend)
        # DeepFace returns list[dict] or dict depending on version; normalize to list
        if isinstance(result, dict):
            result = [result]

        embeddings = None
        if self.config.with_descriptors:
            embeddings = self._df.represent(img_path=bgr, enforce_detection=False,
                                            detector_backend=self.detector_backend)
        return parse_analysis(result, w, h, self.config, embeddings)
