"""
Configuration for the live face-filter compositor.
"""
from pydantic import BaseModel
import os


def _env_bool(name: str, default: str) -> bool:
    return (os.getenv(name, default) or default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))
    # Requested capture size; the device may negotiate something else
    IDEAL_WIDTH: int = int(os.getenv("IDEAL_WIDTH", "320"))
    IDEAL_HEIGHT: int = int(os.getenv("IDEAL_HEIGHT", "240"))
    MIRROR_CAMERA: bool = _env_bool("MIRROR_CAMERA", "true")
    FIT_MODE: str = (os.getenv("FIT_MODE", "contain") or "contain")

    # Cadences
    DETECT_INTERVAL_MS: int = int(os.getenv("DETECT_INTERVAL_MS", "450"))
    PROCESS_EVERY_N_FRAMES: int = int(os.getenv("PROCESS_EVERY_N_FRAMES", "3"))
    CAMERA_POLL_MS: int = int(os.getenv("CAMERA_POLL_MS", "120"))
    REFRESH_HZ: float = float(os.getenv("REFRESH_HZ", "60"))

    # Readiness limits
    CAMERA_WAIT_SECONDS: float = float(os.getenv("CAMERA_WAIT_SECONDS", "10"))
    MODEL_LOAD_TIMEOUT: float = float(os.getenv("MODEL_LOAD_TIMEOUT", "60"))

    # Detector
    DETECTOR_BACKEND: str = os.getenv("DETECTOR_BACKEND", "opencv")
    MIN_CONFIDENCE: float = float(os.getenv("MIN_CONFIDENCE", "0.6"))
    WITH_LANDMARKS: bool = _env_bool("WITH_LANDMARKS", "true")
    WITH_EXPRESSIONS: bool = _env_bool("WITH_EXPRESSIONS", "true")
    WITH_DESCRIPTORS: bool = _env_bool("WITH_DESCRIPTORS", "false")

    # Display
    CANVAS_WIDTH: int = int(os.getenv("CANVAS_WIDTH", "960"))
    CANVAS_HEIGHT: int = int(os.getenv("CANVAS_HEIGHT", "720"))
    WINDOW_NAME: str = os.getenv("WINDOW_NAME", "facecam (tap to start, q to quit)")
    RECOLOR_GAIN: float = float(os.getenv("RECOLOR_GAIN", "1.05"))

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize FIT_MODE: lower-case, fall back to contain
        mode = (self.FIT_MODE or "contain").strip().lower()
        if mode not in ("contain", "cover"):
            mode = "contain"
        object.__setattr__(self, "FIT_MODE", mode)
        object.__setattr__(self, "PROCESS_EVERY_N_FRAMES", max(1, int(self.PROCESS_EVERY_N_FRAMES)))
