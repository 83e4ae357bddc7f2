"""
Pydantic data models shared by the detector, the loops and the renderer.
"""
from __future__ import annotations
from enum import Enum
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# Fixed expression label set, in readout order
LABELS: Tuple[str, ...] = ("neutral", "happy", "angry", "sad", "disgusted", "surprised", "fearful")


class FitMode(str, Enum):
    CONTAIN = "contain"
    COVER = "cover"


class SessionPhase(str, Enum):
    NOT_STARTED = "not_started"
    AWAITING_READINESS = "awaiting_readiness"
    RUNNING = "running"
    ERRORED = "errored"


class Box(BaseModel):
    """Bounding box in raw-frame pixels (origin top-left, unmirrored)."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float = Field(ge=0)
    height: float = Field(ge=0)


class Point(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class Expressions(BaseModel):
    """Probability per expression label. Absent labels are 0.0; values need not sum to 1."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    neutral: float = Field(0.0, ge=0.0, le=1.0)
    happy: float = Field(0.0, ge=0.0, le=1.0)
    angry: float = Field(0.0, ge=0.0, le=1.0)
    sad: float = Field(0.0, ge=0.0, le=1.0)
    disgusted: float = Field(0.0, ge=0.0, le=1.0)
    surprised: float = Field(0.0, ge=0.0, le=1.0)
    fearful: float = Field(0.0, ge=0.0, le=1.0)

    def get(self, label: str) -> float:
        if label not in LABELS:
            raise KeyError(label)
        return float(getattr(self, label))


class Detection(BaseModel):
    """One recognised face in a frame."""
    model_config = ConfigDict(frozen=True)

    box: Box
    landmarks: Tuple[Point, ...] = ()
    expressions: Expressions = Field(default_factory=Expressions)
    score: float = Field(1.0, ge=0.0, le=1.0)
    descriptor: Optional[Tuple[float, ...]] = None


class SessionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: SessionPhase = SessionPhase.NOT_STARTED
    message: Optional[str] = None


class TextLine(BaseModel):
    """One line of screen-anchored text; (x, y) is the top of the line at the aligned edge."""
    text: str
    x: float
    y: float
    align: Literal["left", "right", "center"] = "left"
    size: float = 16.0


class DetectorConfig(BaseModel):
    with_landmarks: bool = True
    with_expressions: bool = True
    with_descriptors: bool = False
    min_confidence: float = Field(0.6, ge=0.0, le=1.0)


Snapshot = Tuple[Detection, ...]
