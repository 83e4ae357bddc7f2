"""Shared state read by the render loop every refresh.

Each field has exactly one writer:

- ``detections`` / ``last_error``: DetectionLoop
- ``styled_frame``: RenderLoop's recolor step
- ``session`` / ``frame_size`` / ``canvas_size`` / ``transform``: SessionStateMachine
- raw frames: the capture device (not stored here)

Everything runs on one asyncio loop, so plain attribute swaps are enough.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from facecam.models import SessionPhase, SessionState, Snapshot
from facecam.transform import Transform


@dataclass
class Context:
    session: SessionState = field(default_factory=SessionState)
    status: str = "TAP TO START"
    detections: Snapshot = ()
    last_error: str = ""
    styled_frame: Optional[np.ndarray] = None
    frame_size: Tuple[int, int] = (0, 0)
    canvas_size: Tuple[int, int] = (0, 0)
    transform: Optional[Transform] = None

    @property
    def phase(self) -> SessionPhase:
        return self.session.phase

    @property
    def frame_known(self) -> bool:
        return self.frame_size[0] > 0 and self.frame_size[1] > 0
