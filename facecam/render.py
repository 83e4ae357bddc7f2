"""
Per-refresh render loop.

Before RUNNING only a centred status message is drawn. While RUNNING the
recolor filter runs on every Nth tick (and once up front so there is always a
styled frame), the styled frame is composited through the current transform,
then boxes/landmarks and the bottom expression readouts go on top. Readouts
use fixed screen anchors, not the camera transform.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np

from facecam.capture import CaptureDevice
from facecam.config import Settings
from facecam.context import Context
from facecam.models import LABELS, Detection, SessionPhase, TextLine
from facecam.recolor import RecolorFilter
from facecam.visual import draw_boxes, draw_frame, draw_landmarks, draw_text_lines, new_canvas

logger = logging.getLogger(__name__)

MARGIN = 16
LINE_H = 20
TEXT_SIZE = 16.0
STATUS_SIZE = 22.0
HINT_SIZE = 13.0
ERROR_SIZE = 12.0
MAX_READOUTS = 2
NO_FACE_TEXT = "No face detected"
HINT_TEXT = "If stuck: check camera permissions and CAMERA_INDEX"


def status_lines(width: int, height: int, message: str) -> List[TextLine]:
    return [
        TextLine(text=message, x=width / 2.0, y=height / 2.0 - STATUS_SIZE / 2.0,
                 align="center", size=STATUS_SIZE),
        TextLine(text=HINT_TEXT, x=width / 2.0, y=height / 2.0 + 40 - HINT_SIZE / 2.0,
                 align="center", size=HINT_SIZE),
    ]


def _expression_block(index: int, det: Detection, x: float, y: float, align: str) -> List[TextLine]:
    lines = [TextLine(text=f"FACE {index + 1}", x=x, y=y, align=align, size=TEXT_SIZE)]
    y += LINE_H
    for i, label in enumerate(LABELS):
        pct = det.expressions.get(label) * 100.0
        lines.append(TextLine(text=f"{label}: {pct:05.2f}%", x=x, y=y + i * LINE_H,
                              align=align, size=TEXT_SIZE))
    return lines


def readout_lines(width: int, height: int,
                  detections: Sequence[Detection],
                  last_error: str = "") -> List[TextLine]:
    """Bottom readouts: face 1 bottom-left, face 2 bottom-right, or a 'no face' line.

    A pending detection error is always shown: under the 'no face' line, or
    centred above the expression blocks when faces are on screen.
    """
    block_h = (len(LABELS) + 1) * LINE_H
    y_base = height - MARGIN - block_h

    if not detections:
        lines = [TextLine(text=NO_FACE_TEXT, x=width / 2.0, y=y_base, align="center", size=TEXT_SIZE)]
        if last_error:
            lines.append(TextLine(text=last_error, x=width / 2.0, y=y_base + 26,
                                  align="center", size=ERROR_SIZE))
        return lines

    lines = _expression_block(0, detections[0], MARGIN, y_base, "left")
    if len(detections) > 1:
        lines += _expression_block(1, detections[1], width - MARGIN, y_base, "right")
    if last_error:
        # Stale readouts stay up; the error sits centred just above them
        lines.append(TextLine(text=last_error, x=width / 2.0, y=y_base - LINE_H,
                              align="center", size=ERROR_SIZE))
    return lines


class RenderLoop:
    def __init__(self, context: Context, capture: CaptureDevice, recolor: RecolorFilter,
                 settings: Settings):
        self.ctx = context
        self.capture = capture
        self.recolor = recolor
        self.every_n = settings.PROCESS_EVERY_N_FRAMES
        self.default_size = (settings.CANVAS_WIDTH, settings.CANVAS_HEIGHT)
        self.ticks = 0
        self.recolor_runs = 0

    def tick(self) -> np.ndarray:
        """Produce one BGR canvas for this display refresh."""
        self.ticks += 1
        w, h = self.ctx.canvas_size
        if w <= 0 or h <= 0:
            w, h = self.default_size
        canvas = new_canvas(w, h)

        transform = self.ctx.transform
        if self.ctx.phase is not SessionPhase.RUNNING or transform is None:
            return draw_text_lines(canvas, status_lines(w, h, self.ctx.status))

        self._maybe_recolor()
        styled = self.ctx.styled_frame
        if styled is not None:
            draw_frame(canvas, styled, transform)

        detections = self.ctx.detections
        if detections:
            draw_boxes(canvas, detections, transform)
            draw_landmarks(canvas, detections, transform)
        draw_text_lines(canvas, readout_lines(w, h, detections[:MAX_READOUTS], self.ctx.last_error))
        return canvas

    def _maybe_recolor(self) -> Optional[np.ndarray]:
        if self.ticks % self.every_n != 0 and self.ctx.styled_frame is not None:
            return None
        raw = self.capture.frame()
        if raw is None:
            return None
        self.ctx.styled_frame = self.recolor.apply(raw)
        self.recolor_runs += 1
        if self.recolor_runs == 1:
            logger.debug(f"[render] first styled frame {raw.shape[1]}x{raw.shape[0]}")
        return self.ctx.styled_frame
