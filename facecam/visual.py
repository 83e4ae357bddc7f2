"""Drawing helpers on a BGR canvas.

- draw_frame: composite an RGBA frame through a Transform
- draw_boxes / draw_landmarks: detection geometry (raw-frame coords -> screen)
- draw_text_lines: screen-anchored text (TextLine records)

All helpers draw in place and return the canvas.
"""
from __future__ import annotations
from typing import Iterable, Tuple

import cv2
import numpy as np

from facecam.models import Detection, TextLine
from facecam.transform import Transform

BOX_COLOR = (255, 255, 0)        # cyan (BGR)
LANDMARK_COLOR = (255, 255, 255)
TEXT_COLOR = (255, 255, 255)
FONT = cv2.FONT_HERSHEY_SIMPLEX
# Hershey cap height is ~22px at scale 1.0
_FONT_PX = 22.0


def new_canvas(width: int, height: int) -> np.ndarray:
    return np.zeros((int(height), int(width), 3), dtype=np.uint8)


def draw_frame(canvas: np.ndarray, rgba: np.ndarray, transform: Transform) -> np.ndarray:
    """Scale the frame, mirror it if needed, and paste it at the transform offset (clipped to the canvas)."""
    ch, cw = canvas.shape[:2]
    fh, fw = rgba.shape[:2]
    sw = max(1, int(round(fw * transform.scale)))
    sh = max(1, int(round(fh * transform.scale)))
    bgr = cv2.resize(cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGR), (sw, sh), interpolation=cv2.INTER_LINEAR)
    if transform.mirror:
        bgr = cv2.flip(bgr, 1)

    x0, y0 = int(round(transform.offset_x)), int(round(transform.offset_y))
    dx0, dy0 = max(0, x0), max(0, y0)
    dx1, dy1 = min(cw, x0 + sw), min(ch, y0 + sh)
    if dx1 <= dx0 or dy1 <= dy0:
        return canvas
    canvas[dy0:dy1, dx0:dx1] = bgr[dy0 - y0:dy1 - y0, dx0 - x0:dx1 - x0]
    return canvas


def draw_boxes(canvas: np.ndarray, detections: Iterable[Detection], transform: Transform,
               color: Tuple[int, int, int] = BOX_COLOR) -> np.ndarray:
    for det in detections:
        x, y, bw, bh = transform.box_to_screen(det.box)
        cv2.rectangle(canvas, (int(round(x)), int(round(y))),
                      (int(round(x + bw)), int(round(y + bh))), color, 2, cv2.LINE_AA)
    return canvas


def draw_landmarks(canvas: np.ndarray, detections: Iterable[Detection], transform: Transform,
                   color: Tuple[int, int, int] = LANDMARK_COLOR) -> np.ndarray:
    for det in detections:
        for p in det.landmarks:
            sx, sy = transform.point_to_screen(p.x, p.y)
            cv2.circle(canvas, (int(round(sx)), int(round(sy))), 2, color, -1, cv2.LINE_AA)
    return canvas


def _font_scale(size: float) -> float:
    return size / _FONT_PX


def draw_text_lines(canvas: np.ndarray, lines: Iterable[TextLine],
                    color: Tuple[int, int, int] = TEXT_COLOR) -> np.ndarray:
    for line in lines:
        # Hershey fonts are ASCII only
        text = line.text.replace("…", "...").encode("ascii", "replace").decode("ascii")
        scale = _font_scale(line.size)
        (tw, th), _ = cv2.getTextSize(text, FONT, scale, 1)
        if line.align == "right":
            x = line.x - tw
        elif line.align == "center":
            x = line.x - tw / 2.0
        else:
            x = line.x
        cv2.putText(canvas, text, (int(round(x)), int(round(line.y + th))),
                    FONT, scale, color, 1, cv2.LINE_AA)
    return canvas
