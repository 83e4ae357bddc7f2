"""Aspect-preserving frame -> canvas mapping.

Contain fits the whole frame inside the canvas (letterboxing, offsets >= 0);
cover fills the canvas (cropping, offsets <= 0 on the overflowing axis).
Mirroring is a reflection of raw-frame x applied *before* scale/offset, so
corner-anchored boxes reflect their origin as ``frame_w - x - w``.
"""
from __future__ import annotations
from typing import Tuple

from pydantic import BaseModel, ConfigDict

from facecam.models import Box, FitMode


class Transform(BaseModel):
    model_config = ConfigDict(frozen=True)

    scale: float
    offset_x: float
    offset_y: float
    frame_width: int
    frame_height: int
    mirror: bool = False

    def to_screen(self, x: float, y: float) -> Tuple[float, float]:
        return self.offset_x + x * self.scale, self.offset_y + y * self.scale

    def point_to_screen(self, x: float, y: float) -> Tuple[float, float]:
        if self.mirror:
            x = self.frame_width - x
        return self.to_screen(x, y)

    def box_to_screen(self, box: Box) -> Tuple[float, float, float, float]:
        """Return screen (x, y, w, h) for a raw-frame box."""
        bx = box.x
        if self.mirror:
            bx = self.frame_width - box.x - box.width
        sx, sy = self.to_screen(bx, box.y)
        return sx, sy, box.width * self.scale, box.height * self.scale

    def scaled_size(self) -> Tuple[float, float]:
        return self.frame_width * self.scale, self.frame_height * self.scale


def compute_transform(canvas_w: float, canvas_h: float,
                      frame_w: int, frame_h: int,
                      fit_mode: FitMode | str = FitMode.CONTAIN,
                      mirror: bool = False) -> Transform:
    if canvas_w <= 0 or canvas_h <= 0:
        raise ValueError(f"canvas size must be positive, got {canvas_w}x{canvas_h}")
    if frame_w <= 0 or frame_h <= 0:
        raise ValueError(f"frame size must be positive, got {frame_w}x{frame_h}")

    mode = FitMode(fit_mode)
    sx = canvas_w / float(frame_w)
    sy = canvas_h / float(frame_h)
    scale = min(sx, sy) if mode is FitMode.CONTAIN else max(sx, sy)

    return Transform(
        scale=scale,
        offset_x=(canvas_w - frame_w * scale) * 0.5,
        offset_y=(canvas_h - frame_h * scale) * 0.5,
        frame_width=int(frame_w),
        frame_height=int(frame_h),
        mirror=bool(mirror),
    )
