"""Per-pixel recolor: luma -> gain curve -> two-colour gradient.

Vectorised over the whole RGBA buffer; the only per-pixel conditional is the
clip. The default colours give a cool blue tint.
"""
from __future__ import annotations
from typing import Tuple

import numpy as np

from facecam.config import Settings

# Rec. 709 luma weights (sum to 1)
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)

COOL_SHADOW = (0.0, 0.0, 102.0)
COOL_HIGHLIGHT = (216.75, 242.25, 255.0)


class RecolorFilter:
    """Stateless RGBA -> RGBA duotone."""
    def __init__(self,
                 gain: float = 1.05,
                 shadow: Tuple[float, float, float] = COOL_SHADOW,
                 highlight: Tuple[float, float, float] = COOL_HIGHLIGHT):
        self.gain = float(gain)
        self._shadow = np.asarray(shadow, dtype=np.float32)
        self._span = (np.asarray(highlight, dtype=np.float32) - self._shadow) / 255.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecolorFilter":
        return cls(gain=settings.RECOLOR_GAIN)

    def apply(self, raw: np.ndarray) -> np.ndarray:
        if raw.ndim != 3 or raw.shape[2] != 4:
            raise ValueError(f"expected an (H, W, 4) RGBA frame, got shape {raw.shape}")

        rgb = raw[..., :3].astype(np.float32)
        luma = rgb @ LUMA_WEIGHTS
        c = np.clip(luma * self.gain, 0.0, 255.0)

        out = np.empty(raw.shape, dtype=np.uint8)
        graded = self._shadow + c[..., None] * self._span
        out[..., :3] = np.rint(np.clip(graded, 0.0, 255.0))
        out[..., 3] = 255
        return out
