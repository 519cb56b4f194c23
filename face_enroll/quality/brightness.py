"""Perceived brightness analysis."""

from __future__ import annotations

from typing import Tuple

import numpy as np

# ITU-R BT.601 luma weights for R, G, B
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


class BrightnessAnalyzer:
    """Mean perceived luminance in the 0-255 range."""

    def __init__(self, *, min_brightness: float = 50.0, max_brightness: float = 200.0) -> None:
        self.min_brightness = min_brightness
        self.max_brightness = max_brightness

    def measure(self, image: np.ndarray) -> float:
        if image is None or image.size == 0:
            return 0.0

        if image.ndim == 2:
            return float(np.mean(image, dtype=np.float64))

        pixels = image[:, :, :3].astype(np.float64)
        blue, green, red = pixels[:, :, 0], pixels[:, :, 1], pixels[:, :, 2]
        luminance = LUMA_WEIGHTS[0] * red + LUMA_WEIGHTS[1] * green + LUMA_WEIGHTS[2] * blue
        return float(np.mean(luminance))

    def assess(self, image: np.ndarray) -> Tuple[float, bool, bool]:
        """Returns (brightness, too_dark, too_bright)"""
        brightness = self.measure(image)
        return (
            brightness,
            bool(brightness < self.min_brightness),
            bool(brightness > self.max_brightness),
        )
