"""Blur quality analysis using Laplacian variance."""

from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np

from ..image_utils import to_gray

LAPLACIAN_KERNEL = np.array(
    [
        [0.0, -1.0, 0.0],
        [-1.0, 4.0, -1.0],
        [0.0, -1.0, 0.0],
    ],
    dtype=np.float64,
)


class BlurAnalyzer:
    """Assess sharpness as the variance of the Laplacian response."""

    def __init__(self, *, threshold: float = 100.0) -> None:
        self.threshold = threshold

    def measure(self, image: np.ndarray) -> float:
        if image is None or image.size == 0:
            return 0.0

        gray = to_gray(image).astype(np.float64)
        h, w = gray.shape[:2]
        if h < 3 or w < 3:
            return 0.0

        # Interior pixels only, the response map is (h - 2) x (w - 2)
        response = cv2.filter2D(gray, cv2.CV_64F, LAPLACIAN_KERNEL)[1:-1, 1:-1]
        return float(np.var(response))

    def assess(self, image: np.ndarray) -> Tuple[float, bool]:
        sharpness = self.measure(image)
        return sharpness, bool(sharpness >= self.threshold)
