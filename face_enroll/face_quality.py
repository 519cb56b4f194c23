#!/usr/bin/env python3
"""
Image Quality Assessment Module
Brightness and Laplacian-variance sharpness gate applied to captured frames
before they are allowed into an enrollment

Created: 2025
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import numpy as np

from .image_utils import ImageSource, decode_image
from .quality import BlurAnalyzer, BrightnessAnalyzer

if TYPE_CHECKING:
    from .config_manager import ConfigManager


class QualityIssue(enum.Enum):
    NONE = "none"
    TOO_DARK = "tooDark"
    TOO_BRIGHT = "tooBright"
    BLURRY = "blurry"


@dataclass(frozen=True)
class QualityResult:
    """Outcome of a quality check; sharpness is 0 when brightness failed first"""

    issue: QualityIssue
    brightness: float
    sharpness: float

    @property
    def is_good(self) -> bool:
        return self.issue is QualityIssue.NONE


FAILED_RESULT = QualityResult(issue=QualityIssue.BLURRY, brightness=0.0, sharpness=0.0)

FEEDBACK_MESSAGES = {
    QualityIssue.TOO_DARK: "Too dark! Find a brighter place",
    QualityIssue.TOO_BRIGHT: "Too bright! Reduce the lighting",
    QualityIssue.BLURRY: "Image is blurry! Hold the camera steady",
    QualityIssue.NONE: "Good quality! Capturing...",
}


class ImageQualityAssessor:
    """Brightness and sharpness quality gate"""

    def __init__(
        self,
        min_brightness: float = 50.0,
        max_brightness: float = 200.0,
        min_sharpness: float = 100.0,
    ):
        """
        Initialize image quality assessment
        Args:
            min_brightness: Mean luminance below this is too dark
            max_brightness: Mean luminance above this is too bright
            min_sharpness: Laplacian variance below this is blurry
        """
        self.brightness_analyzer = BrightnessAnalyzer(
            min_brightness=min_brightness, max_brightness=max_brightness
        )
        self.blur_analyzer = BlurAnalyzer(threshold=min_sharpness)

    @classmethod
    def from_config(cls, config: "ConfigManager") -> "ImageQualityAssessor":
        return cls(
            min_brightness=float(config.get("quality.min_brightness", 50.0)),
            max_brightness=float(config.get("quality.max_brightness", 200.0)),
            min_sharpness=float(config.get("quality.min_sharpness", 100.0)),
        )

    def assess(self, image: ImageSource) -> QualityResult:
        """
        Assess a captured frame
        Args:
            image: File path, encoded bytes or decoded BGR array
        Returns:
            QualityResult, never raises. Undecodable input is reported as blurry
        """
        try:
            decoded = decode_image(image)
            if decoded is None:
                return FAILED_RESULT
            return self._assess_decoded(decoded)
        except Exception:
            return FAILED_RESULT

    def _assess_decoded(self, image: np.ndarray) -> QualityResult:
        brightness, too_dark, too_bright = self.brightness_analyzer.assess(image)

        if too_dark:
            return QualityResult(QualityIssue.TOO_DARK, brightness, 0.0)
        if too_bright:
            return QualityResult(QualityIssue.TOO_BRIGHT, brightness, 0.0)

        sharpness, is_sharp = self.blur_analyzer.assess(image)
        if not is_sharp:
            return QualityResult(QualityIssue.BLURRY, brightness, sharpness)

        return QualityResult(QualityIssue.NONE, brightness, sharpness)


def feedback_message(result: Optional[QualityResult]) -> str:
    """User facing hint for a quality result"""
    if result is None:
        return ""
    return FEEDBACK_MESSAGES[result.issue]
