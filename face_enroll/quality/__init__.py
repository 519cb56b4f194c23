"""Quality analyzers backing the enrollment quality gate."""

from .blur import BlurAnalyzer
from .brightness import BrightnessAnalyzer

__all__ = ["BlurAnalyzer", "BrightnessAnalyzer"]
