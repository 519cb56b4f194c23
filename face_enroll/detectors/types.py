"""Face detection value types produced by an external detector."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol, Tuple, Union

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """Face rectangle in pixel coordinates of the full frame."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> "BoundingBox":
        return cls(x, y, x + w, y + h)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.left, self.top, self.right, self.bottom)


@dataclass(frozen=True)
class FaceDetection:
    """Lightweight representation of one detected face.

    head_euler_x is the pitch (negative = looking up) and head_euler_y the
    yaw (negative = turned left), both in degrees as reported by the detector,
    before any front-camera mirroring.
    """

    bbox: BoundingBox
    head_euler_x: float = 0.0
    head_euler_y: float = 0.0
    confidence: float = 1.0


class FaceDetector(Protocol):
    """Anything that turns a captured frame into zero or more faces."""

    def detect(self, image: Union[str, np.ndarray]) -> List[FaceDetection]:
        ...
