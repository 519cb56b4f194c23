"""Face detector contract consumed by the enrollment and recognition loops."""

from .types import BoundingBox, FaceDetection, FaceDetector

__all__ = ["BoundingBox", "FaceDetection", "FaceDetector"]
