"""Fakes for the camera, detector, timer and embedding model collaborators."""

from pathlib import Path
from typing import Callable, List, Optional

import cv2
import numpy as np

from face_enroll.detectors.types import BoundingBox, FaceDetection

EMBEDDING_DIM = 192


# ── Images ──


def checkerboard(size: int = 8, low: int = 100, high: int = 160, channels: int = 3) -> np.ndarray:
    ys, xs = np.indices((size, size))
    board = np.where((xs + ys) % 2 == 0, high, low).astype(np.uint8)
    if channels == 1:
        return board
    return np.dstack([board] * channels)


def uniform(value: int, size: int = 8) -> np.ndarray:
    return np.full((size, size, 3), value, dtype=np.uint8)


# ── Mocks ──


class FakeModel:
    """Deterministic stand-in for the embedding network."""

    def __init__(self, dim: int = EMBEDDING_DIM, on_call: Optional[Callable[[], None]] = None):
        self.dim = dim
        self.on_call = on_call
        self.calls: List[tuple] = []

    def __call__(self, tensor: np.ndarray) -> np.ndarray:
        self.calls.append(tensor.shape)
        if self.on_call is not None:
            self.on_call()
        flat = tensor.reshape(-1)[: self.dim].astype(np.float32) + 0.1
        return flat.reshape(1, self.dim)


class FakeCamera:
    """Writes a checkerboard PNG per capture, like a camera taking stills."""

    def __init__(self, directory: Path, fail_open: bool = False):
        self.directory = directory
        self.fail_open = fail_open
        self.open_count = 0
        self.close_count = 0
        self.captured: List[str] = []

    def open(self) -> None:
        if self.fail_open:
            raise RuntimeError("no cameras available")
        self.open_count += 1

    def capture(self) -> str:
        path = self.directory / f"frame_{len(self.captured)}.png"
        cv2.imwrite(str(path), checkerboard(size=64))
        self.captured.append(str(path))
        return str(path)

    def close(self) -> None:
        self.close_count += 1


class FakeDetector:
    def __init__(self, faces: Optional[List[FaceDetection]] = None, error: Optional[Exception] = None):
        self.faces = faces if faces is not None else []
        self.error = error
        self.calls = 0

    def detect(self, image) -> List[FaceDetection]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.faces)


class ManualTimer:
    def __init__(self):
        self.interval: Optional[float] = None
        self.callback: Optional[Callable[[], None]] = None
        self.running = False
        self.start_count = 0

    def start(self, interval, callback) -> None:
        self.interval = interval
        self.callback = callback
        self.running = True
        self.start_count += 1

    def cancel(self) -> None:
        self.running = False

    def fire(self) -> None:
        if self.running and self.callback is not None:
            self.callback()


def face(pitch: float = 0.0, yaw: float = 0.0, bbox: Optional[BoundingBox] = None) -> FaceDetection:
    return FaceDetection(
        bbox=bbox or BoundingBox(16, 16, 48, 48),
        head_euler_x=pitch,
        head_euler_y=yaw,
    )


def embedding(seed: int, dim: int = EMBEDDING_DIM) -> List[float]:
    rng = np.random.default_rng(seed)
    return rng.normal(size=dim).tolist()
