"""Image decoding helpers shared by the quality gate and the extractor."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

ImageSource = Union[str, Path, bytes, bytearray, np.ndarray]


def decode_image(source: ImageSource) -> Optional[np.ndarray]:
    """
    Decode an image into an OpenCV style array
    Args:
        source: File path, encoded image bytes, or an already decoded array
    Returns:
        BGR (or single channel) uint8 array, None if it cannot be decoded
    """
    if source is None:
        return None

    if isinstance(source, np.ndarray):
        image = source
    elif isinstance(source, (bytes, bytearray)):
        buffer = np.frombuffer(bytes(source), dtype=np.uint8)
        if buffer.size == 0:
            return None
        image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    else:
        path = str(source)
        if not os.path.exists(path):
            return None
        image = cv2.imread(path, cv2.IMREAD_UNCHANGED)

    if image is None or image.size == 0:
        return None
    if image.ndim not in (2, 3):
        return None
    if image.ndim == 3 and image.shape[2] not in (1, 3, 4):
        return None

    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)
    if image.ndim == 3 and image.shape[2] == 1:
        image = image[:, :, 0]
    return image


def to_bgr(image: np.ndarray) -> np.ndarray:
    """Return a 3-channel BGR view of a grayscale, BGR or BGRA image"""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image


def to_gray(image: np.ndarray) -> np.ndarray:
    """Return a single channel luminance image"""
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
