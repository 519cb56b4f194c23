#!/usr/bin/env python3
"""
Face Embedding Extraction Module
Crops a detected face, prepares the model input tensor and runs the
MobileFaceNet style embedding model (ONNX runtime backend)

Created: 2025
"""

from __future__ import annotations

import os
import sys
import threading
from typing import TYPE_CHECKING, Callable, List, Optional

import cv2
import numpy as np
import onnxruntime as ort

from .detectors.types import BoundingBox
from .exceptions import EmbeddingExtractionError, ModelUnavailableError
from .image_utils import ImageSource, decode_image, to_bgr

if TYPE_CHECKING:
    from .config_manager import ConfigManager

# Opaque model contract: float32 [1, H, W, 3] -> float32 [1, D]
EmbeddingModel = Callable[[np.ndarray], np.ndarray]
ModelLoader = Callable[[], EmbeddingModel]


class OnnxEmbeddingModel:
    """Embedding model backed by an onnxruntime inference session"""

    def __init__(self, model_path: str, providers: Optional[List[str]] = None):
        """
        Load an ONNX embedding model
        Args:
            model_path: Path to the .onnx file
            providers: Execution providers, CPU only by default
        """
        if not os.path.exists(model_path):
            raise FileNotFoundError(f"Embedding model not found: {model_path}")

        self.model_path = model_path
        self.session = ort.InferenceSession(
            model_path, providers=providers or ["CPUExecutionProvider"]
        )
        self.input_name = self.session.get_inputs()[0].name
        self.output_name = self.session.get_outputs()[0].name
        self.input_shape = self.session.get_inputs()[0].shape

    def __call__(self, tensor: np.ndarray) -> np.ndarray:
        outputs = self.session.run([self.output_name], {self.input_name: tensor})
        return outputs[0]


class _LoadAttempt:
    """One in-flight model load shared by every caller waiting on it"""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.model: Optional[EmbeddingModel] = None
        self.error: Optional[BaseException] = None


class EmbeddingExtractor:
    """Face embedding extractor with a lazily loaded model"""

    def __init__(
        self,
        model_path: Optional[str] = None,
        model_loader: Optional[ModelLoader] = None,
        input_size: int = 112,
        embedding_dim: int = 192,
        padding: int = 20,
    ):
        """
        Initialize the extractor. The model is not loaded until first use.
        Args:
            model_path: Path to an ONNX embedding model
            model_loader: Factory returning a model callable, overrides model_path
            input_size: Square model input size in pixels
            embedding_dim: Length of the embedding vector the model returns
            padding: Pixels added on each side of the face box before cropping
        """
        if model_loader is None and model_path is None:
            raise ValueError("Either model_path or model_loader is required")

        self.model_path = model_path
        self.input_size = int(input_size)
        self.embedding_dim = int(embedding_dim)
        self.padding = int(padding)
        self._model_loader: ModelLoader = model_loader or (lambda: OnnxEmbeddingModel(model_path))

        self._model: Optional[EmbeddingModel] = None
        self._lock = threading.Lock()
        self._pending: Optional[_LoadAttempt] = None

    @classmethod
    def from_config(
        cls, config: "ConfigManager", model_loader: Optional[ModelLoader] = None
    ) -> "EmbeddingExtractor":
        return cls(
            model_path=config.get("extractor.model_path"),
            model_loader=model_loader,
            input_size=int(config.get("extractor.input_size", 112)),
            embedding_dim=int(config.get("extractor.embedding_dim", 192)),
            padding=int(config.get("extractor.padding", 20)),
        )

    @property
    def is_model_loaded(self) -> bool:
        return self._model is not None

    def load_model(self) -> EmbeddingModel:
        """
        Load the embedding model once
        Concurrent callers share a single in-flight load. A failed load is not
        remembered, the next call tries again.
        Raises:
            ModelUnavailableError: if the model cannot be loaded
        """
        with self._lock:
            if self._model is not None:
                return self._model
            attempt = self._pending
            owner = attempt is None
            if owner:
                attempt = self._pending = _LoadAttempt()

        if owner:
            try:
                attempt.model = self._model_loader()
                print(f"✅ Embedding model loaded: {self.model_path or 'custom loader'}")
            except Exception as e:
                attempt.error = e
                print(f"⚠️  Error loading embedding model: {e}", file=sys.stderr)
            finally:
                with self._lock:
                    if attempt.model is not None:
                        self._model = attempt.model
                    self._pending = None
                attempt.done.set()
        else:
            attempt.done.wait()

        if attempt.model is None:
            raise ModelUnavailableError(f"Embedding model unavailable: {attempt.error}")
        return attempt.model

    def extract(self, image: ImageSource, bbox: BoundingBox) -> np.ndarray:
        """
        Extract an embedding for one detected face
        Args:
            image: File path, encoded bytes or decoded BGR array of the full frame
            bbox: Face bounding box in frame pixel coordinates
        Returns:
            Read-only float32 vector of length embedding_dim
        Raises:
            EmbeddingExtractionError: image cannot be decoded or face cannot be cropped
            ModelUnavailableError: model cannot be loaded
        """
        decoded = decode_image(image)
        if decoded is None:
            raise EmbeddingExtractionError("Failed to decode image")

        face = self.crop_face(decoded, bbox)
        tensor = self.preprocess(face)
        model = self.load_model()

        try:
            output = model(tensor)
        except Exception as e:
            raise EmbeddingExtractionError(f"Embedding inference failed: {e}") from e

        embedding = np.asarray(output, dtype=np.float32).reshape(-1)
        if embedding.size != self.embedding_dim:
            raise EmbeddingExtractionError(
                f"Unexpected embedding size {embedding.size}, expected {self.embedding_dim}"
            )

        embedding = embedding.copy()
        embedding.flags.writeable = False
        return embedding

    def crop_face(self, image: np.ndarray, bbox: BoundingBox) -> np.ndarray:
        """Crop the face box grown by the padding, clamped to the image"""
        h, w = image.shape[:2]
        x1 = max(0, int(bbox.left - self.padding))
        y1 = max(0, int(bbox.top - self.padding))
        x2 = min(w, int(bbox.right + self.padding))
        y2 = min(h, int(bbox.bottom + self.padding))

        if x2 <= x1 or y2 <= y1:
            raise EmbeddingExtractionError(f"Face box {bbox.as_tuple()} lies outside the image")

        return image[y1:y2, x1:x2]

    def preprocess(self, face_image: np.ndarray) -> np.ndarray:
        """Resize to the model input and scale RGB values to [0, 1]"""
        face_bgr = to_bgr(face_image)
        face_resized = cv2.resize(
            face_bgr, (self.input_size, self.input_size), interpolation=cv2.INTER_LINEAR
        )
        face_rgb = cv2.cvtColor(face_resized, cv2.COLOR_BGR2RGB).astype(np.float32) / 255.0
        return face_rgb[np.newaxis, ...]

    def close(self) -> None:
        """Drop the loaded model, the next extraction loads it again"""
        with self._lock:
            self._model = None
