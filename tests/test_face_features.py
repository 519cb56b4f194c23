"""Tests for face cropping, preprocessing and lazy model loading."""

import threading

import cv2
import numpy as np
import pytest

from face_enroll.detectors.types import BoundingBox
from face_enroll.exceptions import EmbeddingExtractionError, ModelUnavailableError
from face_enroll.face_features import EmbeddingExtractor
from tests.fakes import EMBEDDING_DIM, FakeModel, checkerboard


def frame(h: int = 100, w: int = 100) -> np.ndarray:
    return np.full((h, w, 3), 120, dtype=np.uint8)


class TestCropFace:
    def test_padding_inside_image(self, extractor):
        crop = extractor.crop_face(frame(200, 200), BoundingBox(50, 60, 100, 120))
        assert crop.shape == (100, 90, 3)

    def test_clamped_top_left(self, extractor):
        crop = extractor.crop_face(frame(), BoundingBox(10, 10, 50, 50))
        assert crop.shape == (70, 70, 3)

    def test_clamped_bottom_right(self, extractor):
        crop = extractor.crop_face(frame(), BoundingBox(70, 70, 95, 95))
        assert crop.shape == (50, 50, 3)

    def test_box_outside_image(self, extractor):
        with pytest.raises(EmbeddingExtractionError):
            extractor.crop_face(frame(), BoundingBox(300, 300, 400, 400))


class TestPreprocess:
    def test_tensor_shape_and_range(self, extractor):
        tensor = extractor.preprocess(checkerboard(size=40))
        assert tensor.shape == (1, 112, 112, 3)
        assert tensor.dtype == np.float32
        assert tensor.min() >= 0.0
        assert tensor.max() <= 1.0

    def test_rgb_channel_order(self, extractor):
        blue = np.zeros((20, 20, 3), dtype=np.uint8)
        blue[:, :, 0] = 255  # BGR
        tensor = extractor.preprocess(blue)
        assert np.allclose(tensor[..., 2], 1.0)
        assert np.allclose(tensor[..., 0], 0.0)

    def test_grayscale_face(self, extractor):
        tensor = extractor.preprocess(np.full((30, 30), 51, dtype=np.uint8))
        assert tensor.shape == (1, 112, 112, 3)
        assert np.allclose(tensor, 0.2)


class TestExtract:
    def test_returns_fixed_length_readonly_vector(self, extractor, fake_model):
        result = extractor.extract(frame(), BoundingBox(30, 30, 70, 70))
        assert result.shape == (EMBEDDING_DIM,)
        assert result.dtype == np.float32
        assert not result.flags.writeable
        assert fake_model.calls == [(1, 112, 112, 3)]

    def test_from_file(self, extractor, tmp_path):
        path = tmp_path / "frame.png"
        cv2.imwrite(str(path), checkerboard(size=64))
        assert extractor.extract(str(path), BoundingBox(10, 10, 50, 50)).shape == (EMBEDDING_DIM,)

    def test_decode_failure(self, tmp_path):
        calls = []
        extractor = EmbeddingExtractor(model_loader=lambda: calls.append(1) or FakeModel())
        with pytest.raises(EmbeddingExtractionError):
            extractor.extract(str(tmp_path / "missing.jpg"), BoundingBox(0, 0, 10, 10))
        assert calls == []

    def test_unexpected_output_size(self):
        extractor = EmbeddingExtractor(model_loader=lambda: FakeModel(dim=128))
        with pytest.raises(EmbeddingExtractionError):
            extractor.extract(frame(), BoundingBox(30, 30, 70, 70))

    def test_inference_error_is_extraction_error(self):
        def broken(tensor):
            raise RuntimeError("bad tensor")

        extractor = EmbeddingExtractor(model_loader=lambda: broken)
        with pytest.raises(EmbeddingExtractionError):
            extractor.extract(frame(), BoundingBox(30, 30, 70, 70))

    def test_requires_model_source(self):
        with pytest.raises(ValueError):
            EmbeddingExtractor()


class TestModelLoading:
    def test_model_unavailable_is_distinct_error(self):
        assert not issubclass(ModelUnavailableError, EmbeddingExtractionError)

    def test_loads_once(self):
        loads = []

        def loader():
            loads.append(1)
            return FakeModel()

        extractor = EmbeddingExtractor(model_loader=loader)
        assert not extractor.is_model_loaded
        extractor.extract(frame(), BoundingBox(30, 30, 70, 70))
        extractor.extract(frame(), BoundingBox(30, 30, 70, 70))
        assert extractor.is_model_loaded
        assert len(loads) == 1

    def test_failed_load_is_retried(self):
        attempts = []

        def loader():
            attempts.append(1)
            if len(attempts) < 3:
                raise OSError("model file missing")
            return FakeModel()

        extractor = EmbeddingExtractor(model_loader=loader)
        for _ in range(2):
            with pytest.raises(ModelUnavailableError):
                extractor.extract(frame(), BoundingBox(30, 30, 70, 70))
        assert extractor.extract(frame(), BoundingBox(30, 30, 70, 70)).shape == (EMBEDDING_DIM,)
        assert len(attempts) == 3

    def test_missing_onnx_file(self, tmp_path):
        extractor = EmbeddingExtractor(model_path=str(tmp_path / "missing.onnx"))
        with pytest.raises(ModelUnavailableError):
            extractor.load_model()

    def test_concurrent_callers_share_one_load(self):
        started = threading.Event()
        release = threading.Event()
        loads = []
        model = FakeModel()

        def loader():
            loads.append(1)
            started.set()
            release.wait(timeout=5)
            return model

        extractor = EmbeddingExtractor(model_loader=loader)
        results = []
        threads = [
            threading.Thread(target=lambda: results.append(extractor.load_model()))
            for _ in range(4)
        ]
        for t in threads:
            t.start()
        assert started.wait(timeout=5)
        release.set()
        for t in threads:
            t.join(timeout=5)

        assert len(loads) == 1
        assert len(results) == 4
        assert all(r is model for r in results)

    def test_close_forces_reload(self):
        loads = []
        extractor = EmbeddingExtractor(model_loader=lambda: loads.append(1) or FakeModel())
        extractor.load_model()
        extractor.close()
        assert not extractor.is_model_loaded
        extractor.load_model()
        assert len(loads) == 2
