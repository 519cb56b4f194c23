"""Shared fixtures for the face enrollment tests."""

import pytest

from face_enroll.face_database import FaceStore, MemoryKeyValueStore
from face_enroll.face_features import EmbeddingExtractor
from tests.fakes import FakeCamera, FakeModel, ManualTimer


@pytest.fixture
def store() -> FaceStore:
    return FaceStore(MemoryKeyValueStore())


@pytest.fixture
def fake_model() -> FakeModel:
    return FakeModel()


@pytest.fixture
def extractor(fake_model) -> EmbeddingExtractor:
    return EmbeddingExtractor(model_loader=lambda: fake_model)


@pytest.fixture
def camera(tmp_path) -> FakeCamera:
    return FakeCamera(tmp_path)


@pytest.fixture
def timer() -> ManualTimer:
    return ManualTimer()
