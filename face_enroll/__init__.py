#!/usr/bin/env python3
"""
Python Face Enrollment System
Init file for the face_enroll package

Created: 2025
"""

from .config_manager import ConfigManager
from .detectors.types import BoundingBox, FaceDetection
from .enrollment import EnrollmentStateMachine, FacePosition
from .exceptions import (
    ConfigError,
    EmbeddingExtractionError,
    FaceEnrollError,
    FaceStoreError,
    ModelUnavailableError,
)
from .face_compare import (
    EmbeddingComparator,
    best_similarity,
    cosine_similarity,
    euclidean_distance,
    is_same_face,
    is_same_face_multiple,
)
from .face_database import FaceIdentity, FaceStore, JsonFileKeyValueStore, MemoryKeyValueStore
from .face_features import EmbeddingExtractor, OnnxEmbeddingModel
from .face_quality import ImageQualityAssessor, QualityIssue, QualityResult
from .recognition import FaceRecognizer, MatchResult
from .session import EnrollmentSession, RecognitionSession, SessionState

__version__ = "1.0.0"
__author__ = "Face Enrollment Python Team"

__all__ = [
    'BoundingBox',
    'ConfigError',
    'ConfigManager',
    'EmbeddingComparator',
    'EmbeddingExtractionError',
    'EmbeddingExtractor',
    'EnrollmentSession',
    'EnrollmentStateMachine',
    'FaceDetection',
    'FaceEnrollError',
    'FaceIdentity',
    'FacePosition',
    'FaceRecognizer',
    'FaceStore',
    'FaceStoreError',
    'ImageQualityAssessor',
    'JsonFileKeyValueStore',
    'MatchResult',
    'MemoryKeyValueStore',
    'ModelUnavailableError',
    'OnnxEmbeddingModel',
    'QualityIssue',
    'QualityResult',
    'RecognitionSession',
    'SessionState',
    'best_similarity',
    'cosine_similarity',
    'euclidean_distance',
    'is_same_face',
    'is_same_face_multiple',
]
