"""Application entry points for the Face Enrollment project."""

from .cli import FaceStoreManager, main

__all__ = ["FaceStoreManager", "main"]
