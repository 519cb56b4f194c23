"""Error types raised by the face enrollment core."""


class FaceEnrollError(Exception):
    """Base class for all face enrollment errors"""


class EmbeddingExtractionError(FaceEnrollError):
    """Image could not be decoded, cropped or embedded"""


class ModelUnavailableError(FaceEnrollError):
    """Embedding model could not be loaded

    Not permanent: the next extraction attempt tries to load the model again.
    """


class FaceStoreError(FaceEnrollError):
    """Persisting identities to the backing store failed"""


class ConfigError(FaceEnrollError):
    """Configuration is missing or invalid"""
