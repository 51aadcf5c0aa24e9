"""Embedding services."""

from .service import EmbeddingBackend, EmbeddingConfig, HashEmbeddingBackend, HuggingFaceEmbeddingBackend
from .store import ChromaVectorIndex, VectorIndex

__all__ = [
    "EmbeddingBackend",
    "EmbeddingConfig",
    "VectorIndex",
    "ChromaVectorIndex",
    "HashEmbeddingBackend",
    "HuggingFaceEmbeddingBackend",
]
