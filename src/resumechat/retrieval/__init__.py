"""Retrieval components."""

from .service import RetrievalConfig, Retriever, VectorIndexRetriever

__all__ = ["RetrievalConfig", "Retriever", "VectorIndexRetriever"]
