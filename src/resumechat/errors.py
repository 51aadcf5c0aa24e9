"""Exception taxonomy shared by the ingestion and conversation pipelines."""

from __future__ import annotations


class ResumeChatError(RuntimeError):
    """Base class for every failure raised by the pipeline."""


class DocumentLoadError(ResumeChatError):
    """Raised when an uploaded file cannot be read or parsed."""


class EmbeddingError(ResumeChatError):
    """Raised when text cannot be turned into vectors."""


class IndexWriteError(ResumeChatError):
    """Raised when the vector index rejects or fails a write."""


class IndexQueryError(ResumeChatError):
    """Raised when the vector index cannot answer a similarity query."""


class GenerationError(ResumeChatError):
    """Raised when the generation backend fails or times out."""


class InvalidRequestError(ResumeChatError):
    """Raised when a chat call is missing its question or namespace."""


class SessionStateError(ResumeChatError):
    """Raised when a session operation is not allowed in its current state."""


class TurnCancelledError(ResumeChatError):
    """Raised when the caller cancels a turn before it completes."""


__all__ = [
    "DocumentLoadError",
    "EmbeddingError",
    "GenerationError",
    "IndexQueryError",
    "IndexWriteError",
    "InvalidRequestError",
    "ResumeChatError",
    "SessionStateError",
    "TurnCancelledError",
]
