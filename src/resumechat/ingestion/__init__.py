"""Document ingestion pipeline."""

from .chunker import Chunker, ChunkerConfig
from .loader import DocumentLoader, LangChainDocumentLoader
from .service import IngestionConfig, IngestionPipeline, IngestionResult

__all__ = [
    "Chunker",
    "ChunkerConfig",
    "DocumentLoader",
    "IngestionConfig",
    "IngestionPipeline",
    "IngestionResult",
    "LangChainDocumentLoader",
]
