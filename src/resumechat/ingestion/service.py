"""Document ingestion pipeline for ResumeChat."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Sequence, TypeVar
from uuid import uuid4

from resumechat.embeddings.service import EmbeddingBackend
from resumechat.embeddings.store import VectorIndex
from resumechat.errors import EmbeddingError, IndexWriteError, ResumeChatError
from resumechat.ingestion.chunker import Chunker, ChunkerConfig
from resumechat.ingestion.loader import DocumentLoader, LangChainDocumentLoader
from resumechat.metrics.observability import PipelineMetrics, get_logger
from resumechat.models import Chunk, EmbeddedChunk

T = TypeVar("T")


@dataclass(frozen=True)
class IngestionConfig:
    """Configuration for document ingestion."""

    chunk_size: int = 1000
    chunk_overlap: int = 100
    batch_size: int = 32
    max_concurrency: int = 5


@dataclass(frozen=True)
class IngestionResult:
    """Summary of a successful ingestion."""

    namespace: str
    document_id: str
    source_path: str
    chunk_count: int


class IngestionPipeline:
    """Load, chunk, embed and index one document under a fresh namespace.

    The namespace is only handed back once every chunk has been written. A
    failure part way through the index write can leave an orphaned namespace
    behind, but callers never learn its identifier.
    """

    _logger = get_logger("ingestion")

    def __init__(
        self,
        embedder: EmbeddingBackend,
        index: VectorIndex,
        *,
        loader: DocumentLoader | None = None,
        config: IngestionConfig | None = None,
    ) -> None:
        self._config = config or IngestionConfig()
        if self._config.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self._config.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._embedder = embedder
        self._index = index
        self._loader = loader or LangChainDocumentLoader()
        self._chunker = Chunker(
            ChunkerConfig(chunk_size=self._config.chunk_size, chunk_overlap=self._config.chunk_overlap),
        )

    def ingest(self, path: Path) -> str:
        return self.ingest_document(path).namespace

    def ingest_document(self, path: Path) -> IngestionResult:
        start = time.perf_counter()
        document = self._loader.load(Path(path))
        chunks = self._chunker.split(document.text, document_id=document.document_id)
        embedded = self._embed(chunks)
        namespace = uuid4().hex
        self._write(namespace, embedded)

        duration = time.perf_counter() - start
        PipelineMetrics.observe_ingestion(duration, len(chunks))
        self._logger.info(
            "ingestion.complete",
            path=document.source_path,
            namespace=namespace,
            chunk_count=len(chunks),
            duration_seconds=duration,
        )
        return IngestionResult(
            namespace=namespace,
            document_id=document.document_id,
            source_path=document.source_path,
            chunk_count=len(chunks),
        )

    def _batches(self, items: Sequence) -> List[Sequence]:
        size = self._config.batch_size
        return [items[offset : offset + size] for offset in range(0, len(items), size)]

    def _embed(self, chunks: Sequence[Chunk]) -> List[EmbeddedChunk]:
        def embed_batch(batch: Sequence[Chunk]) -> List[EmbeddedChunk]:
            try:
                vectors = self._embedder.embed_documents([chunk.text for chunk in batch])
            except EmbeddingError:
                raise
            except Exception as exc:
                raise EmbeddingError(f"Failed to embed chunks: {exc}") from exc
            if len(vectors) != len(batch):
                raise EmbeddingError(f"Expected {len(batch)} vectors, received {len(vectors)}")
            return [EmbeddedChunk(chunk=chunk, vector=tuple(vector)) for chunk, vector in zip(batch, vectors)]

        embedded: List[EmbeddedChunk] = []
        for batch_result in self._run_bounded(embed_batch, self._batches(chunks)):
            embedded.extend(batch_result)
        return embedded

    def _write(self, namespace: str, embedded: Sequence[EmbeddedChunk]) -> None:
        model = self._embedder.identifier

        def write_batch(batch: Sequence[EmbeddedChunk]) -> Sequence[str]:
            try:
                return self._index.upsert(namespace, batch, embedding_model=model)
            except IndexWriteError:
                raise
            except Exception as exc:
                raise IndexWriteError(f"Failed to write chunks to namespace {namespace}: {exc}") from exc

        try:
            list(self._run_bounded(write_batch, self._batches(embedded)))
        except ResumeChatError:
            self._logger.error("ingestion.write_failed", namespace=namespace, chunk_count=len(embedded))
            raise

    def _run_bounded(self, fn: Callable[[Sequence], T], batches: Sequence[Sequence]) -> List[T]:
        if len(batches) <= 1 or self._config.max_concurrency == 1:
            return [fn(batch) for batch in batches]
        with ThreadPoolExecutor(max_workers=self._config.max_concurrency) as pool:
            return list(pool.map(fn, batches))
