"""Namespace-scoped retrieval built on top of the vector index."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol, Sequence

from resumechat.embeddings.service import EmbeddingBackend
from resumechat.embeddings.store import VectorIndex
from resumechat.errors import EmbeddingError, IndexQueryError, InvalidRequestError
from resumechat.metrics.observability import PipelineMetrics, get_logger
from resumechat.models import RetrievedChunk


@dataclass(frozen=True)
class RetrievalConfig:
    """Configuration for retrieval."""

    top_k: int = 4


class Retriever(Protocol):
    """Retrieve relevant chunks for a standalone question."""

    def retrieve(self, question: str, namespace: str, k: int | None = None) -> Sequence[RetrievedChunk]:
        """Return up to ``k`` chunks of ``namespace``, most relevant first."""


class VectorIndexRetriever:
    """Retriever that embeds the question and queries one namespace of the index.

    The embedder must be the one used at ingestion time; queries are filtered to
    its identifier so vectors from another model are never compared.
    """

    def __init__(
        self,
        embedder: EmbeddingBackend,
        index: VectorIndex,
        config: RetrievalConfig | None = None,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self._config = config or RetrievalConfig()
        self._logger = get_logger("retrieval")

    def retrieve(self, question: str, namespace: str, k: int | None = None) -> Sequence[RetrievedChunk]:
        if not namespace or not namespace.strip():
            raise InvalidRequestError("A namespace is required for retrieval")
        limit = self._config.top_k if k is None else k
        if limit <= 0:
            return []

        start = time.perf_counter()
        try:
            vector = self._embedder.embed_query(question)
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"Failed to embed question: {exc}") from exc
        try:
            items = list(self._index.query(namespace, vector, limit, embedding_model=self._embedder.identifier))
        except IndexQueryError:
            raise
        except Exception as exc:
            raise IndexQueryError(f"Vector index query failed: {exc}") from exc

        duration = time.perf_counter() - start
        PipelineMetrics.observe_retrieval(duration, len(items), (item.score for item in items))
        self._logger.info(
            "retrieval.complete",
            namespace=namespace,
            chunk_count=len(items),
            duration_seconds=duration,
            top_k=limit,
        )
        return items[:limit]
