"""Namespace-scoped vector index implementations."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, MutableMapping, Protocol, Sequence

import chromadb
from chromadb.api import ClientAPI
from chromadb.api.types import Documents, Embeddings as ChromaEmbeddings, IDs, Metadatas

from resumechat.errors import IndexQueryError, IndexWriteError
from resumechat.models import Chunk, EmbeddedChunk, RetrievedChunk


class VectorIndex(Protocol):
    """Protocol for namespace-scoped vector persistence backends."""

    def upsert(
        self,
        namespace: str,
        embedded_chunks: Sequence[EmbeddedChunk],
        *,
        embedding_model: str | None = None,
    ) -> Sequence[str]:
        """Persist embedded chunks under ``namespace``."""

    def query(
        self,
        namespace: str,
        vector: Sequence[float],
        k: int,
        *,
        embedding_model: str | None = None,
    ) -> Sequence[RetrievedChunk]:
        """Return up to ``k`` chunks of ``namespace`` nearest to ``vector``, best first."""


class ChromaVectorIndex:
    """Chroma-backed vector index; namespaces are enforced through metadata filters."""

    def __init__(
        self,
        collection_name: str = "resumechat",
        *,
        client: ClientAPI | None = None,
        persist_directory: str | Path | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._clock = clock
        if client is not None:
            self._client = client
        elif persist_directory is not None:
            self._client = chromadb.PersistentClient(path=str(persist_directory))
        else:
            self._client = chromadb.EphemeralClient()
        self._collection = self._client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    def upsert(
        self,
        namespace: str,
        embedded_chunks: Sequence[EmbeddedChunk],
        *,
        embedding_model: str | None = None,
    ) -> Sequence[str]:
        if not embedded_chunks:
            return []
        created_at = self._clock()
        ids: IDs = [self._point_id(namespace, item.chunk) for item in embedded_chunks]
        documents: Documents = [item.chunk.text for item in embedded_chunks]
        metadatas: Metadatas = [
            self._serialize_chunk(item.chunk, namespace, embedding_model=embedding_model, created_at=created_at)
            for item in embedded_chunks
        ]
        vectors: ChromaEmbeddings = [list(item.vector) for item in embedded_chunks]
        try:
            self._collection.upsert(ids=ids, documents=documents, embeddings=vectors, metadatas=metadatas)
        except Exception as exc:
            raise IndexWriteError(f"Failed to write {len(ids)} chunks to namespace {namespace}: {exc}") from exc
        return list(ids)

    def query(
        self,
        namespace: str,
        vector: Sequence[float],
        k: int,
        *,
        embedding_model: str | None = None,
    ) -> Sequence[RetrievedChunk]:
        if k <= 0:
            return []
        try:
            results = self._collection.query(
                query_embeddings=[list(vector)],
                n_results=k,
                where=self._where(namespace, embedding_model),
            )
        except Exception as exc:
            raise IndexQueryError(f"Similarity query failed for namespace {namespace}: {exc}") from exc
        retrieved = self._deserialize_results(results)
        retrieved.sort(key=lambda item: item.score, reverse=True)
        return retrieved[:k]

    def count(self, namespace: str | None = None) -> int:
        if namespace is None:
            return int(self._collection.count())
        batch = self._collection.get(where={"namespace": namespace}, include=["metadatas"])
        return len(batch.get("ids") or [])

    def count_by_namespace(self) -> Mapping[str, int]:
        counts: dict[str, int] = {}
        for metadata in self._iter_metadatas():
            ns = str(metadata.get("namespace", ""))
            counts[ns] = counts.get(ns, 0) + 1
        return counts

    def evict_older_than(self, cutoff: float) -> List[str]:
        """Delete every namespace whose chunks were written before ``cutoff`` (epoch seconds)."""

        stale: set[str] = set()
        for metadata in self._iter_metadatas():
            created_at = metadata.get("created_at")
            if isinstance(created_at, (int, float)) and created_at < cutoff:
                stale.add(str(metadata.get("namespace", "")))
        for namespace in sorted(stale):
            try:
                self._collection.delete(where={"namespace": namespace})
            except Exception as exc:
                raise IndexWriteError(f"Failed to evict namespace {namespace}: {exc}") from exc
        return sorted(stale)

    def _iter_metadatas(self) -> Iterable[Mapping[str, Any]]:
        limit = 1000
        offset = 0
        while True:
            batch = self._collection.get(include=["metadatas"], limit=limit, offset=offset)
            metadatas = batch.get("metadatas") or []
            for metadata in metadatas:
                if isinstance(metadata, Mapping):
                    yield metadata
            if len(metadatas) < limit:
                return
            offset += limit

    @staticmethod
    def _where(namespace: str, embedding_model: str | None) -> Dict[str, Any]:
        if embedding_model is None:
            return {"namespace": namespace}
        return {"$and": [{"namespace": namespace}, {"embedding_model": embedding_model}]}

    @staticmethod
    def _point_id(namespace: str, chunk: Chunk) -> str:
        return f"{namespace}:{chunk.chunk_id}"

    @staticmethod
    def _serialize_chunk(
        chunk: Chunk,
        namespace: str,
        *,
        embedding_model: str | None,
        created_at: float,
    ) -> MutableMapping[str, object]:
        metadata: MutableMapping[str, object] = {
            "namespace": namespace,
            "chunk_id": chunk.chunk_id,
            "document_id": chunk.document_id,
            "order": chunk.order,
            "start_index": chunk.start_index,
            "created_at": created_at,
        }
        if embedding_model:
            metadata["embedding_model"] = embedding_model
        return metadata

    def _deserialize_results(self, results: Mapping[str, object]) -> List[RetrievedChunk]:
        ids = self._first(results.get("ids"))
        documents = self._first(results.get("documents"))
        metadatas = self._first(results.get("metadatas"))
        distances = self._first(results.get("distances"))
        retrieved: List[RetrievedChunk] = []
        if not ids or not documents or not metadatas:
            return retrieved
        for index, (document, metadata) in enumerate(zip(documents, metadatas)):
            distance = distances[index] if index < len(distances) else None
            retrieved.append(self._deserialize_chunk(document, metadata or {}, distance))
        return retrieved

    @staticmethod
    def _deserialize_chunk(document: str, metadata: Mapping[str, object], distance: float | None) -> RetrievedChunk:
        chunk = Chunk(
            chunk_id=str(metadata.get("chunk_id", "")),
            text=document,
            document_id=str(metadata.get("document_id", "")),
            order=int(metadata.get("order", 0)),
            start_index=int(metadata.get("start_index", 0)),
        )
        score = 1.0 - float(distance) if distance is not None else 0.0
        return RetrievedChunk(chunk=chunk, score=score)

    @staticmethod
    def _first(value: object) -> list:
        if isinstance(value, list) and value:
            return list(value[0] or [])
        return []
