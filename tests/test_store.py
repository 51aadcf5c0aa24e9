from __future__ import annotations

from uuid import uuid4

import chromadb
import pytest

from resumechat.embeddings.service import EmbeddingConfig, HashEmbeddingBackend
from resumechat.embeddings.store import ChromaVectorIndex
from resumechat.errors import IndexQueryError
from resumechat.models import Chunk, EmbeddedChunk

BACKEND = HashEmbeddingBackend(EmbeddingConfig(dim=32))


def _index(**kwargs) -> ChromaVectorIndex:
    return ChromaVectorIndex(f"test-{uuid4().hex}", client=chromadb.EphemeralClient(), **kwargs)


def _embedded(doc_id: str, text: str, order: int) -> EmbeddedChunk:
    chunk = Chunk(chunk_id=f"{doc_id}-{order}", text=text, document_id=doc_id, order=order, start_index=order * 10)
    return EmbeddedChunk(chunk=chunk, vector=BACKEND.embed_query(text))


def test_upsert_and_query_round_trip():
    index = _index()
    index.upsert("ns-a", [_embedded("d1", "alpha beta gamma", 0), _embedded("d1", "lorem ipsum", 1)])

    results = index.query("ns-a", BACKEND.embed_query("alpha beta"), 2)

    assert len(results) == 2
    assert results[0].chunk.text == "alpha beta gamma"
    assert results[0].score >= results[1].score
    assert results[0].chunk.document_id == "d1"
    assert results[0].chunk.start_index == 0


def test_namespaces_are_isolated():
    index = _index()
    index.upsert("ns-a", [_embedded("a", "alpha", 0)])
    index.upsert("ns-b", [_embedded("b", "bravo", 0)])

    from_a = index.query("ns-a", BACKEND.embed_query("bravo"), 5)
    from_b = index.query("ns-b", BACKEND.embed_query("alpha"), 5)

    assert [item.chunk.document_id for item in from_a] == ["a"]
    assert [item.chunk.document_id for item in from_b] == ["b"]


def test_unknown_namespace_returns_nothing():
    index = _index()
    index.upsert("ns-a", [_embedded("a", "alpha", 0)])
    assert index.query("missing", BACKEND.embed_query("alpha"), 3) == []
    assert index.query("ns-a", BACKEND.embed_query("alpha"), 0) == []


def test_query_is_restricted_to_embedding_model():
    index = _index()
    index.upsert("ns-a", [_embedded("a", "alpha", 0)], embedding_model="hash-32")

    assert index.query("ns-a", BACKEND.embed_query("alpha"), 3, embedding_model="hash-32")
    assert index.query("ns-a", BACKEND.embed_query("alpha"), 3, embedding_model="other-model") == []


def test_count_by_namespace():
    index = _index()
    index.upsert("ns1", [_embedded("a", "alpha", 0), _embedded("a", "bravo", 1)])
    index.upsert("ns2", [_embedded("b", "charlie", 0)])

    counts = index.count_by_namespace()

    assert counts == {"ns1": 2, "ns2": 1}
    assert index.count() == 3
    assert index.count("ns1") == 2


def test_evict_older_than_removes_only_stale_namespaces():
    now = [1_000.0]
    index = _index(clock=lambda: now[0])
    index.upsert("old", [_embedded("a", "alpha", 0)])
    now[0] = 5_000.0
    index.upsert("fresh", [_embedded("b", "bravo", 0)])

    evicted = index.evict_older_than(2_000.0)

    assert evicted == ["old"]
    assert index.count_by_namespace() == {"fresh": 1}


def test_query_failure_is_reported_as_index_query_error():
    index = _index()
    index.upsert("ns-a", [_embedded("a", "alpha", 0)])
    with pytest.raises(IndexQueryError):
        index.query("ns-a", [0.1, 0.2], 1)
