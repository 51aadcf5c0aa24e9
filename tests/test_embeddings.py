from __future__ import annotations

import math

from resumechat.embeddings.service import EmbeddingConfig, HashEmbeddingBackend, HuggingFaceEmbeddingBackend


def _cosine(a, b) -> float:
    return sum(x * y for x, y in zip(a, b))


def test_hash_embedding_dim_matches_config():
    backend = HashEmbeddingBackend(EmbeddingConfig(dim=64))
    vec = backend.embed_query("hello world")
    assert isinstance(vec, tuple)
    assert len(vec) == 64
    assert math.isclose(math.sqrt(sum(v * v for v in vec)), 1.0, rel_tol=1e-6)


def test_hash_embedding_documents_returns_one_vector_per_text():
    backend = HashEmbeddingBackend(EmbeddingConfig(dim=32))
    vectors = backend.embed_documents(["alpha", "beta", "gamma"])
    assert len(vectors) == 3
    assert all(len(vector) == 32 for vector in vectors)


def test_hash_embedding_is_deterministic_and_query_consistent():
    backend = HashEmbeddingBackend(EmbeddingConfig(dim=64))
    assert backend.embed_query("Acme Corp") == backend.embed_documents(["Acme Corp"])[0]


def test_shared_vocabulary_scores_higher():
    backend = HashEmbeddingBackend(EmbeddingConfig(dim=256))
    query = backend.embed_query("python backend engineer")
    related = backend.embed_query("Senior backend engineer writing python services")
    unrelated = backend.embed_query("Enjoys hiking mountains and photography")
    assert _cosine(query, related) > _cosine(query, unrelated)


def test_text_without_words_still_gets_a_vector():
    backend = HashEmbeddingBackend(EmbeddingConfig(dim=16))
    vector = backend.embed_query("---")
    assert any(vector)


def test_model_backend_in_hash_mode_reports_hash_identifier():
    backend = HuggingFaceEmbeddingBackend(EmbeddingConfig(dim=16, use_model=False))
    assert backend.identifier == "hash-16"
    assert backend.embed_documents([]) == []
    assert len(backend.embed_query("resume")) == 16
