"""Embedding backends for ResumeChat."""

from __future__ import annotations

import hashlib
import logging
import math
import re
from dataclasses import dataclass
from typing import List, Protocol, Sequence, Tuple

from langchain_community.embeddings import HuggingFaceEmbeddings
from langchain_core.embeddings import Embeddings as LangChainEmbeddings

from resumechat.errors import EmbeddingError

LOGGER = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


@dataclass(frozen=True)
class EmbeddingConfig:
    """Configuration for embedding backends."""

    model: str = "BAAI/bge-small-en-v1.5"
    dim: int = 384
    use_model: bool = False
    device: str | None = None
    normalize: bool = True
    cache_folder: str | None = None


class EmbeddingBackend(Protocol):
    """Protocol describing embedding behaviour."""

    @property
    def identifier(self) -> str:
        """Name of the embedding space; vectors from different spaces never mix."""

    def embed_documents(self, texts: Sequence[str]) -> Sequence[Tuple[float, ...]]:
        """Return one vector per text, in order."""

    def embed_query(self, query: str) -> Tuple[float, ...]:
        """Return embedding vector for a query string."""


def _l2_normalize(vector: Sequence[float]) -> Tuple[float, ...]:
    norm = math.sqrt(sum(value * value for value in vector)) or 1.0
    return tuple(value / norm for value in vector)


class HashEmbeddingBackend:
    """Deterministic feature-hashed bag-of-words embeddings for tests and offline use.

    Each lowercased word token is hashed into a signed bucket, so texts that share
    vocabulary end up close in cosine space.
    """

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self._config = config or EmbeddingConfig()

    @property
    def identifier(self) -> str:
        return f"hash-{self._config.dim}"

    def _hash_to_vector(self, text: str) -> Tuple[float, ...]:
        dim = self._config.dim
        vector = [0.0] * dim
        tokens = _TOKEN_RE.findall(text.lower())
        for token in tokens:
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "big") % dim
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign
        if not any(vector):
            # No word tokens: fall back to a digest of the raw text so the vector is non-zero.
            digest = hashlib.sha256(text.encode("utf-8")).digest()
            repeat = (dim + len(digest) - 1) // len(digest)
            vector = [byte / 255.0 + 1e-3 for byte in (digest * repeat)[:dim]]
        if self._config.normalize:
            return _l2_normalize(vector)
        return tuple(vector)

    def embed_documents(self, texts: Sequence[str]) -> List[Tuple[float, ...]]:
        return [self._hash_to_vector(text) for text in texts]

    def embed_query(self, query: str) -> Tuple[float, ...]:
        return self._hash_to_vector(query)


class HuggingFaceEmbeddingBackend:
    """Embedding backend that optionally leverages sentence-transformers models via LangChain."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self._config = config or EmbeddingConfig()
        self._delegate = HashEmbeddingBackend(self._config)
        self._client: LangChainEmbeddings | None = None
        if not self._config.use_model:
            LOGGER.info("HuggingFaceEmbeddingBackend running in hash-only mode.")
            return
        try:
            model_kwargs = {"device": self._config.device} if self._config.device else {}
            self._client = HuggingFaceEmbeddings(
                model_name=self._config.model,
                model_kwargs=model_kwargs,
                cache_folder=self._config.cache_folder,
                encode_kwargs={"normalize_embeddings": self._config.normalize},
            )
            LOGGER.info("Loaded embedding model %s", self._config.model)
        except Exception as exc:  # pragma: no cover - optional model dependencies
            LOGGER.warning("Falling back to hash embeddings: %s", exc)
            self._client = None

    @property
    def identifier(self) -> str:
        if self._client is None:
            return self._delegate.identifier
        return self._config.model

    def embed_documents(self, texts: Sequence[str]) -> List[Tuple[float, ...]]:
        if not texts:
            return []
        if self._client is None:
            return self._delegate.embed_documents(texts)
        try:
            vectors = self._client.embed_documents(list(texts))
        except Exception as exc:
            raise EmbeddingError(f"Embedding model {self._config.model} failed: {exc}") from exc
        if len(vectors) != len(texts):
            LOGGER.error("Embedding backend returned %d vectors for %d texts", len(vectors), len(texts))
            raise EmbeddingError("Mismatch between number of texts and embedding vectors")
        if vectors and len(vectors[0]) != self._config.dim:
            LOGGER.warning(
                "Embedding dim mismatch: configured=%d, actual=%d",
                self._config.dim,
                len(vectors[0]),
            )
        return [self._normalize(tuple(vector)) for vector in vectors]

    def embed_query(self, query: str) -> Tuple[float, ...]:
        if self._client is None:
            return self._delegate.embed_query(query)
        try:
            vector = tuple(self._client.embed_query(query))
        except Exception as exc:
            raise EmbeddingError(f"Embedding model {self._config.model} failed: {exc}") from exc
        return self._normalize(vector)

    def _normalize(self, vector: Tuple[float, ...]) -> Tuple[float, ...]:
        if not self._config.normalize:
            return vector
        return _l2_normalize(vector)
