"""Construction of the pipeline's collaborators from settings."""

from __future__ import annotations

from dataclasses import dataclass

import chromadb

from resumechat.config import Settings
from resumechat.embeddings import ChromaVectorIndex, EmbeddingBackend, EmbeddingConfig, HuggingFaceEmbeddingBackend
from resumechat.ingestion import IngestionConfig, IngestionPipeline
from resumechat.retrieval.service import RetrievalConfig, VectorIndexRetriever
from resumechat.services.generation import (
    GenerationConfig,
    TemplateGenerator,
    TransformersGenerator,
    build_generation_executor,
)
from resumechat.services.query import ConversationalQueryService
from resumechat.services.rewriter import QueryRewriter
from resumechat.services.session import ConversationSession
from resumechat.services.synthesis import AnswerSynthesizer, PromptBuilder


@dataclass(frozen=True)
class AppDependencies:
    ingestion: IngestionPipeline
    index: ChromaVectorIndex
    embedder: EmbeddingBackend
    query_service: ConversationalQueryService

    def new_session(self) -> ConversationSession:
        return ConversationSession(self.query_service, ingestion=self.ingestion)


def build_index(settings: Settings) -> ChromaVectorIndex:
    if settings.chroma_host:
        client = chromadb.HttpClient(
            host=settings.chroma_host,
            port=settings.chroma_port or 8000,
            ssl=settings.chroma_ssl,
        )
        return ChromaVectorIndex(settings.chroma_collection, client=client)
    if settings.chroma_ephemeral:
        return ChromaVectorIndex(settings.chroma_collection, client=chromadb.EphemeralClient())
    return ChromaVectorIndex(settings.chroma_collection, persist_directory=settings.chroma_persist_dir)


def build_dependencies(settings: Settings) -> AppDependencies:
    # One embedder instance serves both ingestion and retrieval.
    embedder = HuggingFaceEmbeddingBackend(
        EmbeddingConfig(
            model=settings.embedding_model,
            dim=settings.embedding_dim,
            use_model=settings.use_model_embeddings,
            normalize=True,
        ),
    )
    index = build_index(settings)
    ingestion = IngestionPipeline(
        embedder,
        index,
        config=IngestionConfig(
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            batch_size=settings.embedding_batch_size,
            max_concurrency=settings.ingestion_max_concurrency,
        ),
    )
    generator = TransformersGenerator(
        GenerationConfig(
            model=settings.generator_model,
            max_new_tokens=settings.generator_max_new_tokens,
            temperature=settings.generator_temperature,
            use_model=settings.use_model_generator,
        ),
        fallback=TemplateGenerator(),
    )
    timeout = settings.generation_timeout_seconds
    workers = settings.generation_max_workers
    rewrite_pool = build_generation_executor(workers, name="rewrite") if timeout is not None else None
    synthesis_pool = build_generation_executor(workers, name="synthesis") if timeout is not None else None
    query_service = ConversationalQueryService(
        rewriter=QueryRewriter(generator, timeout=timeout, executor=rewrite_pool),
        retriever=VectorIndexRetriever(embedder, index, RetrievalConfig(top_k=settings.retrieval_top_k)),
        synthesizer=AnswerSynthesizer(generator, PromptBuilder(), timeout=timeout, executor=synthesis_pool),
    )
    return AppDependencies(ingestion=ingestion, index=index, embedder=embedder, query_service=query_service)
