"""FastAPI application exposing the upload and chat surfaces."""

from __future__ import annotations

import tempfile
from pathlib import Path
from uuid import uuid4

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from resumechat.api.schemas import ChatRequest, ChatResponse, IndexStatsResponse, NamespaceStats, UploadResponse
from resumechat.config import Settings, get_settings
from resumechat.dependencies import AppDependencies, build_dependencies
from resumechat.errors import DocumentLoadError, InvalidRequestError, ResumeChatError
from resumechat.metrics.observability import (
    PipelineMetrics,
    bind_correlation_id,
    clear_correlation_id,
    configure_logging,
    get_logger,
)
from resumechat.services.prompts import FAILED_TURN_MESSAGE

UPLOAD_FAILED_MESSAGE = "Failed to process file."


def create_app(*, settings: Settings | None = None, dependencies: AppDependencies | None = None) -> FastAPI:
    settings = settings or get_settings()
    deps = dependencies or build_dependencies(settings)

    configure_logging()
    logger = get_logger("api")
    app = FastAPI(title="ResumeChat API", version="0.1.0")
    app.state.dependencies = deps

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_allow_origins),
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=list(settings.cors_allow_methods),
            allow_headers=list(settings.cors_allow_headers),
        )

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Request-ID", uuid4().hex)
        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    def _error(request: Request, status_code: int, message: str, exc: Exception) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        logger.error(
            "request.error",
            correlation_id=correlation_id,
            path=request.url.path,
            error_type=type(exc).__name__,
            detail=str(exc),
        )
        return JSONResponse(status_code=status_code, content={"error": message, "correlation_id": correlation_id})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        response = _error(request, exc.status_code, str(exc.detail), exc)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(InvalidRequestError)
    async def handle_invalid_request(request: Request, exc: InvalidRequestError) -> JSONResponse:
        return _error(request, status.HTTP_400_BAD_REQUEST, "Question and namespace are required.", exc)

    @app.exception_handler(DocumentLoadError)
    async def handle_document_load_error(request: Request, exc: DocumentLoadError) -> JSONResponse:
        return _error(request, status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc), exc)

    @app.exception_handler(ResumeChatError)
    async def handle_pipeline_error(request: Request, exc: ResumeChatError) -> JSONResponse:
        message = UPLOAD_FAILED_MESSAGE if request.url.path.endswith("/upload") else FAILED_TURN_MESSAGE
        return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, message, exc)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", exc)

    def get_dependencies(request: Request) -> AppDependencies:
        return request.app.state.dependencies

    @app.get("/")
    async def root() -> Response:
        return Response(content="Resume Chatbot API is running!", media_type="text/plain")

    @app.post("/api/upload", response_model=UploadResponse)
    async def upload_document(
        file: UploadFile | None = File(default=None),
        dep: AppDependencies = Depends(get_dependencies),
    ) -> UploadResponse:
        if file is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded.")
        filename = Path(file.filename or f"upload-{uuid4().hex}").name
        suffix = Path(filename).suffix.lower()
        if suffix not in set(settings.allowed_extensions_tuple):
            await file.close()
            raise HTTPException(
                status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                detail=f"Unsupported file type: {suffix or 'unknown'}",
            )
        size_limit = settings.max_upload_size_mb * 1024 * 1024
        with tempfile.TemporaryDirectory() as tmpdir:
            destination = Path(tmpdir) / filename
            bytes_written = 0
            with destination.open("wb") as out_f:
                while True:
                    block = await file.read(1024 * 1024)
                    if not block:
                        break
                    bytes_written += len(block)
                    if bytes_written > size_limit:
                        await file.close()
                        raise HTTPException(
                            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                            detail=f"File too large (>{settings.max_upload_size_mb}MB): {filename}",
                        )
                    out_f.write(block)
            await file.close()
            if bytes_written == 0:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"File is empty: {filename}")
            result = await run_in_threadpool(dep.ingestion.ingest_document, destination)
        return UploadResponse(
            namespace=result.namespace,
            message="File uploaded and processed successfully.",
            chunk_count=result.chunk_count,
        )

    @app.post("/api/chat", response_model=ChatResponse)
    def chat(payload: ChatRequest, dep: AppDependencies = Depends(get_dependencies)) -> ChatResponse:
        result = dep.query_service.run_turn(payload.question, payload.namespace, payload.history_turns())
        return ChatResponse(answer=result.answer)

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        from resumechat import __version__

        return {"status": "ok", "version": __version__, "environment": settings.environment}

    @app.get("/livez")
    async def liveness() -> dict[str, str]:
        return {"status": "alive"}

    @app.get("/index/stats", response_model=IndexStatsResponse)
    def index_stats(dep: AppDependencies = Depends(get_dependencies)) -> IndexStatsResponse:
        by_namespace = dep.index.count_by_namespace()
        for namespace, count in by_namespace.items():
            PipelineMetrics.namespace_chunk_count.labels(namespace=namespace).set(count)
        return IndexStatsResponse(
            collection=settings.chroma_collection,
            total_chunks=dep.index.count(),
            namespaces=[NamespaceStats(namespace=k, chunks=v) for k, v in sorted(by_namespace.items())],
        )

    return app


def __getattr__(name: str) -> FastAPI:
    # Lazily build the default app for `uvicorn resumechat.api.app:app`.
    if name == "app":
        application = create_app()
        globals()["app"] = application
        return application
    raise AttributeError(name)
