"""Tests for the FastAPI application."""

from __future__ import annotations

from dataclasses import replace
from io import BytesIO
from uuid import uuid4

from fastapi.testclient import TestClient

from resumechat.api.app import create_app
from resumechat.config import Settings
from resumechat.dependencies import build_dependencies
from resumechat.errors import GenerationError
from resumechat.services.prompts import FAILED_TURN_MESSAGE

RESUME = (
    b"Jane Doe is a senior software engineer at Acme Corp since 2019.\n\n"
    b"Education: BSc in Computer Science from State University.\n\n"
    b"Hobbies: rock climbing and chess."
)


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "test",
        "use_model_embeddings": False,
        "use_model_generator": False,
        "chroma_host": None,
        "chroma_ephemeral": True,
        "chroma_collection": f"api-{uuid4().hex}",
        "embedding_dim": 64,
        "chunk_size": 120,
        "chunk_overlap": 20,
    }
    values.update(overrides)
    return Settings(**values)


def make_client(**overrides) -> TestClient:
    return TestClient(create_app(settings=make_settings(**overrides)))


def upload(client: TestClient, name: str = "resume.txt", content: bytes = RESUME):
    files = {"file": (name, BytesIO(content), "text/plain")}
    return client.post("/api/upload", files=files)


class FailingQueryService:
    def run_turn(self, question, namespace, history=(), *, cancel_event=None):
        raise GenerationError("provider unavailable")


def test_root_reports_running():
    client = make_client()
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "Resume Chatbot API is running!"


def test_upload_then_chat_flow():
    client = make_client()

    response = upload(client)
    assert response.status_code == 200, response.text
    body = response.json()
    namespace = body["namespace"]
    assert len(namespace) == 32
    assert body["message"] == "File uploaded and processed successfully."
    assert body["chunk_count"] >= 1

    payload = {"question": "Where does Jane work as a software engineer?", "namespace": namespace, "history": []}
    response = client.post("/api/chat", json=payload)
    assert response.status_code == 200, response.text
    first_answer = response.json()["answer"]
    assert "Acme Corp" in first_answer

    payload = {
        "question": "What did she study?",
        "namespace": namespace,
        "history": [
            {"role": "human", "content": "Where does Jane work as a software engineer?"},
            {"role": "ai", "content": first_answer},
        ],
    }
    response = client.post("/api/chat", json=payload)
    assert response.status_code == 200, response.text
    assert response.json()["answer"]

    stats = client.get("/index/stats").json()
    assert stats["total_chunks"] == body["chunk_count"]
    assert stats["namespaces"] == [{"namespace": namespace, "chunks": body["chunk_count"]}]


def test_each_upload_gets_its_own_namespace():
    client = make_client()
    first = upload(client).json()["namespace"]
    second = upload(client).json()["namespace"]
    assert first != second


def test_chat_requires_question_and_namespace():
    client = make_client()
    response = client.post("/api/chat", json={"namespace": "abc", "history": []})
    assert response.status_code == 400
    assert response.json()["error"] == "Question and namespace are required."

    response = client.post("/api/chat", json={"question": "Where?", "history": []})
    assert response.status_code == 400


def test_chat_treats_null_fields_as_missing():
    client = make_client()
    namespace = upload(client).json()["namespace"]

    response = client.post("/api/chat", json={"question": "Where does Jane work?", "namespace": namespace, "history": None})
    assert response.status_code == 200, response.text
    assert response.json()["answer"]

    response = client.post("/api/chat", json={"question": None, "namespace": namespace, "history": []})
    assert response.status_code == 400
    assert response.json()["error"] == "Question and namespace are required."

    response = client.post("/api/chat", json={"question": "Where?", "namespace": None})
    assert response.status_code == 400


def test_chat_against_unknown_namespace_still_answers():
    client = make_client()
    upload(client)
    response = client.post("/api/chat", json={"question": "Where does Jane work?", "namespace": "missing"})
    assert response.status_code == 200
    assert "does not provide" in response.json()["answer"]


def test_upload_without_file_is_rejected():
    client = make_client()
    response = client.post("/api/upload")
    assert response.status_code == 400
    assert response.json()["error"] == "No file uploaded."


def test_upload_rejects_unsupported_type():
    client = make_client()
    response = upload(client, name="resume.exe", content=b"MZ")
    assert response.status_code == 415
    assert response.json()["error"] == "Unsupported file type: .exe"


def test_upload_rejects_empty_file():
    client = make_client()
    response = upload(client, content=b"")
    assert response.status_code == 400
    assert response.json()["error"].startswith("File is empty")


def test_upload_rejects_oversized_file():
    client = make_client(max_upload_size_mb=1)
    response = upload(client, content=b"a" * (1024 * 1024 + 1))
    assert response.status_code == 413
    assert "error" in response.json()


def test_upload_rejects_unreadable_document():
    client = make_client()
    response = upload(client, content=b"   \n\n   ")
    assert response.status_code == 422


def test_pipeline_failure_returns_apology():
    settings = make_settings()
    deps = replace(build_dependencies(settings), query_service=FailingQueryService())
    client = TestClient(create_app(settings=settings, dependencies=deps))

    response = client.post("/api/chat", json={"question": "Where?", "namespace": "abc"})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == FAILED_TURN_MESSAGE
    assert body["correlation_id"]
    assert "provider unavailable" not in response.text


def test_correlation_id_is_echoed():
    client = make_client()
    response = client.get("/livez", headers={"X-Request-ID": "req-123"})
    assert response.status_code == 200
    assert response.headers["X-Correlation-ID"] == "req-123"


def test_health_and_metrics_endpoints():
    client = make_client()
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["environment"] == "test"

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "resumechat_" in response.text
