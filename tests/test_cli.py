from __future__ import annotations

import io
from pathlib import Path
from uuid import uuid4

import pytest

from resumechat.cli import parse_args, run_chat, run_evict, run_ingest
from resumechat.config import Settings
from resumechat.dependencies import build_dependencies
from resumechat.services.session import SessionState


def _settings() -> Settings:
    return Settings(
        environment="test",
        chroma_ephemeral=True,
        chroma_collection=f"cli-{uuid4().hex}",
        embedding_dim=64,
        chunk_size=120,
        chunk_overlap=20,
    )


def _scripted(*lines: str):
    queue = list(lines)

    def read_line(prompt: str) -> str:
        if not queue:
            raise EOFError
        return queue.pop(0)

    return read_line


def _resume(tmp_path: Path) -> Path:
    path = tmp_path / "resume.txt"
    path.write_text(
        "Jane Doe is a senior software engineer at Acme Corp since 2019.\n\n"
        "Education: BSc in Computer Science from State University.",
        encoding="utf-8",
    )
    return path


def test_ingest_prints_namespace(tmp_path: Path):
    deps = build_dependencies(_settings())
    out = io.StringIO()

    code = run_ingest(_resume(tmp_path), deps, out)

    namespace = out.getvalue().strip()
    assert code == 0
    assert len(namespace) == 32
    assert deps.index.count(namespace) >= 1


def test_ingest_failure_returns_non_zero(tmp_path: Path):
    out = io.StringIO()
    code = run_ingest(tmp_path / "missing.pdf", build_dependencies(_settings()), out)
    assert code == 1
    assert out.getvalue() == ""


def test_chat_loop_answers_until_exit(tmp_path: Path):
    deps = build_dependencies(_settings())
    session = deps.new_session()
    session.load_document(_resume(tmp_path))
    out = io.StringIO()

    code = run_chat(session, read_line=_scripted("Where does Jane work as a software engineer?", "", "exit"), out=out)

    transcript = out.getvalue()
    assert code == 0
    assert transcript.count("AI: ") == 1
    assert "Acme Corp" in transcript
    assert transcript.rstrip().endswith("Goodbye!")
    assert len(session.history) == 2


def test_chat_loop_new_command_resets_session(tmp_path: Path):
    deps = build_dependencies(_settings())
    session = deps.new_session()
    session.load_document(_resume(tmp_path))
    out = io.StringIO()

    run_chat(session, read_line=_scripted("/new"), out=out)

    assert session.state is SessionState.AWAITING_DOCUMENT
    assert "Conversation cleared" in out.getvalue()


def test_evict_without_ttl_is_a_usage_error():
    assert run_evict(_settings(), None, io.StringIO()) == 2


def test_parse_args_requires_a_chat_target():
    args = parse_args(["chat", "--namespace", "abc"])
    assert args.namespace == "abc"
    with pytest.raises(SystemExit):
        parse_args(["chat"])
