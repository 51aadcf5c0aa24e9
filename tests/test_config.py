from __future__ import annotations

import pytest
from pydantic import ValidationError

from resumechat.config import Settings, get_settings


def test_defaults_embedding_model_and_dim():
    settings = get_settings({})
    assert settings.embedding_model == "BAAI/bge-small-en-v1.5"
    assert settings.embedding_dim == 384


def test_pipeline_defaults():
    settings = get_settings({})
    assert settings.chunk_size == 1000
    assert settings.chunk_overlap == 100
    assert settings.ingestion_max_concurrency == 5
    assert settings.retrieval_top_k == 4
    assert settings.generator_temperature == 0.5
    assert settings.namespace_ttl_hours is None


def test_override_does_not_touch_cached_settings():
    overridden = get_settings({"retrieval_top_k": 8})
    assert overridden.retrieval_top_k == 8
    assert get_settings().retrieval_top_k == 4


def test_environment_variables_are_prefixed(monkeypatch):
    monkeypatch.setenv("RESUMECHAT_CHUNK_SIZE", "400")
    monkeypatch.setenv("RESUMECHAT_CHUNK_OVERLAP", "40")
    settings = Settings()
    assert (settings.chunk_size, settings.chunk_overlap) == (400, 40)


@pytest.mark.parametrize(
    "override",
    [
        {"chunk_size": 100, "chunk_overlap": 100},
        {"chunk_overlap": -1},
        {"ingestion_max_concurrency": 0},
    ],
)
def test_invalid_pipeline_settings_are_rejected(override):
    with pytest.raises(ValidationError):
        Settings(**override)


def test_allowed_extensions_accepts_comma_separated_string():
    settings = Settings(allowed_extensions=".PDF, .txt")
    assert settings.allowed_extensions_tuple == (".pdf", ".txt")
