import pytest

from coderag.config import ConfigError, Settings

ENV_VARS = (
    "LLM_BASE_URL",
    "LLM_API_KEY",
    "LLM_MODEL",
    "TEMPERATURE",
    "CHUNK_SIZE",
    "CHUNK_OVERLAP",
    "RAG_TOP_K",
    "RAG_RECALL_K",
    "RAG_RERANK_CANDIDATES",
    "RAG_ENABLE_RERANK",
    "RAG_READ_CHARS",
    "ANSWER_LANGUAGE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings.from_env()

    assert settings.chunk_size == 800
    assert settings.chunk_overlap == 120
    assert settings.top_k == 8
    assert settings.recall_k == 40
    assert settings.rerank_candidates == 20
    assert settings.enable_rerank
    assert settings.context_max_chars == 8000
    assert "the" in settings.stop_words


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("CHUNK_SIZE", "100")
    monkeypatch.setenv("CHUNK_OVERLAP", "0")
    monkeypatch.setenv("RAG_ENABLE_RERANK", "0")
    monkeypatch.setenv("LLM_MODEL", "local-coder")

    settings = Settings.from_env()

    assert settings.chunk_size == 100
    assert settings.chunk_overlap == 0
    assert not settings.enable_rerank
    assert settings.llm_model == "local-coder"


def test_non_numeric_env_names_the_variable(monkeypatch):
    monkeypatch.setenv("RAG_TOP_K", "eight")

    with pytest.raises(ConfigError, match="RAG_TOP_K"):
        Settings.from_env()


def test_validate_names_the_field():
    with pytest.raises(ConfigError, match="chunk_size"):
        Settings(chunk_size=0).validate()
    with pytest.raises(ConfigError, match="chunk_overlap"):
        Settings(chunk_overlap=-1).validate()
    with pytest.raises(ConfigError, match="top_k"):
        Settings().replace(top_k=-3)


def test_overlap_may_exceed_size():
    settings = Settings(chunk_size=10, chunk_overlap=50).validate()

    assert settings.chunk_overlap == 50
