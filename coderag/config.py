from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import FrozenSet, Tuple

from dotenv import load_dotenv

DEFAULT_STOP_WORDS: FrozenSet[str] = frozenset(
    {
        "的", "了", "和", "是", "在", "我", "要", "把",
        "to", "the", "a", "an", "for", "and", "or", "is", "are",
    }
)
DEFAULT_SCAN_EXTENSIONS: Tuple[str, ...] = (".js", ".ts", ".tsx", ".json", ".md", ".txt", ".py")
DEFAULT_IGNORE_DIRS: FrozenSet[str] = frozenset({"node_modules", ".git", "dist", "build"})

_POSITIVE_INT_FIELDS = (
    "chunk_size",
    "top_k",
    "recall_k",
    "rerank_candidates",
    "read_chars",
)


class ConfigError(ValueError):
    """Raised for configuration values that cannot be used."""


def _get_env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


def _get_env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


def _get_env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


def _get_env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if not value:
        return default
    return value.strip() != "0"


@dataclass(frozen=True)
class Settings:
    """Per-run configuration, built once and passed to every stage."""

    llm_base_url: str = "https://dashscope.aliyuncs.com/compatible-mode/v1"
    llm_api_key: str = ""
    llm_model: str = "qwen3-coder-plus"
    temperature: float = 0.2
    chunk_size: int = 800
    chunk_overlap: int = 120
    top_k: int = 8
    recall_k: int = 40
    rerank_candidates: int = 20
    enable_rerank: bool = True
    read_chars: int = 4000
    answer_language: str = "Chinese"
    stop_words: FrozenSet[str] = DEFAULT_STOP_WORDS
    scan_extensions: Tuple[str, ...] = DEFAULT_SCAN_EXTENSIONS
    ignore_dirs: FrozenSet[str] = DEFAULT_IGNORE_DIRS

    @property
    def context_max_chars(self) -> int:
        return self.read_chars * 2

    def validate(self) -> "Settings":
        for name in _POSITIVE_INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(f"'{name}' must be a positive integer, got {value!r}")
        overlap = self.chunk_overlap
        if isinstance(overlap, bool) or not isinstance(overlap, int) or overlap < 0:
            raise ConfigError(f"'chunk_overlap' must be a non-negative integer, got {overlap!r}")
        if not 0.0 <= float(self.temperature) <= 2.0:
            raise ConfigError(f"'temperature' must be between 0 and 2, got {self.temperature!r}")
        return self

    def replace(self, **overrides: object) -> "Settings":
        return dataclasses.replace(self, **overrides).validate()

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        settings = cls(
            llm_base_url=_get_env_str("LLM_BASE_URL", cls.llm_base_url),
            llm_api_key=_get_env_str("LLM_API_KEY", ""),
            llm_model=_get_env_str("LLM_MODEL", cls.llm_model),
            temperature=_get_env_float("TEMPERATURE", cls.temperature),
            chunk_size=_get_env_int("CHUNK_SIZE", cls.chunk_size),
            chunk_overlap=_get_env_int("CHUNK_OVERLAP", cls.chunk_overlap),
            top_k=_get_env_int("RAG_TOP_K", cls.top_k),
            recall_k=_get_env_int("RAG_RECALL_K", cls.recall_k),
            rerank_candidates=_get_env_int("RAG_RERANK_CANDIDATES", cls.rerank_candidates),
            enable_rerank=_get_env_flag("RAG_ENABLE_RERANK", cls.enable_rerank),
            read_chars=_get_env_int("RAG_READ_CHARS", cls.read_chars),
            answer_language=_get_env_str("ANSWER_LANGUAGE", cls.answer_language),
        )
        return settings.validate()
