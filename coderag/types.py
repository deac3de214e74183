from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Tuple

AgentMode = Literal["summary", "code", "chat"]


@dataclass(frozen=True)
class ChunkRecord:
    id: int
    rel_path: str
    text: str


@dataclass(frozen=True)
class IndexedDoc:
    id: int
    rel_path: str
    text: str
    tokens: Tuple[str, ...]


@dataclass(frozen=True)
class ScoredDoc:
    doc: IndexedDoc
    score: float


@dataclass(frozen=True)
class SourceFile:
    """Outcome of reading one file: ``text`` is set, or ``skip_reason`` is."""

    path: str
    rel_path: str
    text: str | None = None
    skip_reason: str | None = None

    @property
    def readable(self) -> bool:
        return self.text is not None


@dataclass
class MergedCandidate:
    doc: IndexedDoc
    raw_max: float = 0.0
    norm_max: float = 0.0
    query_hits: int = 0
    rank_score: float = 0.0


@dataclass(frozen=True)
class RetrievedHit:
    id: int
    rel_path: str
    text: str
    score: float
    bm25_score: float
    query_coverage: float
    path_boost: float
    llm_score: float | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "relPath": self.rel_path,
            "score": self.score,
            "bm25Score": self.bm25_score,
            "queryCoverage": self.query_coverage,
            "pathBoost": self.path_boost,
            "llmScore": self.llm_score,
            "text": self.text,
        }


@dataclass(frozen=True)
class RouteResult:
    mode: AgentMode
    queries: Tuple[str, ...]
    routed_by_llm: bool = False


@dataclass(frozen=True)
class RerankOutcome:
    hits: Tuple[RetrievedHit, ...]
    applied: bool
    reason: str = ""
    scores: Dict[int, float] = field(default_factory=dict)
