from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet, Dict, FrozenSet, Iterable, List, Sequence, Tuple

from .bm25 import LexicalIndex, build_index, score_query
from .config import Settings
from .context import build_context
from .ingest import chunk_sources, load_sources
from .types import MergedCandidate, RetrievedHit
from .utils import round_score

logger = logging.getLogger(__name__)

MAX_QUERIES = 4

LEXICAL_WEIGHT = 0.55
COVERAGE_WEIGHT = 0.25
RANK_WEIGHT = 0.10
PATH_WEIGHT = 0.10

_FULL_PATH_RE = re.compile(r"[a-z0-9_./-]+\.[a-z0-9]+")
_SEGMENT_RE = re.compile(r"[a-z0-9_]{2,}")
_PATH_NOISE_RE = re.compile(r"[^a-z0-9._/-]+")


@dataclass(frozen=True)
class PathHints:
    # "src/app.ts", "a.js"
    full_paths: FrozenSet[str]
    # "agent", "retrieve"
    segments: FrozenSet[str]


def collect_queries(query: str, query_variants: Iterable[str] = ()) -> List[str]:
    queries: List[str] = []
    for raw in [query, *query_variants]:
        text = str(raw or "").strip()
        if text and text not in queries:
            queries.append(text)
    return queries[:MAX_QUERIES]


def normalize_path_token(value: str) -> str:
    return _PATH_NOISE_RE.sub(" ", str(value or "").lower()).strip()


def build_path_hints(queries: Sequence[str]) -> PathHints:
    joined = " ".join(queries).lower()
    return PathHints(
        full_paths=frozenset(_FULL_PATH_RE.findall(joined)),
        segments=frozenset(_SEGMENT_RE.findall(joined)),
    )


def calc_path_boost(rel_path: str, hints: PathHints) -> float:
    path = normalize_path_token(rel_path)
    if any(full and full in path for full in hints.full_paths):
        return 1.0
    hits = sum(1 for segment in hints.segments if len(segment) >= 3 and segment in path)
    if not hits:
        return 0.0
    return min(1.0, hits / 3)


def fused_score(norm_max: float, query_coverage: float, rank_norm: float, path_boost: float) -> float:
    return (
        LEXICAL_WEIGHT * norm_max
        + COVERAGE_WEIGHT * query_coverage
        + RANK_WEIGHT * rank_norm
        + PATH_WEIGHT * path_boost
    )


def _accumulate(
    index: LexicalIndex,
    queries: Sequence[str],
    recall_k: int,
    stop_words: AbstractSet[str] | None,
) -> Dict[int, MergedCandidate]:
    merged: Dict[int, MergedCandidate] = {}
    for query in queries:
        scored = score_query(index, query, stop_words, recall_k)
        # per-query max keeps score scales comparable across variants
        max_score = max((item.score for item in scored), default=0.0)
        for rank, item in enumerate(scored):
            entry = merged.get(item.doc.id)
            if entry is None:
                entry = merged[item.doc.id] = MergedCandidate(doc=item.doc)
            normalized = item.score / max_score if max_score > 0 else 0.0
            entry.raw_max = max(entry.raw_max, item.score)
            entry.norm_max = max(entry.norm_max, normalized)
            if item.score > 0:
                entry.query_hits += 1
            entry.rank_score += 1 / (rank + 1)
    return merged


def fuse_candidates(
    index: LexicalIndex,
    query: str,
    query_variants: Iterable[str] = (),
    *,
    recall_k: int,
    top_k: int,
    stop_words: AbstractSet[str] | None = None,
) -> List[RetrievedHit]:
    """Score every query variant and merge the results into one ranking.

    The fused score mixes the best normalized BM25 score, the share of queries
    that hit the chunk, a reciprocal-rank sum and a file-path bonus. Chunks with
    neither a lexical nor a path signal are dropped unless nothing else is left.
    """
    queries = collect_queries(query, query_variants)
    merged = _accumulate(index, queries, recall_k, stop_words)

    hints = build_path_hints(queries)
    total_queries = max(1, len(queries))

    hits: List[RetrievedHit] = []
    for entry in merged.values():
        query_coverage = entry.query_hits / total_queries
        rank_norm = min(1.0, entry.rank_score / total_queries)
        path_boost = calc_path_boost(entry.doc.rel_path, hints)
        hits.append(
            RetrievedHit(
                id=entry.doc.id,
                rel_path=entry.doc.rel_path,
                text=entry.doc.text,
                score=round_score(fused_score(entry.norm_max, query_coverage, rank_norm, path_boost)),
                bm25_score=round_score(entry.raw_max),
                query_coverage=round_score(query_coverage),
                path_boost=round_score(path_boost),
            )
        )
    hits.sort(key=lambda hit: (hit.score, hit.bm25_score), reverse=True)

    positive = [hit for hit in hits if hit.bm25_score > 0 or hit.path_boost > 0]
    picked = positive if positive else hits
    return picked[:top_k]


def retrieve_candidates(
    root_dir: str | Path,
    files: Iterable[str | Path],
    query: str,
    query_variants: Iterable[str] = (),
    *,
    settings: Settings,
    top_k: int | None = None,
    recall_k: int | None = None,
) -> List[RetrievedHit]:
    sources = load_sources(root_dir, files)
    for source in sources:
        if not source.readable:
            logger.debug("Skipping %s: %s", source.rel_path, source.skip_reason)

    chunks = chunk_sources(
        sources,
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
    )
    if not chunks:
        return []

    index = build_index(chunks, settings.stop_words)
    return fuse_candidates(
        index,
        query,
        query_variants,
        recall_k=recall_k or settings.recall_k,
        top_k=top_k or settings.top_k,
    )


def build_rag_data(
    root_dir: str | Path,
    files: Iterable[str | Path],
    query: str,
    query_variants: Iterable[str] = (),
    *,
    settings: Settings,
    top_k: int | None = None,
) -> Tuple[List[RetrievedHit], str]:
    hits = retrieve_candidates(root_dir, files, query, query_variants, settings=settings, top_k=top_k)
    return hits, build_context(hits, settings.context_max_chars)
