from __future__ import annotations

import dataclasses
import json
import logging
import math
import time
from typing import Any, Dict, List, Mapping, Sequence

from langchain_core.messages import HumanMessage

from .llm import ChatClient, LLMError
from .types import RerankOutcome, RetrievedHit
from .utils import clamp01, collapse_whitespace, round_score

logger = logging.getLogger(__name__)

SNIPPET_CHARS = 260
PREVIOUS_WEIGHT = 0.6
LLM_WEIGHT = 0.4

RERANK_PROMPT = """
You are a retrieval reranker.
Given a task and candidate chunks, score each candidate relevance between 0 and 1.
Task mode: {mode}
Task: {task}

Candidates:
{candidates}

Return ONLY valid JSON with this schema:
{{
  "scores": [
    {{ "id": 1, "score": 0.92, "reason": "short reason" }}
  ]
}}
Rules:
- Only include ids from the provided candidates.
- score must be between 0 and 1.
- Higher means more relevant.
"""


def compact_candidates(candidates: Sequence[RetrievedHit]) -> List[Dict[str, Any]]:
    return [
        {
            "id": hit.id,
            "relPath": hit.rel_path,
            "lexical_score": hit.score,
            "snippet": collapse_whitespace(str(hit.text or "")[:SNIPPET_CHARS]),
        }
        for hit in candidates
    ]


def parse_rerank_scores(parsed: Any) -> Dict[int, float] | None:
    """Extract ``{id: score}`` from a reranker reply, or ``None`` if malformed."""
    if not isinstance(parsed, dict):
        return None
    raw_scores = parsed.get("scores")
    if not isinstance(raw_scores, list):
        return None

    scores: Dict[int, float] = {}
    for item in raw_scores:
        if not isinstance(item, dict):
            continue
        chunk_id = item.get("id")
        if isinstance(chunk_id, bool) or not isinstance(chunk_id, (int, float)):
            continue
        if isinstance(chunk_id, float) and not chunk_id.is_integer():
            continue
        try:
            score = float(item.get("score"))
        except (TypeError, ValueError, OverflowError):
            score = math.nan
        scores[int(chunk_id)] = clamp01(score)
    return scores


def apply_rerank_scores(
    candidates: Sequence[RetrievedHit],
    scores: Mapping[int, float],
) -> List[RetrievedHit]:
    reranked: List[RetrievedHit] = []
    for hit in candidates:
        if hit.id not in scores:
            reranked.append(hit)
            continue
        llm_score = scores[hit.id]
        reranked.append(
            dataclasses.replace(
                hit,
                llm_score=round_score(llm_score),
                score=round_score(PREVIOUS_WEIGHT * hit.score + LLM_WEIGHT * llm_score),
            )
        )
    reranked.sort(key=lambda item: (item.score, item.bm25_score), reverse=True)
    return reranked


class LLMReranker:
    def __init__(self, client: ChatClient, enabled: bool = True) -> None:
        self.client = client
        self.enabled = enabled

    def _prompt(self, task: str, mode: str, candidates: Sequence[RetrievedHit]) -> str:
        return RERANK_PROMPT.format(
            mode=mode,
            task=task,
            candidates=json.dumps(compact_candidates(candidates), indent=2, ensure_ascii=False),
        )

    def rerank(self, task: str, mode: str, candidates: Sequence[RetrievedHit]) -> RerankOutcome:
        unchanged = tuple(candidates)
        if not self.enabled:
            return RerankOutcome(hits=unchanged, applied=False, reason="disabled")
        if not candidates:
            return RerankOutcome(hits=unchanged, applied=False, reason="no candidates")

        start_time = time.time()
        try:
            result = self.client.complete_json(
                [HumanMessage(content=self._prompt(task, mode, candidates))],
                temperature=0.0,
            )
        except LLMError as exc:
            logger.warning("Rerank failed, keeping lexical order: %s", exc)
            return RerankOutcome(hits=unchanged, applied=False, reason=str(exc))

        scores = parse_rerank_scores(result.parsed)
        if scores is None:
            logger.warning("Rerank reply was malformed, keeping lexical order")
            return RerankOutcome(hits=unchanged, applied=False, reason="malformed response")

        reranked = apply_rerank_scores(candidates, scores)
        logger.debug("Rerank time: %.3f seconds", time.time() - start_time)
        return RerankOutcome(hits=tuple(reranked), applied=True, scores=scores)
