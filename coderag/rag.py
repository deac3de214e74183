from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from langchain_core.messages import HumanMessage

from .config import Settings
from .context import build_context
from .llm import ChatClient
from .prompt import build_prompt
from .rerank import LLMReranker
from .retrieval import retrieve_candidates
from .routing import route_task
from .types import AgentMode, RetrievedHit

logger = logging.getLogger(__name__)


def _format_hits(hits: Sequence[RetrievedHit]) -> str:
    if not hits:
        return "(none)"
    return ", ".join(f"{hit.rel_path}#{hit.id}({hit.score:g})" for hit in hits)


@dataclass
class AgentResponse:
    answer: str
    mode: AgentMode
    queries: Tuple[str, ...]
    hits: List[RetrievedHit]
    context: str
    reranked: bool = False


class CodeAgent:
    """Route a task, retrieve code context for it and ask the model for an answer."""

    def __init__(self, settings: Settings, client: ChatClient | None = None) -> None:
        self.settings = settings
        self.client = client if client is not None else ChatClient.from_settings(settings)
        self.reranker = LLMReranker(self.client, enabled=settings.enable_rerank)

    def retrieve(
        self,
        task: str,
        mode: AgentMode,
        queries: Sequence[str],
        root_dir: str | Path,
        files: Iterable[str | Path],
    ) -> Tuple[List[RetrievedHit], bool]:
        candidates = retrieve_candidates(
            root_dir,
            files,
            task,
            queries,
            settings=self.settings,
            top_k=self.settings.rerank_candidates,
            recall_k=self.settings.recall_k,
        )
        outcome = self.reranker.rerank(task, mode, candidates)
        return list(outcome.hits[: self.settings.top_k]), outcome.applied

    def answer(self, task: str, root_dir: str | Path, files: Iterable[str | Path]) -> AgentResponse:
        route = route_task(self.client, task)
        hits, reranked = self.retrieve(task, route.mode, route.queries, root_dir, files)
        context = build_context(hits, self.settings.context_max_chars)

        logger.info("RAG mode: %s", route.mode)
        logger.info("RAG queries: %s", " | ".join(route.queries))
        logger.info("RAG hits: %s", _format_hits(hits))

        prompt = build_prompt(route.mode, task, hits, context, language=self.settings.answer_language)
        result = self.client.complete_json([HumanMessage(content=prompt)], temperature=self.settings.temperature)
        if result.ok:
            answer = json.dumps(result.parsed, indent=2, ensure_ascii=False)
        else:
            answer = result.raw

        return AgentResponse(
            answer=answer,
            mode=route.mode,
            queries=route.queries,
            hits=hits,
            context=context,
            reranked=reranked,
        )
