from __future__ import annotations

import logging
import re
from typing import Iterable, List

from langchain_core.messages import HumanMessage

from .llm import ChatClient, LLMError
from .types import AgentMode, RouteResult

logger = logging.getLogger(__name__)

VALID_MODES = ("summary", "code", "chat")

_SUMMARY_RE = re.compile(r"总结|summarize|summary|概览|overview|介绍")
_CODE_RE = re.compile(r"改|修改|重构|修复|实现|新增|删除|代码|diff|patch|fix|refactor|implement|bug")

ROUTING_PROMPT = """
Classify the user task into one of: summary, code, chat.
Also rewrite the task into 1-3 concise retrieval queries for source-code search.

User task:
{task}

Return ONLY valid JSON with this schema:
{{
  "mode": "summary|code|chat",
  "rewritten_queries": ["query1", "query2"]
}}
"""


def infer_mode_heuristic(task: str) -> AgentMode:
    text = str(task or "").lower()
    if _SUMMARY_RE.search(text):
        return "summary"
    if _CODE_RE.search(text):
        return "code"
    return "chat"


def sanitize_queries(task: str, rewritten: Iterable[str] = ()) -> List[str]:
    cleaned = [str(item or "").strip() for item in [task, *rewritten]]
    cleaned = [item for item in cleaned if item][:6]
    unique: List[str] = []
    for item in cleaned:
        if item not in unique:
            unique.append(item)
    return unique[:4]


def route_task(client: ChatClient, task: str) -> RouteResult:
    """Pick the answer mode and retrieval queries for ``task``.

    Falls back to the keyword heuristic and the bare task when the model is
    unreachable or its reply is not the expected JSON object.
    """
    heuristic_mode = infer_mode_heuristic(task)
    fallback = RouteResult(mode=heuristic_mode, queries=tuple(sanitize_queries(task)))

    try:
        result = client.complete_json(
            [HumanMessage(content=ROUTING_PROMPT.format(task=task))],
            temperature=0.0,
        )
    except LLMError as exc:
        logger.warning("Routing failed, using heuristic mode %s: %s", heuristic_mode, exc)
        return fallback

    parsed = result.parsed
    if not isinstance(parsed, dict):
        logger.warning("Routing reply was not a JSON object, using heuristic mode %s", heuristic_mode)
        return fallback

    mode = parsed.get("mode")
    if not isinstance(mode, str) or mode not in VALID_MODES:
        mode = heuristic_mode

    raw_queries = parsed.get("rewritten_queries")
    rewritten = [q for q in raw_queries if isinstance(q, str)] if isinstance(raw_queries, list) else []

    return RouteResult(mode=mode, queries=tuple(sanitize_queries(task, rewritten)), routed_by_llm=True)
