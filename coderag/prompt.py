from __future__ import annotations

from typing import List, Protocol, Sequence

from .routing import VALID_MODES
from .types import AgentMode

NO_CONTEXT = "(no retrieved context)"

SUMMARY_TEMPLATE = """
You are a software analyst. Summarize strictly based on retrieved chunks.
Do NOT propose refactors or code edits unless explicitly requested.

User task:
{task}

Retrieved files:
{file_list}

Retrieved chunks:
{hit_list}

Context:
{context}

Return ONLY valid JSON (no markdown, no extra text) with this schema:
{{
  "summary": "what this project does (5-10 sentences, {language} preferred)",
  "key_files": ["most important files (relative paths)"],
  "entrypoints": ["likely entry files (relative paths) or empty array if unknown"]
}}
"""

CODE_TEMPLATE = """
You are a coding assistant agent.
Goal: produce concrete code changes for the user task.

Hard constraints:
- Do NOT invent files that don't exist.
- Only modify files from the provided retrieved files.
- Return ONLY unified diffs for each file you change.
- Keep changes minimal and directly related to the user task.

User task:
{task}

Retrieved files:
{file_list}

Retrieved chunks:
{hit_list}

Context:
{context}

Return ONLY valid JSON (no markdown, no extra text) with this schema:
{{
  "plan": ["step1", "step2", "..."],
  "diffs": [
    {{
      "path": "relative/path/to/file.js",
      "unified_diff": "diff --git a/... b/...\\n..."
    }}
  ]
}}
If no changes are needed, return:
{{ "plan": ["no changes"], "diffs": [] }}
"""

CHAT_TEMPLATE = """
You are a pragmatic engineering mentor.
Answer the user's question based on retrieved context. Do not output code diffs.
If evidence is insufficient, clearly say what is missing.

User task:
{task}

Retrieved files:
{file_list}

Retrieved chunks:
{hit_list}

Context:
{context}

Return ONLY valid JSON (no markdown, no extra text) with this schema:
{{
  "answer": "direct answer in {language}",
  "evidence_files": ["relative/path.js"],
  "gaps": ["what is unknown or uncertain"],
  "next_steps": ["practical actions user can take"]
}}
"""

_TEMPLATES = {
    "summary": SUMMARY_TEMPLATE,
    "code": CODE_TEMPLATE,
    "chat": CHAT_TEMPLATE,
}


class PromptHit(Protocol):
    id: int
    rel_path: str
    score: float


def safe_mode(mode: str) -> AgentMode:
    return mode if mode in VALID_MODES else "chat"


def format_hit_list(hits: Sequence[PromptHit]) -> str:
    if not hits:
        return "(none)"
    return "\n".join(f"{i}. {hit.rel_path}#{hit.id} (score={hit.score:g})" for i, hit in enumerate(hits, start=1))


def format_file_list(hits: Sequence[PromptHit]) -> str:
    unique: List[str] = []
    for hit in hits:
        if hit.rel_path not in unique:
            unique.append(hit.rel_path)
    if not unique:
        return "- (none)"
    return "\n".join(f"- {path}" for path in unique)


def build_prompt(
    mode: str,
    task: str,
    hits: Sequence[PromptHit],
    context: str,
    language: str = "Chinese",
) -> str:
    template = _TEMPLATES[safe_mode(mode)]
    return template.format(
        task=task,
        file_list=format_file_list(hits),
        hit_list=format_hit_list(hits),
        context=context if context and context.strip() else NO_CONTEXT,
        language=language,
    )
