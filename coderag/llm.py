from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_openai import ChatOpenAI

from .config import ConfigError, Settings

JSON_REPAIR_PROMPT = (
    "Your previous response was NOT valid JSON.\n"
    "Return ONLY valid JSON, no markdown fences, no extra text.\n"
    "Follow the required JSON schema strictly."
)


class LLMError(RuntimeError):
    """Raised when the chat model call fails or returns no content."""


@dataclass(frozen=True)
class JsonLLMResult:
    """``parsed`` is ``None`` when no attempt produced JSON; ``raw`` is the last reply."""

    parsed: Any
    raw: str

    @property
    def ok(self) -> bool:
        return self.parsed is not None


def parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


class ChatClient:
    def __init__(self, llm: BaseChatModel) -> None:
        self.llm = llm

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatClient":
        if not settings.llm_base_url or not settings.llm_api_key:
            raise ConfigError("Missing env: LLM_BASE_URL and/or LLM_API_KEY")
        llm = ChatOpenAI(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            temperature=settings.temperature,
        )
        return cls(llm)

    def complete(self, messages: Sequence[BaseMessage], temperature: float = 0.2) -> str:
        try:
            response = self.llm.bind(temperature=temperature).invoke(list(messages))
        except Exception as exc:
            raise LLMError(f"LLM request failed: {exc}") from exc
        content = response.content if isinstance(response.content, str) else ""
        if not content:
            raise LLMError("No content in LLM response")
        return content

    def complete_json(self, messages: Sequence[BaseMessage], temperature: float = 0.2) -> JsonLLMResult:
        """Ask for JSON, retrying once with a repair instruction if parsing fails."""
        first = self.complete(messages, temperature=temperature)
        parsed = parse_json(first)
        if parsed is not None:
            return JsonLLMResult(parsed=parsed, raw=first)

        retry_messages: List[BaseMessage] = [
            *messages,
            AIMessage(content=first),
            HumanMessage(content=JSON_REPAIR_PROMPT),
        ]
        second = self.complete(retry_messages, temperature=0.0)
        return JsonLLMResult(parsed=parse_json(second), raw=second)
