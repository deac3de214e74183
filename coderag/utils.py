from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import AbstractSet, List

_TOKEN_SPLIT_RE = re.compile(r"[^a-z0-9_\u4e00-\u9fa5]+")
_WHITESPACE_RE = re.compile(r"\s+")
_FOUR_PLACES = Decimal("0.0001")


def read_text_file(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def chunk_text(text: object, size: int, overlap: int) -> List[str]:
    """Split ``text`` into windows of ``size`` chars that overlap by ``overlap``.

    The step never drops below 1, so ``overlap >= size`` still terminates.
    Whitespace-only windows are dropped; kept windows are not stripped.
    """
    safe_text = "" if text is None else str(text)
    chunks: List[str] = []
    if not safe_text:
        return chunks
    step = max(1, size - overlap)
    for start in range(0, len(safe_text), step):
        window = safe_text[start : start + size]
        if window.strip():
            chunks.append(window)
    return chunks


def tokenize(text: str, stop_words: AbstractSet[str]) -> List[str]:
    tokens = _TOKEN_SPLIT_RE.split(str(text).lower())
    return [token for token in tokens if len(token) > 1 and token not in stop_words]


def round_score(value: float) -> float:
    """Round half away from zero to four decimal places."""
    if not math.isfinite(value):
        return 0.0
    return float(Decimal(repr(value)).quantize(_FOUR_PLACES, rounding=ROUND_HALF_UP))


def clamp01(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text)
