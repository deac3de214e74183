from __future__ import annotations

from typing import List, Protocol, Sequence

TRUNCATION_MARKER = "\n...<truncated>..."
SECTION_SEPARATOR = "\n"


class PackableHit(Protocol):
    id: int
    rel_path: str
    text: str
    score: float


def format_header(hit: PackableHit) -> str:
    return f"--- CHUNK: {hit.rel_path}#{hit.id} (score={hit.score:g}) ---\n"


def build_context(hits: Sequence[PackableHit], max_chars: int) -> str:
    """Pack ranked hits into one string of at most ``max_chars`` characters.

    Only the truncation marker of the last, clipped section may go past the
    budget. Hits that do not fit are dropped whole.
    """
    used = 0
    sections: List[str] = []

    for hit in hits:
        header = format_header(hit)
        separator = len(SECTION_SEPARATOR) if sections else 0
        # trailing newline of the section counts too
        remain = max_chars - used - separator - len(header) - 1
        if remain <= 0:
            break

        raw = str(hit.text or "")
        if len(raw) > remain:
            sections.append(f"{header}{raw[:remain]}{TRUNCATION_MARKER}\n")
            break

        sections.append(f"{header}{raw}\n")
        used += separator + len(header) + len(raw) + 1

    return SECTION_SEPARATOR.join(sections)
