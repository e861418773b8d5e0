"""Bounded context assembly for the generative answer call."""

from __future__ import annotations

from collections.abc import Sequence

from rag_arbiter.types import RetrievalResult

_SEPARATOR = "\n\n"


class ContextAssembler:
    """Concatenates ranked passages under a fixed character budget.

    Passages are added in rank order. The first passage that does not fit
    whole is cut at its last sentence end inside the remaining budget and
    assembly stops there. Only the top passage is ever hard-cut mid-sentence,
    and only when it has no sentence end inside the budget.
    """

    def __init__(self, max_chars: int = 3000) -> None:
        self.max_chars = max_chars

    def assemble(self, results: Sequence[RetrievalResult]) -> str:
        parts: list[str] = []
        used = 0

        for result in results:
            header = f"Document: {_source_label(result)}\nContent: "
            block = header + result.content.strip()
            gap = len(_SEPARATOR) if parts else 0
            remaining = self.max_chars - used - gap
            if remaining <= len(header):
                break
            if len(block) <= remaining:
                parts.append(block)
                used += gap + len(block)
                continue

            cut = _cut_at_sentence(block, remaining, min_end=len(header))
            if cut is None and not parts:
                cut = block[:remaining].rstrip()
            if cut:
                parts.append(cut)
            break

        return _SEPARATOR.join(parts)


def _source_label(result: RetrievalResult) -> str:
    title = result.metadata.get("title")
    return str(title) if title else result.doc_id


def _cut_at_sentence(text: str, limit: int, *, min_end: int) -> str | None:
    for end in range(min(limit, len(text)) - 1, min_end - 1, -1):
        if text[end] in ".!?" and (end + 1 == len(text) or text[end + 1].isspace()):
            return text[: end + 1]
    return None
