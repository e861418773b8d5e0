"""Escalation payloads and sinks for human follow-up."""

from __future__ import annotations

import threading
from typing import Protocol

from rag_arbiter.types import ConsideredPassage, EscalationPayload, RetrievalReport


class EscalationSink(Protocol):
    """External receiver of questions that need a human answer."""

    def submit(self, payload: EscalationPayload) -> None:
        """Store or forward one escalation."""


class InMemoryEscalationSink:
    """Keeps escalations in submission order; for tests and local runs."""

    def __init__(self) -> None:
        self._payloads: list[EscalationPayload] = []
        self._lock = threading.Lock()

    def submit(self, payload: EscalationPayload) -> None:
        with self._lock:
            self._payloads.append(payload)

    @property
    def payloads(self) -> list[EscalationPayload]:
        with self._lock:
            return list(self._payloads)


def build_escalation_payload(
    query: str,
    language: str,
    report: RetrievalReport,
    *,
    preview_chars: int = 200,
) -> EscalationPayload:
    return EscalationPayload(
        query=query,
        language=language,
        max_similarity=report.max_similarity,
        average_similarity=report.average_similarity,
        passages=tuple(
            ConsideredPassage(
                chunk_id=result.chunk_id,
                doc_id=result.doc_id,
                score=result.score,
                preview=_truncate(result.content, preview_chars),
            )
            for result in report.results
        ),
    )


def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
