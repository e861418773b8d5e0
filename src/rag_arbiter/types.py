"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True, slots=True)
class Document:
    """A source document as supplied by the document source."""

    doc_id: str
    title: str
    text: str
    language: str = "english"
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class DocumentChunk:
    """A chunked passage of a source document."""

    chunk_id: str
    doc_id: str
    text: str
    word_count: int
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class VectorEntry:
    """A chunk vector in one index generation."""

    chunk_id: str
    doc_id: str
    vector: tuple[float, ...]
    norm: float


@dataclass(frozen=True, slots=True)
class RetrievalResult:
    """A ranked passage with its cosine similarity to the query."""

    chunk_id: str
    doc_id: str
    content: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RetrievalReport:
    """Ranked results plus corpus-level confidence signals."""

    query: str
    results: tuple[RetrievalResult, ...]
    total_matches: int
    max_similarity: float
    average_similarity: float
    generation_id: int
    min_token_length: int = 3


class ResponseMode(str, Enum):
    ANSWER = "answer"
    PARTIAL = "partial"
    ESCALATE = "escalate"


@dataclass(frozen=True, slots=True)
class StrategyDecision:
    mode: ResponseMode
    confidence: float
    reason: str


@dataclass(frozen=True, slots=True)
class ConsideredPassage:
    chunk_id: str
    doc_id: str
    score: float
    preview: str


@dataclass(frozen=True, slots=True)
class EscalationPayload:
    """Metadata handed to humans for follow-up on an unanswered question."""

    query: str
    language: str
    max_similarity: float
    average_similarity: float
    passages: tuple[ConsideredPassage, ...]


@dataclass(slots=True)
class AnswerResponse:
    """The outcome of answering one question."""

    question: str
    language: str
    answer: str
    decision: StrategyDecision
    report: RetrievalReport
    escalated: bool
    trace_id: str = ""
