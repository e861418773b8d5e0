"""Per-question tracing and aggregate decision metrics."""

from __future__ import annotations

import math
import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone

from rag_arbiter.types import ResponseMode, RetrievalReport, StrategyDecision


@dataclass(slots=True)
class TraceRecord:
    trace_id: str
    timestamp_utc: str
    question: str
    language: str
    mode: str
    confidence: float
    max_similarity: float
    average_similarity: float
    generation_id: int
    chunk_ids: list[str]
    answer: str
    escalated: bool
    latency_ms: float
    error: str | None = None


class TraceStore:
    """Bounded in-memory trace log backing `/traces` and `/metrics`.

    The oldest records are evicted once `max_records` is reached, so the
    summary covers the most recent window only.
    """

    def __init__(self, max_records: int = 1000) -> None:
        if max_records < 1:
            raise ValueError("max_records must be positive")
        self.max_records = max_records
        self._records: OrderedDict[str, TraceRecord] = OrderedDict()
        self._lock = threading.Lock()

    def create_record(
        self,
        *,
        question: str,
        language: str,
        decision: StrategyDecision,
        report: RetrievalReport,
        answer: str,
        escalated: bool,
        latency_ms: float,
        error: str | None = None,
    ) -> TraceRecord:
        record = TraceRecord(
            trace_id=uuid.uuid4().hex,
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            question=question,
            language=language,
            mode=decision.mode.value,
            confidence=decision.confidence,
            max_similarity=report.max_similarity,
            average_similarity=report.average_similarity,
            generation_id=report.generation_id,
            chunk_ids=[result.chunk_id for result in report.results],
            answer=answer,
            escalated=escalated,
            latency_ms=latency_ms,
            error=error,
        )
        with self._lock:
            self._records[record.trace_id] = record
            while len(self._records) > self.max_records:
                self._records.popitem(last=False)
        return record

    def get(self, trace_id: str) -> TraceRecord:
        with self._lock:
            if trace_id not in self._records:
                raise KeyError(f"Trace not found: {trace_id}")
            return self._records[trace_id]

    def list_recent(self, limit: int = 20) -> list[TraceRecord]:
        """Most recent records, oldest first."""
        if limit <= 0:
            return []
        with self._lock:
            return list(self._records.values())[-limit:]

    def summary(self) -> dict[str, float | int]:
        with self._lock:
            records = list(self._records.values())

        total = len(records)
        counts = {f"{mode.value}_count": 0 for mode in ResponseMode}
        for record in records:
            counts[f"{record.mode}_count"] += 1

        latencies = [record.latency_ms for record in records]
        return {
            "total_requests": total,
            **counts,
            "escalation_rate": _ratio(sum(record.escalated for record in records), total),
            "error_count": sum(1 for record in records if record.error),
            "avg_confidence": _ratio(sum(record.confidence for record in records), total),
            "avg_latency_ms": _ratio(sum(latencies), total),
            "p95_latency_ms": _percentile(latencies, 0.95),
        }


def _ratio(numerator: float, denominator: int) -> float:
    return numerator / denominator if denominator else 0.0


def _percentile(values: list[float], fraction: float) -> float:
    # Nearest-rank percentile.
    if not values:
        return 0.0
    ordered = sorted(values)
    rank = max(1, math.ceil(len(ordered) * fraction))
    return ordered[rank - 1]


class Timer:
    """Context manager measuring wall time in milliseconds."""

    def __init__(self) -> None:
        self._started = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000.0
