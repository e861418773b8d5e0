"""Confidence-threshold response strategy."""

from __future__ import annotations

from rag_arbiter.config import StrategyConfig
from rag_arbiter.types import ResponseMode, RetrievalReport, StrategyDecision


class StrategySelector:
    """Chooses ANSWER, PARTIAL or ESCALATE from retrieval confidence.

    Thresholds are inclusive: a score equal to a threshold takes the
    higher-confidence branch. The selector keeps no history.
    """

    def __init__(self, config: StrategyConfig | None = None) -> None:
        self.config = config or StrategyConfig()

    def select(self, max_similarity: float, result_count: int) -> StrategyDecision:
        if result_count == 0:
            return StrategyDecision(
                mode=ResponseMode.ESCALATE,
                confidence=max_similarity,
                reason="No matching content found",
            )
        if max_similarity >= self.config.high_confidence:
            return StrategyDecision(
                mode=ResponseMode.ANSWER,
                confidence=max_similarity,
                reason="High similarity match found",
            )
        if max_similarity >= self.config.medium_confidence:
            return StrategyDecision(
                mode=ResponseMode.PARTIAL,
                confidence=max_similarity,
                reason="Medium similarity match found",
            )
        return StrategyDecision(
            mode=ResponseMode.ESCALATE,
            confidence=max_similarity,
            reason="No confident match found",
        )

    def select_for(self, report: RetrievalReport) -> StrategyDecision:
        return self.select(report.max_similarity, len(report.results))
