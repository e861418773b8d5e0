"""Exceptions raised when an external collaborator fails."""

from __future__ import annotations

from rag_arbiter.types import RetrievalReport, StrategyDecision


class CollaboratorError(RuntimeError):
    """A downstream call failed after the response mode was already decided.

    The decision is final; callers may report or retry the collaborator call
    themselves but must not expect a different mode for the same report.
    """

    def __init__(
        self,
        message: str,
        *,
        decision: StrategyDecision,
        report: RetrievalReport,
    ) -> None:
        super().__init__(message)
        self.decision = decision
        self.report = report


class GenerationError(CollaboratorError):
    """The generative answer service failed or timed out."""


class EscalationError(CollaboratorError):
    """The escalation sink rejected or failed to store a payload."""


class DocumentSourceError(ValueError):
    """A document file could not be read or parsed."""
