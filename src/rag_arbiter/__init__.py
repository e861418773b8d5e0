"""Retrieval-and-arbitration engine for document question answering."""

from .config import ArbiterSettings, ChunkingConfig, RetrievalConfig, StrategyConfig
from .types import ResponseMode, StrategyDecision

__all__ = [
    "ArbiterSettings",
    "ChunkingConfig",
    "ResponseMode",
    "RetrievalConfig",
    "StrategyConfig",
    "StrategyDecision",
]
