"""Configuration models for the retrieval-and-arbitration engine."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, model_validator


class ChunkingConfig(BaseModel):
    """Configures sentence-packing chunking with word overlap."""

    chunk_size: int = Field(default=500, ge=1)
    overlap_words: int = Field(default=5, ge=0)
    min_chunk_chars: int = Field(default=10, ge=1)


class VocabularyConfig(BaseModel):
    """Configures tokenization and vocabulary admission."""

    min_token_length: int = Field(default=3, ge=1)
    min_document_frequency: int = Field(default=2, ge=1)
    frequency_filter_min_chunks: int = Field(default=4, ge=1)


class RetrievalConfig(BaseModel):
    """Configures ranking cut-offs."""

    top_k: int = Field(default=5, ge=1)
    similarity_floor: float = Field(default=0.3, ge=0.0, le=1.0)


class StrategyConfig(BaseModel):
    """Confidence thresholds used to pick a response mode."""

    high_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    medium_confidence: float = Field(default=0.4, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_order(self) -> "StrategyConfig":
        if self.high_confidence <= self.medium_confidence:
            raise ValueError("high_confidence must be greater than medium_confidence")
        return self


class GenerationConfig(BaseModel):
    """Configures the generative answer call on the ANSWER path."""

    model: str = "gpt-4o-mini"
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_response_tokens: int = Field(default=500, ge=1)
    max_context_chars: int = Field(default=3000, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class AnswererConfig(BaseModel):
    """Configures question handling around the strategy decision."""

    escalate_partial: bool = False
    min_sentence_chars: int = Field(default=20, ge=1)
    preview_chars: int = Field(default=200, ge=1)


class ArbiterSettings(BaseModel):
    """Aggregate settings for one running instance."""

    index_path: str | None = None
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    vocabulary: VocabularyConfig = Field(default_factory=VocabularyConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    strategy: StrategyConfig = Field(default_factory=StrategyConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    answerer: AnswererConfig = Field(default_factory=AnswererConfig)

    @classmethod
    def from_env(cls) -> "ArbiterSettings":
        """Build settings from `RAG_ARBITER_*` environment variables."""

        strategy: dict[str, float] = {}
        if high := os.getenv("RAG_ARBITER_HIGH_CONFIDENCE"):
            strategy["high_confidence"] = float(high)
        if medium := os.getenv("RAG_ARBITER_MEDIUM_CONFIDENCE"):
            strategy["medium_confidence"] = float(medium)

        retrieval: dict[str, float | int] = {}
        if top_k := os.getenv("RAG_ARBITER_TOP_K"):
            retrieval["top_k"] = int(top_k)
        if floor := os.getenv("RAG_ARBITER_SIMILARITY_FLOOR"):
            retrieval["similarity_floor"] = float(floor)

        generation: dict[str, str] = {}
        if model := os.getenv("OPENAI_MODEL"):
            generation["model"] = model

        return cls(
            index_path=os.getenv("RAG_ARBITER_INDEX_PATH"),
            strategy=StrategyConfig(**strategy),
            retrieval=RetrievalConfig(**retrieval),
            generation=GenerationConfig(**generation),
        )
