"""Cosine-similarity retrieval over the live index generation."""

from __future__ import annotations

from rag_arbiter.config import RetrievalConfig
from rag_arbiter.index.snapshot import Index, IndexHolder
from rag_arbiter.index.vectorizer import cosine_similarity, l2_norm
from rag_arbiter.types import RetrievalReport, RetrievalResult


class Retriever:
    """Ranks indexed chunks against a query.

    The live generation is read once per call; a swap that happens while a
    query runs only affects later queries.
    """

    def __init__(self, holder: IndexHolder, config: RetrievalConfig | None = None) -> None:
        self.holder = holder
        self.config = config or RetrievalConfig()

    def retrieve(
        self,
        query: str,
        *,
        top_k: int | None = None,
        similarity_floor: float | None = None,
    ) -> RetrievalReport:
        return search(
            self.holder.current,
            query,
            top_k=self.config.top_k if top_k is None else top_k,
            similarity_floor=(
                self.config.similarity_floor if similarity_floor is None else similarity_floor
            ),
        )


def search(
    index: Index,
    query: str,
    *,
    top_k: int,
    similarity_floor: float,
) -> RetrievalReport:
    """Score every entry of `index` and keep the best `top_k` above the floor.

    Ties keep index insertion order because the sort is stable.
    """

    query_vector = index.vectorize(query)
    query_norm = l2_norm(query_vector)

    scored: list[RetrievalResult] = []
    for entry in index.entries:
        similarity = cosine_similarity(
            query_vector, entry.vector, norm_a=query_norm, norm_b=entry.norm
        )
        if similarity < similarity_floor:
            continue
        chunk = index.chunks[entry.chunk_id]
        scored.append(
            RetrievalResult(
                chunk_id=entry.chunk_id,
                doc_id=entry.doc_id,
                content=chunk.text,
                score=similarity,
                metadata=chunk.metadata,
            )
        )

    ranked = sorted(scored, key=lambda item: item.score, reverse=True)[:top_k]
    if ranked:
        max_similarity = ranked[0].score
        average_similarity = sum(item.score for item in ranked) / len(ranked)
    else:
        max_similarity = 0.0
        average_similarity = 0.0

    return RetrievalReport(
        query=query,
        results=tuple(ranked),
        total_matches=len(scored),
        max_similarity=max_similarity,
        average_similarity=average_similarity,
        generation_id=index.generation_id,
        min_token_length=index.min_token_length,
    )
