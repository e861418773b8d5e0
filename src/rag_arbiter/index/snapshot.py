"""Immutable index generations and the live index reference."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from rag_arbiter.config import VocabularyConfig
from rag_arbiter.index.vectorizer import TfidfVectorizer, l2_norm
from rag_arbiter.index.vocabulary import Vocabulary, VocabularyBuilder
from rag_arbiter.types import DocumentChunk, VectorEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Index:
    """One immutable generation of vocabulary, IDF table and chunk vectors.

    A new generation is always built wholesale with `Index.build`; nothing on
    an existing Index is ever mutated, so a query holding a reference keeps a
    consistent view while a newer generation is published.
    """

    generation_id: int
    vocabulary: Vocabulary
    entries: tuple[VectorEntry, ...]
    chunks: Mapping[str, DocumentChunk]
    min_token_length: int = 3
    _vectorizer: TfidfVectorizer = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if set(self.chunks) != {entry.chunk_id for entry in self.entries}:
            raise ValueError("chunk lookup must cover exactly the indexed entries")
        for entry in self.entries:
            if len(entry.vector) != len(self.vocabulary):
                raise ValueError(
                    f"vector length {len(entry.vector)} for {entry.chunk_id} "
                    f"does not match vocabulary size {len(self.vocabulary)}"
                )
        object.__setattr__(self, "chunks", MappingProxyType(dict(self.chunks)))
        object.__setattr__(
            self,
            "_vectorizer",
            TfidfVectorizer(self.vocabulary, min_token_length=self.min_token_length),
        )

    @classmethod
    def empty(cls) -> "Index":
        return cls(generation_id=0, vocabulary=Vocabulary.empty(), entries=(), chunks={})

    @classmethod
    def build(
        cls,
        chunks: Sequence[DocumentChunk],
        *,
        config: VocabularyConfig | None = None,
        generation_id: int = 1,
    ) -> "Index":
        """Build a complete generation from every chunk of the corpus."""

        config = config or VocabularyConfig()
        lookup: dict[str, DocumentChunk] = {}
        for chunk in chunks:
            if chunk.chunk_id in lookup:
                raise ValueError(f"Duplicate chunk id: {chunk.chunk_id}")
            lookup[chunk.chunk_id] = chunk

        vocabulary = VocabularyBuilder(config).build(chunks)
        vectorizer = TfidfVectorizer(vocabulary, min_token_length=config.min_token_length)
        entries = []
        for chunk in chunks:
            vector = vectorizer.vectorize(chunk.text)
            entries.append(
                VectorEntry(
                    chunk_id=chunk.chunk_id,
                    doc_id=chunk.doc_id,
                    vector=vector,
                    norm=l2_norm(vector),
                )
            )

        logger.info(
            "Built index generation %d: %d chunks, %d terms",
            generation_id,
            len(entries),
            len(vocabulary),
        )
        return cls(
            generation_id=generation_id,
            vocabulary=vocabulary,
            entries=tuple(entries),
            chunks=lookup,
            min_token_length=config.min_token_length,
        )

    def vectorize(self, text: str) -> tuple[float, ...]:
        """Vectorize text against this generation's vocabulary."""
        return self._vectorizer.vectorize(text)

    def chunk(self, chunk_id: str) -> DocumentChunk | None:
        return self.chunks.get(chunk_id)

    def stats(self) -> dict[str, Any]:
        return {
            "generation_id": self.generation_id,
            "total_chunks": len(self.entries),
            "total_documents": len({entry.doc_id for entry in self.entries}),
            "vocabulary_size": len(self.vocabulary),
        }


class IndexHolder:
    """The single live index reference.

    Readers call `current` once per query and keep the snapshot they got.
    Publishing is one reference assignment; the lock only serializes writers
    so generation numbers stay monotonic.
    """

    def __init__(self, initial: Index | None = None) -> None:
        self._current = initial or Index.empty()
        self._write_lock = threading.Lock()

    @property
    def current(self) -> Index:
        return self._current

    def next_generation(self) -> int:
        return self._current.generation_id + 1

    def swap(self, index: Index) -> Index:
        """Publish `index` and return the generation it replaced."""

        with self._write_lock:
            previous = self._current
            self._current = index
        logger.info(
            "Swapped index generation %d -> %d",
            previous.generation_id,
            index.generation_id,
        )
        return previous
