"""Tokenization, vocabulary and IDF construction."""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping, Sequence
from math import log
from types import MappingProxyType

from rag_arbiter.config import VocabularyConfig
from rag_arbiter.types import DocumentChunk

_NON_ALNUM = re.compile(r"[\W_]+", flags=re.UNICODE)


def tokenize(text: str, min_token_length: int = 3) -> list[str]:
    """Lower-case, strip non-alphanumerics, split, drop short tokens."""

    cleaned = _NON_ALNUM.sub(" ", text.lower())
    return [token for token in cleaned.split() if len(token) >= min_token_length]


class Vocabulary:
    """Immutable term→index mapping with its co-generated IDF table.

    Indices are dense and 0-based. A term missing from the table has weight 0;
    lookups never raise.
    """

    __slots__ = ("_index", "_idf", "_terms")

    def __init__(self, index: Mapping[str, int], idf: Mapping[str, float]) -> None:
        if set(index) != set(idf):
            raise ValueError("vocabulary and idf table must cover the same terms")
        if sorted(index.values()) != list(range(len(index))):
            raise ValueError("vocabulary indices must be dense and 0-based")
        if any(weight < 0 for weight in idf.values()):
            raise ValueError("idf weights must be nonnegative")

        terms = [""] * len(index)
        for term, position in index.items():
            terms[position] = term
        self._terms = tuple(terms)
        self._index = MappingProxyType({term: i for i, term in enumerate(self._terms)})
        self._idf = MappingProxyType({term: float(idf[term]) for term in self._terms})

    @classmethod
    def empty(cls) -> "Vocabulary":
        return cls({}, {})

    def __len__(self) -> int:
        return len(self._terms)

    def __contains__(self, term: object) -> bool:
        return term in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._terms)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vocabulary):
            return NotImplemented
        return self._terms == other._terms and dict(self._idf) == dict(other._idf)

    def __hash__(self) -> int:
        return hash(self._terms)

    @property
    def terms(self) -> tuple[str, ...]:
        return self._terms

    def index_of(self, term: str) -> int | None:
        return self._index.get(term)

    def idf_of(self, term: str) -> float:
        return self._idf.get(term, 0.0)

    def as_index_dict(self) -> dict[str, int]:
        return dict(self._index)

    def as_idf_dict(self) -> dict[str, float]:
        return dict(self._idf)


class VocabularyBuilder:
    """Builds a Vocabulary from one corpus pass.

    Document frequency counts distinct chunks containing a term. Terms are
    numbered in order of first appearance (chunk order, then token order), so
    the same corpus always yields the same assignment.

    The `min_document_frequency` filter only applies once the corpus holds
    `frequency_filter_min_chunks` chunks. Below that every term is admitted:
    with two or three chunks a df >= 2 filter keeps only terms that occur
    everywhere, all with IDF 0.
    """

    def __init__(self, config: VocabularyConfig | None = None) -> None:
        self.config = config or VocabularyConfig()

    def build(self, chunks: Sequence[DocumentChunk]) -> Vocabulary:
        document_frequency = self.document_frequencies(chunks)
        total = len(chunks)
        threshold = (
            self.config.min_document_frequency
            if total >= self.config.frequency_filter_min_chunks
            else 1
        )

        admitted = [term for term, df in document_frequency.items() if df >= threshold]
        return Vocabulary(
            {term: position for position, term in enumerate(admitted)},
            {term: log(total / document_frequency[term]) for term in admitted},
        )

    def document_frequencies(self, chunks: Sequence[DocumentChunk]) -> dict[str, int]:
        frequencies: dict[str, int] = {}
        for chunk in chunks:
            seen: set[str] = set()
            for token in tokenize(chunk.text, self.config.min_token_length):
                if token in seen:
                    continue
                seen.add(token)
                frequencies[token] = frequencies.get(token, 0) + 1
        return frequencies
