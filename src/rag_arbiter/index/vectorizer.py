"""TF-IDF vectorization over a fixed vocabulary."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from math import sqrt

from rag_arbiter.index.vocabulary import Vocabulary, tokenize


class TfidfVectorizer:
    """Maps text to an L2-normalized dense TF-IDF vector.

    Term frequency is relative to every token of the text, including tokens
    outside the vocabulary. Out-of-vocabulary tokens get no component and
    never grow the vocabulary. Text sharing no term with the vocabulary maps
    to the zero vector, returned without normalization.
    """

    def __init__(self, vocabulary: Vocabulary, *, min_token_length: int = 3) -> None:
        self.vocabulary = vocabulary
        self.min_token_length = min_token_length

    def vectorize(self, text: str) -> tuple[float, ...]:
        weights = [0.0] * len(self.vocabulary)
        tokens = tokenize(text, self.min_token_length)
        if not tokens or not weights:
            return tuple(weights)

        total = len(tokens)
        for term, count in Counter(tokens).items():
            position = self.vocabulary.index_of(term)
            if position is None:
                continue
            weights[position] = (count / total) * self.vocabulary.idf_of(term)

        norm = l2_norm(weights)
        if norm == 0:
            return tuple(weights)
        return tuple(weight / norm for weight in weights)


def l2_norm(vector: Sequence[float]) -> float:
    return sqrt(sum(value * value for value in vector))


def cosine_similarity(
    a: Sequence[float],
    b: Sequence[float],
    *,
    norm_a: float | None = None,
    norm_b: float | None = None,
) -> float:
    """Cosine of the angle between two vectors; 0.0 for zero or mismatched vectors."""

    if not a or not b or len(a) != len(b):
        return 0.0
    norm_a = l2_norm(a) if norm_a is None else norm_a
    norm_b = l2_norm(b) if norm_b is None else norm_b
    if norm_a == 0 or norm_b == 0:
        return 0.0
    numerator = sum(x * y for x, y in zip(a, b, strict=True))
    # Clamp floating-point drift for identical unit vectors.
    return min(1.0, max(0.0, numerator / (norm_a * norm_b)))
