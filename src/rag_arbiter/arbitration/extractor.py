"""Keyword-anchored sentence extraction for caveated answers."""

from __future__ import annotations

import re

from rag_arbiter.index.vocabulary import tokenize

_SENTENCE_SPLIT = re.compile(r"[.!?]+")

STOP_WORDS = frozenset(
    {
        "a", "about", "am", "an", "and", "any", "are", "as", "at", "be", "been",
        "but", "by", "can", "could", "did", "do", "does", "for", "from", "had",
        "has", "have", "how", "i", "in", "into", "is", "it", "its", "me", "my",
        "of", "on", "or", "our", "please", "should", "tell", "than", "that",
        "the", "their", "them", "there", "these", "they", "this", "those", "to",
        "was", "we", "were", "what", "when", "where", "which", "who", "whom",
        "why", "will", "with", "would", "you", "your",
    }
)


def query_tokens(text: str, *, min_token_length: int = 3) -> list[str]:
    """Distinct query keywords in order: lower-cased, stop words removed."""

    keywords: list[str] = []
    for token in tokenize(text, min_token_length):
        if token in STOP_WORDS or token in keywords:
            continue
        keywords.append(token)
    return keywords


class HeuristicExtractor:
    """Picks the passage sentence that mentions the most query keywords.

    Ties go to the earliest sentence. With no keyword hits the first
    sentence with at least `min_sentence_chars` alphanumeric characters is
    used, then the first non-empty one. Empty content gives an empty string.
    """

    def __init__(self, *, min_sentence_chars: int = 20) -> None:
        self.min_sentence_chars = min_sentence_chars

    def extract(self, content: str, keywords: list[str]) -> str:
        sentences = split_sentences(content)
        if not sentences:
            return ""

        wanted = set(keywords)
        best_sentence = ""
        best_score = 0
        for sentence in sentences:
            score = len(wanted.intersection(tokenize(sentence, min_token_length=1)))
            if score > best_score:
                best_sentence = sentence
                best_score = score
        if best_score > 0:
            return best_sentence

        for sentence in sentences:
            if sum(1 for char in sentence if char.isalnum()) >= self.min_sentence_chars:
                return sentence
        return sentences[0]


def split_sentences(text: str) -> list[str]:
    sentences = (" ".join(part.split()) for part in _SENTENCE_SPLIT.split(text or ""))
    return [sentence for sentence in sentences if sentence]
