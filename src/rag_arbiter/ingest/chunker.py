"""Sentence-packing chunker with word overlap."""

from __future__ import annotations

import re
from collections.abc import Iterable

from rag_arbiter.config import ChunkingConfig
from rag_arbiter.types import Document, DocumentChunk

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


class SentenceChunker:
    """Builds bounded passages from whole sentences.

    Sentences are packed into a chunk until the next one would push the chunk
    past `chunk_size` characters. The next chunk then opens with the last
    `overlap_words` words of the finished chunk.

    A sentence that is longer than `chunk_size` on its own is sliced into word
    windows, consecutive windows sharing `overlap_words` words.

    Chunks with fewer than `min_chunk_chars` alphanumeric characters are
    dropped.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()

    def chunk_document(self, document: Document) -> list[DocumentChunk]:
        """Chunk one document; empty or whitespace-only text yields no chunks."""

        texts = [
            text for text in self._pack(self._split_sentences(document.text))
            if self._content_length(text) >= self.config.min_chunk_chars
        ]
        return [
            DocumentChunk(
                chunk_id=f"{document.doc_id}-chunk-{index:04d}",
                doc_id=document.doc_id,
                text=text,
                word_count=len(text.split()),
                metadata={
                    **document.metadata,
                    "title": document.title,
                    "language": document.language,
                    "chunk_index": index,
                },
            )
            for index, text in enumerate(texts)
        ]

    def chunk_documents(self, documents: Iterable[Document]) -> list[DocumentChunk]:
        """Chunk many documents, preserving document order."""

        chunks: list[DocumentChunk] = []
        for document in documents:
            chunks.extend(self.chunk_document(document))
        return chunks

    def _pack(self, sentences: list[str]) -> list[str]:
        size = self.config.chunk_size
        output: list[str] = []
        pending: list[str] = []
        # False while `pending` holds only the overlap carried from the last chunk.
        fresh = False

        for sentence in sentences:
            if len(sentence) > size:
                if fresh:
                    output.append(" ".join(pending))
                windows = self._split_long_sentence(sentence)
                output.extend(windows)
                tail = self._tail(windows[-1])
                pending = [tail] if tail else []
                fresh = False
                continue

            candidate = " ".join([*pending, sentence])
            if len(candidate) <= size:
                pending.append(sentence)
                fresh = True
                continue

            if fresh:
                finished = " ".join(pending)
                output.append(finished)
                pending = self._seed(self._tail(finished), sentence)
            else:
                pending = [sentence]
            fresh = True

        if fresh:
            output.append(" ".join(pending))
        return output

    def _split_long_sentence(self, sentence: str) -> list[str]:
        words = sentence.split()
        size = self.config.chunk_size
        windows: list[str] = []
        start = 0

        while start < len(words):
            end = start
            length = 0
            while end < len(words):
                added = len(words[end]) + (1 if end > start else 0)
                if end > start and length + added > size:
                    break
                length += added
                end += 1
            windows.append(" ".join(words[start:end]))
            if end >= len(words):
                break
            start = max(end - self.config.overlap_words, start + 1)

        return windows

    def _seed(self, tail: str, sentence: str) -> list[str]:
        if tail and len(tail) + 1 + len(sentence) <= self.config.chunk_size:
            return [tail, sentence]
        return [sentence]

    def _tail(self, text: str) -> str:
        if self.config.overlap_words == 0:
            return ""
        return " ".join(text.split()[-self.config.overlap_words :])

    @staticmethod
    def _split_sentences(text: str) -> list[str]:
        sentences = (" ".join(part.split()) for part in _SENTENCE_SPLIT.split(text))
        return [sentence for sentence in sentences if sentence]

    @staticmethod
    def _content_length(text: str) -> int:
        return sum(1 for char in text if char.isalnum())
