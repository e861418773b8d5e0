"""Corpus build pipeline: documents -> chunks -> index generation -> publish."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from pathlib import Path

from rag_arbiter.config import VocabularyConfig
from rag_arbiter.errors import DocumentSourceError
from rag_arbiter.index.persistence import persist
from rag_arbiter.index.snapshot import Index, IndexHolder
from rag_arbiter.ingest.chunker import SentenceChunker
from rag_arbiter.ingest.parser import ParserRegistry
from rag_arbiter.types import Document

logger = logging.getLogger(__name__)


class CorpusPipeline:
    """Owns the document set and publishes whole index generations from it.

    Every publish merges incoming documents into the current set (or replaces
    it), chunks the full set, builds a fresh vocabulary and vector set, writes
    it to disk when `index_path` is set, and only then swaps it live. The
    merge, build, write and swap happen under one lock, so the last publish
    to finish always covers every document accepted before it. The document
    set only changes once the new generation is live.

    Queries keep running against the previous generation for the whole build.
    """

    def __init__(
        self,
        holder: IndexHolder,
        chunker: SentenceChunker | None = None,
        *,
        vocabulary_config: VocabularyConfig | None = None,
        index_path: str | Path | None = None,
        documents: Iterable[Document] = (),
    ) -> None:
        self._holder = holder
        self._chunker = chunker or SentenceChunker()
        self._vocabulary_config = vocabulary_config or VocabularyConfig()
        self._index_path = Path(index_path) if index_path else None
        self._documents: dict[str, Document] = {
            document.doc_id: document for document in documents
        }
        self._lock = threading.Lock()

    @property
    def documents(self) -> list[Document]:
        with self._lock:
            return list(self._documents.values())

    def publish(self, documents: Iterable[Document], *, replace: bool = False) -> Index:
        """Add `documents` (or replace the set with them) and publish a new generation.

        A document whose id is already present replaces the earlier version.
        """

        incoming = list(documents)
        with self._lock:
            corpus = {} if replace else dict(self._documents)
            corpus.update((document.doc_id, document) for document in incoming)
            index = self._build(list(corpus.values()))
            self._documents = corpus
        return index

    def rebuild(self, documents: Iterable[Document]) -> Index:
        """Replace the whole document set with `documents`."""
        return self.publish(documents, replace=True)

    def rebuild_from_paths(
        self,
        paths: Iterable[str | Path],
        parser_registry: ParserRegistry,
        *,
        replace: bool = False,
    ) -> Index:
        """Parse local files and publish them."""

        try:
            documents = [parser_registry.parse_path(path) for path in paths]
        except (OSError, ValueError) as exc:
            raise DocumentSourceError(str(exc)) from exc
        logger.info("Parsed %d documents for publish", len(documents))
        return self.publish(documents, replace=replace)

    def _build(self, corpus: list[Document]) -> Index:
        chunks = self._chunker.chunk_documents(corpus)
        index = Index.build(
            chunks,
            config=self._vocabulary_config,
            generation_id=self._holder.next_generation(),
        )
        if self._index_path is not None:
            persist(index, self._index_path, documents=corpus)
        self._holder.swap(index)
        return index
