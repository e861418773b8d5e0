"""Versioned JSON persistence for index generations."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from rag_arbiter.index.snapshot import Index
from rag_arbiter.index.vectorizer import l2_norm
from rag_arbiter.index.vocabulary import Vocabulary
from rag_arbiter.types import Document, DocumentChunk, VectorEntry

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def persist(
    index: Index,
    path: str | Path,
    *,
    documents: Sequence[Document] | None = None,
) -> Path:
    """Write `index` to `path` atomically.

    The payload goes to a temporary file in the same directory, is flushed and
    fsynced, then renamed over the target, so readers see either the old file
    or the complete new one. When `documents` is given, the source documents
    of the generation are stored alongside it.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = _to_payload(index)
    if documents is not None:
        payload["documents"] = [_document_payload(document) for document in documents]

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info(
        "Persisted index generation %d to %s", index.generation_id, target
    )
    return target


def load(path: str | Path) -> Index:
    """Load a persisted index, or the empty index when the file is unusable."""

    index, _ = load_corpus(path)
    return index


def load_corpus(path: str | Path) -> tuple[Index, list[Document]]:
    """Load a persisted index with its source documents.

    Never raises: a missing or unusable file gives the empty index and no
    documents. Files written without documents load with an empty list.
    """

    source = Path(path)
    if not source.exists():
        logger.info("No persisted index at %s, starting empty", source)
        return Index.empty(), []

    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
        index = _from_payload(payload)
        documents = [_document_from_payload(raw) for raw in payload.get("documents", [])]
    except Exception as exc:
        logger.warning("Rejected persisted index at %s: %r", source, exc)
        return Index.empty(), []

    logger.info(
        "Loaded index generation %d from %s (%d chunks, %d documents)",
        index.generation_id,
        source,
        len(index.entries),
        len(documents),
    )
    return index, documents


def _document_payload(document: Document) -> dict[str, Any]:
    return {
        "docId": document.doc_id,
        "title": document.title,
        "text": document.text,
        "language": document.language,
        "metadata": document.metadata,
    }


def _document_from_payload(raw: Any) -> Document:
    metadata = raw.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise ValueError("document metadata must be an object")
    return Document(
        doc_id=str(raw["docId"]),
        title=str(raw.get("title") or raw["docId"]),
        text=str(raw["text"]),
        language=str(raw.get("language") or "english"),
        metadata=metadata,
    )


def _to_payload(index: Index) -> dict[str, Any]:
    return {
        "format_version": FORMAT_VERSION,
        "generationId": index.generation_id,
        "minTokenLength": index.min_token_length,
        "vocabulary": index.vocabulary.as_index_dict(),
        "idf": index.vocabulary.as_idf_dict(),
        "entries": [
            {
                "chunkId": entry.chunk_id,
                "docId": entry.doc_id,
                "vector": list(entry.vector),
                "text": index.chunks[entry.chunk_id].text,
                "metadata": index.chunks[entry.chunk_id].metadata,
            }
            for entry in index.entries
        ],
    }


def _from_payload(payload: Any) -> Index:
    if not isinstance(payload, dict):
        raise ValueError("index payload must be a JSON object")
    version = payload.get("format_version")
    if version != FORMAT_VERSION:
        raise ValueError(f"unsupported index format version: {version!r}")

    generation_id = payload["generationId"]
    if not isinstance(generation_id, int) or isinstance(generation_id, bool):
        raise ValueError("generationId must be an integer")

    vocabulary = Vocabulary(
        {str(term): int(position) for term, position in payload["vocabulary"].items()},
        {str(term): float(weight) for term, weight in payload["idf"].items()},
    )

    entries: list[VectorEntry] = []
    chunks: dict[str, DocumentChunk] = {}
    for raw in payload["entries"]:
        chunk_id = str(raw["chunkId"])
        doc_id = str(raw["docId"])
        vector = tuple(float(value) for value in raw["vector"])
        if chunk_id in chunks:
            raise ValueError(f"duplicate chunk id: {chunk_id}")
        text = str(raw["text"])
        metadata = raw.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValueError(f"metadata for {chunk_id} must be an object")
        chunks[chunk_id] = DocumentChunk(
            chunk_id=chunk_id,
            doc_id=doc_id,
            text=text,
            word_count=len(text.split()),
            metadata=metadata,
        )
        entries.append(
            VectorEntry(chunk_id=chunk_id, doc_id=doc_id, vector=vector, norm=l2_norm(vector))
        )

    # Index.__post_init__ rejects vectors whose length differs from the vocabulary.
    return Index(
        generation_id=generation_id,
        vocabulary=vocabulary,
        entries=tuple(entries),
        chunks=chunks,
        min_token_length=int(payload.get("minTokenLength", 3)),
    )
