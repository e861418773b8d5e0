"""Parsers that turn local files into `Document` records."""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from rag_arbiter.types import Document

_HEADING = re.compile(r"^\s{0,3}#{1,6}\s+(?P<title>.+?)\s*#*\s*$", flags=re.MULTILINE)


class Parser(ABC):
    """Reads one file format; the file is read once and handed to `to_document`."""

    extensions: tuple[str, ...] = ()
    format_name = "text"

    def parse(self, path: Path, *, doc_id: str | None = None) -> Document:
        return self.to_document(path.read_text(encoding="utf-8"), path=path, doc_id=doc_id)

    @abstractmethod
    def to_document(self, raw: str, *, path: Path, doc_id: str | None) -> Document:
        """Build a document from the raw file contents."""

    def metadata_for(self, path: Path) -> dict[str, Any]:
        return {"source": str(path), "format": self.format_name}


class TextParser(Parser):
    extensions = (".txt", ".log")

    def to_document(self, raw: str, *, path: Path, doc_id: str | None) -> Document:
        return Document(
            doc_id=doc_id or path.stem,
            title=path.stem,
            text=raw,
            metadata=self.metadata_for(path),
        )


class MarkdownParser(Parser):
    """The first ATX heading, if any, becomes the document title."""

    extensions = (".md", ".markdown")
    format_name = "markdown"

    def to_document(self, raw: str, *, path: Path, doc_id: str | None) -> Document:
        heading = _HEADING.search(raw)
        return Document(
            doc_id=doc_id or path.stem,
            title=heading.group("title") if heading else path.stem,
            text=raw,
            metadata=self.metadata_for(path),
        )


class JsonParser(Parser):
    """Reads notice-style records, or indexes arbitrary JSON as text.

    A top-level object with a string `content` (or `text`) field is one
    document; its `id`, `title` and `language` fields are used when present.
    """

    extensions = (".json",)
    format_name = "json"

    def to_document(self, raw: str, *, path: Path, doc_id: str | None) -> Document:
        payload: Any = json.loads(raw)
        record = _as_record(payload)
        if record is None:
            return Document(
                doc_id=doc_id or path.stem,
                title=path.stem,
                text=json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2),
                metadata=self.metadata_for(path),
            )

        body, fields = record
        return Document(
            doc_id=doc_id or str(fields.get("id") or path.stem),
            title=str(fields.get("title") or path.stem),
            text=body,
            language=str(fields.get("language") or "english"),
            metadata=self.metadata_for(path),
        )


def _as_record(payload: Any) -> tuple[str, dict[str, Any]] | None:
    if not isinstance(payload, dict):
        return None
    for key in ("content", "text"):
        if isinstance(payload.get(key), str):
            return payload[key], payload
    return None


class ParserRegistry:
    """Picks a parser by file extension."""

    def __init__(self, parsers: list[Parser] | None = None) -> None:
        self._by_extension: dict[str, Parser] = {}
        for parser in parsers or [TextParser(), MarkdownParser(), JsonParser()]:
            self.register(parser)

    def register(self, parser: Parser) -> None:
        self._by_extension.update({ext.lower(): parser for ext in parser.extensions})

    @property
    def supported_extensions(self) -> list[str]:
        return sorted(self._by_extension)

    def parse_path(self, path: str | Path, *, doc_id: str | None = None) -> Document:
        file_path = Path(path)
        parser = self._by_extension.get(file_path.suffix.lower())
        if parser is None:
            raise ValueError(
                f"Unsupported document type {file_path.suffix!r}; "
                f"expected one of {', '.join(self.supported_extensions)}"
            )
        return parser.parse(file_path, doc_id=doc_id)
