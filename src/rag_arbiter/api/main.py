"""FastAPI entrypoint for corpus, query, search and trace endpoints."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from rag_arbiter.answering.context import ContextAssembler
from rag_arbiter.answering.escalation import EscalationSink, InMemoryEscalationSink
from rag_arbiter.answering.generator import (
    AnswerGenerator,
    ChatModelAnswerGenerator,
    create_chat_model,
)
from rag_arbiter.answering.responder import QuestionAnswerer
from rag_arbiter.arbitration.strategy import StrategySelector
from rag_arbiter.config import ArbiterSettings
from rag_arbiter.errors import CollaboratorError, DocumentSourceError
from rag_arbiter.index.persistence import load_corpus
from rag_arbiter.index.snapshot import Index, IndexHolder
from rag_arbiter.ingest.chunker import SentenceChunker
from rag_arbiter.ingest.parser import ParserRegistry
from rag_arbiter.ingest.pipeline import CorpusPipeline
from rag_arbiter.obs.tracing import TraceStore
from rag_arbiter.retrieval.retriever import Retriever
from rag_arbiter.types import Document, RetrievalReport

logger = logging.getLogger(__name__)


class DocumentIn(BaseModel):
    doc_id: str = Field(min_length=1)
    title: str = ""
    text: str
    language: str = "english"
    metadata: dict[str, Any] = Field(default_factory=dict)


class DocumentsRequest(BaseModel):
    documents: list[DocumentIn]
    replace: bool = False


class IngestRequest(BaseModel):
    paths: list[str] = Field(min_length=1)
    replace: bool = False


class QueryRequest(BaseModel):
    question: str = Field(min_length=1)
    language: str = "english"


class SourceSearchRequest(BaseModel):
    query: str = Field(min_length=1)
    top_k: int = Field(default=5, ge=1, le=20)
    similarity_floor: float | None = Field(default=None, ge=0.0, le=1.0)


def create_app(
    settings: ArbiterSettings | None = None,
    *,
    generator: AnswerGenerator | None = None,
    escalation_sink: EscalationSink | None = None,
) -> FastAPI:
    """Wire one independent service instance around its own index holder."""

    settings = settings or ArbiterSettings.from_env()
    restored, documents = (
        load_corpus(settings.index_path) if settings.index_path else (None, [])
    )
    holder = IndexHolder(restored)

    if generator is None:
        llm = create_chat_model(settings.generation)
        generator = ChatModelAnswerGenerator(llm) if llm is not None else None

    parser_registry = ParserRegistry()
    pipeline = CorpusPipeline(
        holder,
        SentenceChunker(settings.chunking),
        vocabulary_config=settings.vocabulary,
        index_path=settings.index_path,
        documents=documents,
    )
    retriever = Retriever(holder, settings.retrieval)
    trace_store = TraceStore()
    sink = escalation_sink or InMemoryEscalationSink()
    answerer = QuestionAnswerer(
        retriever=retriever,
        selector=StrategySelector(settings.strategy),
        escalation_sink=sink,
        trace_store=trace_store,
        generator=generator,
        context_assembler=ContextAssembler(settings.generation.max_context_chars),
        config=settings.answerer,
    )

    def _publish_payload(index: Index) -> dict[str, Any]:
        return {
            **index.stats(),
            "chunk_ids": [entry.chunk_id for entry in index.entries],
        }

    app = FastAPI(title="RAG Arbiter", version="0.1.0")

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "generation_id": holder.current.generation_id,
            "documents": len(pipeline.documents),
            "llm_configured": generator is not None,
            "generator_mode": "generative" if generator is not None else "extractive",
        }

    @app.post("/documents")
    def add_documents(request: DocumentsRequest) -> dict[str, Any]:
        """Merge documents into the corpus (or replace it) and rebuild.

        The corpus includes documents restored from the persisted index, so
        `replace=false` after a restart extends the stored corpus.
        """
        incoming = [
            Document(
                doc_id=item.doc_id,
                title=item.title or item.doc_id,
                text=item.text,
                language=item.language,
                metadata=item.metadata,
            )
            for item in request.documents
        ]
        return _publish_payload(pipeline.publish(incoming, replace=request.replace))

    @app.post("/ingest")
    def ingest(request: IngestRequest) -> dict[str, Any]:
        try:
            index = pipeline.rebuild_from_paths(
                request.paths, parser_registry, replace=request.replace
            )
        except DocumentSourceError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _publish_payload(index)

    @app.post("/query")
    def query(request: QueryRequest) -> dict[str, Any]:
        try:
            response = answerer.answer(request.question, language=request.language)
        except CollaboratorError as exc:
            raise HTTPException(
                status_code=502,
                detail={
                    "error": str(exc),
                    "mode": exc.decision.mode.value,
                    "confidence": exc.decision.confidence,
                },
            ) from exc

        return {
            "answer": response.answer,
            "mode": response.decision.mode.value,
            "confidence": response.decision.confidence,
            "reason": response.decision.reason,
            "escalated": response.escalated,
            "trace_id": response.trace_id,
            "retrieval": _report_payload(response.report),
        }

    @app.post("/sources/search")
    def source_search(request: SourceSearchRequest) -> dict[str, Any]:
        report = retriever.retrieve(
            request.query,
            top_k=request.top_k,
            similarity_floor=request.similarity_floor,
        )
        return _report_payload(report)

    @app.get("/index/stats")
    def index_stats() -> dict[str, Any]:
        return holder.current.stats()

    @app.get("/escalations")
    def escalations() -> dict[str, Any]:
        if not isinstance(sink, InMemoryEscalationSink):
            return {"items": []}
        return {"items": [asdict(payload) for payload in sink.payloads]}

    @app.get("/traces")
    def traces(limit: int = 20) -> dict[str, Any]:
        records = [asdict(record) for record in trace_store.list_recent(limit=limit)]
        return {"items": records}

    @app.get("/traces/{trace_id}")
    def trace_detail(trace_id: str) -> dict[str, Any]:
        try:
            record = trace_store.get(trace_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return asdict(record)

    @app.get("/metrics")
    def metrics() -> dict[str, Any]:
        return trace_store.summary()

    logger.info(
        "Service ready at generation %d (generator=%s)",
        holder.current.generation_id,
        "generative" if generator is not None else "extractive",
    )
    return app


def _report_payload(report: RetrievalReport) -> dict[str, Any]:
    return {
        "total_results": report.total_matches,
        "max_similarity": report.max_similarity,
        "average_similarity": report.average_similarity,
        "generation_id": report.generation_id,
        "items": [
            {
                "chunk_id": result.chunk_id,
                "doc_id": result.doc_id,
                "score": result.score,
                "text": result.content,
                "metadata": result.metadata,
            }
            for result in report.results
        ],
    }


app = create_app()
