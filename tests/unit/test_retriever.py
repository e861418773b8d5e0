import pytest

from rag_arbiter.arbitration.strategy import StrategySelector
from rag_arbiter.config import RetrievalConfig, StrategyConfig
from rag_arbiter.index.snapshot import Index, IndexHolder
from rag_arbiter.ingest.chunker import SentenceChunker
from rag_arbiter.retrieval.retriever import Retriever, search
from rag_arbiter.types import Document, DocumentChunk, ResponseMode

_DOCS = [
    Document(doc_id="library", title="Library", text="The library opens at nine in the morning on weekdays."),
    Document(doc_id="cafeteria", title="Cafeteria", text="The cafeteria serves lunch from noon until two in the afternoon."),
    Document(doc_id="exams", title="Exams", text="Final exams are held in the main hall during December."),
]


def _holder(documents: list[Document]) -> IndexHolder:
    chunks = SentenceChunker().chunk_documents(documents)
    return IndexHolder(Index.build(chunks, generation_id=1))


def _chunk(chunk_id: str, text: str) -> DocumentChunk:
    return DocumentChunk(chunk_id=chunk_id, doc_id=chunk_id, text=text, word_count=len(text.split()))


def test_self_match_ranks_source_chunk_first() -> None:
    retriever = Retriever(_holder(_DOCS))

    for document in _DOCS:
        report = retriever.retrieve(document.text)
        assert report.results[0].doc_id == document.doc_id
        assert report.results[0].score >= 0.99


def test_exam_question_prefers_exam_notice_over_sports_notice() -> None:
    holder = _holder(
        [
            Document(doc_id="docA", title="Exams", text="Mid semester exams start on 15th October 2025."),
            Document(doc_id="docB", title="Sports", text="Sports competition begins on 1st November 2025."),
        ]
    )

    report = Retriever(holder).retrieve("When are the exams?", similarity_floor=0.0)
    scores = {result.doc_id: result.score for result in report.results}

    assert report.results[0].doc_id == "docA"
    assert scores["docA"] > scores["docB"]

    decision = StrategySelector(
        StrategyConfig(high_confidence=0.5, medium_confidence=0.4)
    ).select_for(Retriever(holder).retrieve("When are the exams?"))
    assert decision.mode in {ResponseMode.ANSWER, ResponseMode.PARTIAL}


def test_results_respect_floor_and_top_k_and_report_confidence() -> None:
    index = Index.build(
        [
            _chunk("c0", "solar panels energy storage"),
            _chunk("c1", "solar panels energy"),
            _chunk("c2", "wind turbine power storage"),
            _chunk("c3", "wind turbine power"),
        ]
    )

    report = search(index, "solar energy", top_k=1, similarity_floor=0.1)

    assert [result.chunk_id for result in report.results] == ["c1"]
    assert report.total_matches == 2
    assert report.max_similarity == report.results[0].score
    assert report.average_similarity == pytest.approx(report.results[0].score)

    report = search(index, "solar energy", top_k=5, similarity_floor=0.1)
    assert [result.chunk_id for result in report.results] == ["c1", "c0"]
    assert report.average_similarity == pytest.approx(
        sum(result.score for result in report.results) / 2
    )


def test_equal_scores_keep_insertion_order() -> None:
    index = Index.build(
        [
            _chunk("z-first", "solar panels energy"),
            _chunk("a-second", "solar panels energy"),
            _chunk("m-third", "wind turbine power"),
            _chunk("b-fourth", "wind turbine power"),
        ]
    )

    report = search(index, "solar energy", top_k=5, similarity_floor=0.1)

    assert [result.chunk_id for result in report.results] == ["z-first", "a-second"]
    assert report.results[0].score == report.results[1].score


def test_query_without_vocabulary_terms_scores_zero_not_nan() -> None:
    holder = _holder(_DOCS)

    report = Retriever(holder).retrieve("quantum chromodynamics", similarity_floor=0.0)

    assert len(report.results) == 3
    assert all(result.score == 0.0 for result in report.results)
    assert Retriever(holder).retrieve("quantum chromodynamics").results == ()


def test_empty_corpus_returns_nothing_and_escalates() -> None:
    holder = IndexHolder(Index.build([]))

    report = Retriever(holder).retrieve("When are the exams?")

    assert report.results == ()
    assert report.max_similarity == 0.0
    assert report.average_similarity == 0.0
    assert StrategySelector().select_for(report).mode is ResponseMode.ESCALATE


def test_retriever_reads_live_generation() -> None:
    holder = _holder(_DOCS[:1])
    retriever = Retriever(holder, RetrievalConfig(similarity_floor=0.0))
    assert retriever.retrieve("lunch").generation_id == 1

    holder.swap(Index.build(SentenceChunker().chunk_documents(_DOCS), generation_id=2))
    report = retriever.retrieve("cafeteria lunch")

    assert report.generation_id == 2
    assert report.results[0].doc_id == "cafeteria"


def test_rebuilding_same_corpus_gives_identical_scores() -> None:
    first = Retriever(_holder(_DOCS)).retrieve("library exams", similarity_floor=0.0)
    second = Retriever(_holder(_DOCS)).retrieve("library exams", similarity_floor=0.0)

    assert [(r.chunk_id, r.score) for r in first.results] == [
        (r.chunk_id, r.score) for r in second.results
    ]


def test_explicit_zero_top_k_is_not_replaced_by_default() -> None:
    retriever = Retriever(_holder(_DOCS), RetrievalConfig(similarity_floor=0.0))

    report = retriever.retrieve("library exams", top_k=0)

    assert report.results == ()
    assert report.total_matches == 3
    assert len(retriever.retrieve("library exams").results) == 3
