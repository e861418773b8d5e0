import pytest

from rag_arbiter.answering.escalation import InMemoryEscalationSink
from rag_arbiter.answering.responder import ESCALATION_MESSAGE, PARTIAL_CAVEAT, QuestionAnswerer
from rag_arbiter.arbitration.strategy import StrategySelector
from rag_arbiter.config import AnswererConfig, VocabularyConfig
from rag_arbiter.errors import EscalationError, GenerationError
from rag_arbiter.index.persistence import load
from rag_arbiter.index.snapshot import IndexHolder
from rag_arbiter.ingest.pipeline import CorpusPipeline
from rag_arbiter.obs.tracing import TraceStore
from rag_arbiter.retrieval.retriever import Retriever, search
from rag_arbiter.types import Document, ResponseMode

_CAMPUS = [
    Document(doc_id="library", title="Library", text="The library opens at nine in the morning on weekdays."),
    Document(doc_id="cafeteria", title="Cafeteria", text="The cafeteria serves lunch from noon until two in the afternoon."),
    Document(doc_id="exams", title="Exams", text="Final exams are held in the main hall during December."),
]

_NOTICES = [
    Document(doc_id="docA", title="Exam notice", text="Mid semester exams start on 15th October 2025."),
    Document(doc_id="docB", title="Sports notice", text="Sports competition begins on 1st November 2025."),
]


class RecordingGenerator:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []

    def generate(self, question: str, context: str, language: str) -> str:
        self.calls.append((question, context, language))
        return "The library opens at nine."


class FailingGenerator:
    def generate(self, question: str, context: str, language: str) -> str:
        raise TimeoutError("model timed out")


class FailingSink:
    def submit(self, payload) -> None:
        raise ConnectionError("ticket queue unavailable")


def _answerer(documents, *, generator=None, sink=None, config=None):
    holder = IndexHolder()
    CorpusPipeline(holder).rebuild(documents)
    sink = sink if sink is not None else InMemoryEscalationSink()
    traces = TraceStore()
    answerer = QuestionAnswerer(
        retriever=Retriever(holder),
        selector=StrategySelector(),
        escalation_sink=sink,
        trace_store=traces,
        generator=generator,
        config=config,
    )
    return answerer, sink, traces


def test_confident_match_calls_generator_with_context() -> None:
    generator = RecordingGenerator()
    answerer, sink, traces = _answerer(_CAMPUS, generator=generator)

    response = answerer.answer(_CAMPUS[0].text, language="hindi")

    assert response.decision.mode is ResponseMode.ANSWER
    assert response.decision.confidence == pytest.approx(1.0)
    assert response.answer == "The library opens at nine."
    assert response.escalated is False
    assert sink.payloads == []

    question, context, language = generator.calls[0]
    assert question == _CAMPUS[0].text
    assert language == "hindi"
    assert context.startswith("Document: Library\nContent: The library opens at nine")
    assert traces.get(response.trace_id).mode == "answer"


def test_confident_match_without_generator_answers_extractively() -> None:
    answerer, _, _ = _answerer(_CAMPUS)

    response = answerer.answer(_CAMPUS[0].text)

    assert response.decision.mode is ResponseMode.ANSWER
    assert response.answer == "The library opens at nine in the morning on weekdays"
    assert PARTIAL_CAVEAT not in response.answer


def test_medium_match_gives_caveated_partial_answer() -> None:
    generator = RecordingGenerator()
    answerer, sink, _ = _answerer(_NOTICES, generator=generator)

    response = answerer.answer("When are the exams?")

    assert response.decision.mode is ResponseMode.PARTIAL
    assert response.decision.confidence == pytest.approx(0.408, abs=1e-3)
    assert response.answer == (
        "According to the indexed documents: Mid semester exams start on 15th October 2025.\n\n"
        "Source: Exam notice\n\n" + PARTIAL_CAVEAT
    )
    assert response.escalated is False
    assert generator.calls == []
    assert sink.payloads == []


def test_partial_answers_can_also_be_escalated() -> None:
    answerer, sink, _ = _answerer(_NOTICES, config=AnswererConfig(escalate_partial=True))

    response = answerer.answer("When are the exams?")

    assert response.decision.mode is ResponseMode.PARTIAL
    assert response.escalated is True
    assert [payload.query for payload in sink.payloads] == ["When are the exams?"]


def test_unknown_topic_is_escalated_with_retrieval_metadata() -> None:
    generator = RecordingGenerator()
    answerer, sink, traces = _answerer(_CAMPUS, generator=generator)

    response = answerer.answer("quantum chromodynamics", language="marathi")

    assert response.decision.mode is ResponseMode.ESCALATE
    assert response.decision.confidence == 0.0
    assert response.answer == ESCALATION_MESSAGE
    assert response.escalated is True
    assert generator.calls == []

    payload = sink.payloads[0]
    assert payload.query == "quantum chromodynamics"
    assert payload.language == "marathi"
    assert payload.max_similarity == 0.0
    assert payload.passages == ()
    assert traces.summary()["escalate_count"] == 1


def test_generation_failure_keeps_the_decision_and_is_traced() -> None:
    answerer, sink, traces = _answerer(_CAMPUS, generator=FailingGenerator())

    with pytest.raises(GenerationError) as excinfo:
        answerer.answer(_CAMPUS[0].text)

    assert excinfo.value.decision.mode is ResponseMode.ANSWER
    assert excinfo.value.report.results[0].doc_id == "library"
    assert isinstance(excinfo.value.__cause__, TimeoutError)
    assert sink.payloads == []

    record = traces.list_recent()[0]
    assert record.mode == "answer"
    assert "model timed out" in record.error


def test_escalation_failure_is_reported_not_downgraded() -> None:
    answerer, _, traces = _answerer(_CAMPUS, sink=FailingSink())

    with pytest.raises(EscalationError) as excinfo:
        answerer.answer("quantum chromodynamics")

    assert excinfo.value.decision.mode is ResponseMode.ESCALATE
    assert traces.summary()["error_count"] == 1


def test_pipeline_persists_each_generation(tmp_path) -> None:
    path = tmp_path / "index" / "corpus.json"
    holder = IndexHolder()
    pipeline = CorpusPipeline(holder, index_path=path)

    first = pipeline.rebuild(_CAMPUS)
    assert first.generation_id == 1
    assert load(path).generation_id == 1

    second = pipeline.rebuild(_CAMPUS[:2])
    assert second.generation_id == 2
    assert holder.current is second

    restored = load(path)
    assert restored.generation_id == 2
    assert restored.stats()["total_documents"] == 2


def test_snapshot_taken_before_rebuild_stays_consistent() -> None:
    holder = IndexHolder()
    pipeline = CorpusPipeline(holder)
    pipeline.rebuild(_CAMPUS)
    old = holder.current

    pipeline.rebuild(_NOTICES)

    old_report = search(old, _CAMPUS[2].text, top_k=5, similarity_floor=0.3)
    assert old_report.generation_id == 1
    assert old_report.results[0].doc_id == "exams"

    new_report = Retriever(holder).retrieve(_CAMPUS[2].text)
    assert new_report.generation_id == 2
    assert all(result.doc_id in {"docA", "docB"} for result in new_report.results)


def test_extraction_uses_the_index_token_length() -> None:
    holder = IndexHolder()
    CorpusPipeline(holder, vocabulary_config=VocabularyConfig(min_token_length=2)).rebuild(
        [
            Document(doc_id="labs", title="Labs", text="The lab is upstairs. The PC lab opens at nine."),
            Document(doc_id="sports", title="Sports", text="Sports begin in November."),
        ]
    )
    answerer = QuestionAnswerer(
        retriever=Retriever(holder),
        selector=StrategySelector(),
        escalation_sink=InMemoryEscalationSink(),
        trace_store=TraceStore(),
    )

    response = answerer.answer("pc lab")

    assert response.decision.mode is ResponseMode.PARTIAL
    assert response.report.min_token_length == 2
    assert response.answer.startswith("According to the indexed documents: The PC lab opens at nine.")
