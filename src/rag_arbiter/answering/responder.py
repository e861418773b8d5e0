"""Question answering: retrieve, decide, then hand off to one collaborator."""

from __future__ import annotations

import logging

from rag_arbiter.answering.context import ContextAssembler
from rag_arbiter.answering.escalation import EscalationSink, build_escalation_payload
from rag_arbiter.answering.generator import AnswerGenerator
from rag_arbiter.arbitration.extractor import HeuristicExtractor, query_tokens
from rag_arbiter.arbitration.strategy import StrategySelector
from rag_arbiter.config import AnswererConfig
from rag_arbiter.errors import CollaboratorError, EscalationError, GenerationError
from rag_arbiter.obs.tracing import Timer, TraceStore
from rag_arbiter.retrieval.retriever import Retriever
from rag_arbiter.types import AnswerResponse, ResponseMode, RetrievalReport, StrategyDecision

logger = logging.getLogger(__name__)

PARTIAL_CAVEAT = (
    "Note: This information is from the indexed documents. For the most "
    "current details, please contact the administration."
)
ESCALATION_MESSAGE = (
    "I don't have specific information about your question in my current "
    "knowledge base. Your question has been forwarded to our team, and they "
    "will get back to you soon."
)
NO_PASSAGE_MESSAGE = (
    "I found some related information, but need more specific details to "
    "provide a complete answer."
)


class QuestionAnswerer:
    """Runs one question through retrieval, arbitration and response.

    The strategy decision is taken once from the retrieval report and never
    revisited. If the collaborator for that decision fails, a
    `CollaboratorError` carrying the decision is raised after the trace is
    recorded.

    Without a generator the ANSWER path answers from the top passage with the
    heuristic extractor, without the PARTIAL caveat.
    """

    def __init__(
        self,
        *,
        retriever: Retriever,
        selector: StrategySelector,
        escalation_sink: EscalationSink,
        trace_store: TraceStore,
        generator: AnswerGenerator | None = None,
        extractor: HeuristicExtractor | None = None,
        context_assembler: ContextAssembler | None = None,
        config: AnswererConfig | None = None,
    ) -> None:
        self.retriever = retriever
        self.selector = selector
        self.escalation_sink = escalation_sink
        self.trace_store = trace_store
        self.generator = generator
        self.config = config or AnswererConfig()
        self.extractor = extractor or HeuristicExtractor(
            min_sentence_chars=self.config.min_sentence_chars
        )
        self.context_assembler = context_assembler or ContextAssembler()

    def answer(self, question: str, *, language: str = "english") -> AnswerResponse:
        answer = ""
        escalated = False
        error: CollaboratorError | None = None

        with Timer() as timer:
            report = self.retriever.retrieve(question)
            decision = self.selector.select_for(report)
            logger.info(
                "Question routed to %s (confidence=%.3f, results=%d, generation=%d)",
                decision.mode.value,
                decision.confidence,
                len(report.results),
                report.generation_id,
            )
            try:
                answer, escalated = self._respond(question, language, report, decision)
            except CollaboratorError as exc:
                logger.warning("Collaborator failed for %s: %s", decision.mode.value, exc)
                error = exc

        record = self.trace_store.create_record(
            question=question,
            language=language,
            decision=decision,
            report=report,
            answer=answer,
            escalated=escalated,
            latency_ms=timer.elapsed_ms,
            error=str(error) if error else None,
        )
        if error is not None:
            raise error

        return AnswerResponse(
            question=question,
            language=language,
            answer=answer,
            decision=decision,
            report=report,
            escalated=escalated,
            trace_id=record.trace_id,
        )

    def _respond(
        self,
        question: str,
        language: str,
        report: RetrievalReport,
        decision: StrategyDecision,
    ) -> tuple[str, bool]:
        match decision.mode:
            case ResponseMode.ANSWER:
                if self.generator is None:
                    return self._extract(question, report), False
                return self._generate(question, language, report, decision), False
            case ResponseMode.PARTIAL:
                answer = self._partial_answer(question, report)
                if self.config.escalate_partial:
                    self._escalate(question, language, report, decision)
                    return answer, True
                return answer, False
            case ResponseMode.ESCALATE:
                self._escalate(question, language, report, decision)
                return ESCALATION_MESSAGE, True
            case _:
                raise ValueError(f"Unhandled response mode: {decision.mode}")

    def _generate(
        self,
        question: str,
        language: str,
        report: RetrievalReport,
        decision: StrategyDecision,
    ) -> str:
        context = self.context_assembler.assemble(report.results)
        try:
            return self.generator.generate(question, context, language)
        except Exception as exc:
            raise GenerationError(
                f"Answer generation failed: {exc}", decision=decision, report=report
            ) from exc

    def _escalate(
        self,
        question: str,
        language: str,
        report: RetrievalReport,
        decision: StrategyDecision,
    ) -> None:
        payload = build_escalation_payload(
            question, language, report, preview_chars=self.config.preview_chars
        )
        try:
            self.escalation_sink.submit(payload)
        except Exception as exc:
            raise EscalationError(
                f"Escalation failed: {exc}", decision=decision, report=report
            ) from exc

    def _extract(self, question: str, report: RetrievalReport) -> str:
        if not report.results:
            return ""
        keywords = query_tokens(question, min_token_length=report.min_token_length)
        return self.extractor.extract(report.results[0].content, keywords)

    def _partial_answer(self, question: str, report: RetrievalReport) -> str:
        sentence = self._extract(question, report)
        if not sentence:
            return f"{NO_PASSAGE_MESSAGE}\n\n{PARTIAL_CAVEAT}"

        lines = [f"According to the indexed documents: {sentence}."]
        title = report.results[0].metadata.get("title")
        if title:
            lines.append(f"Source: {title}")
        lines.append(PARTIAL_CAVEAT)
        return "\n\n".join(lines)
