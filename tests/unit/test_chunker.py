from rag_arbiter.config import ChunkingConfig
from rag_arbiter.ingest.chunker import SentenceChunker
from rag_arbiter.types import Document


def _doc(text: str, doc_id: str = "doc-1") -> Document:
    return Document(doc_id=doc_id, title="Notice", text=text)


def test_empty_and_whitespace_text_yield_no_chunks() -> None:
    chunker = SentenceChunker()

    assert chunker.chunk_document(_doc("")) == []
    assert chunker.chunk_document(_doc("   \n\t  ")) == []


def test_short_document_is_one_chunk() -> None:
    chunks = SentenceChunker().chunk_document(
        _doc("Mid semester exams start on 15th October 2025.", doc_id="docA")
    )

    assert len(chunks) == 1
    assert chunks[0].chunk_id == "docA-chunk-0000"
    assert chunks[0].doc_id == "docA"
    assert chunks[0].word_count == 8
    assert chunks[0].metadata["title"] == "Notice"
    assert chunks[0].metadata["chunk_index"] == 0


def test_sentences_are_packed_and_next_chunk_repeats_word_tail() -> None:
    chunker = SentenceChunker(ChunkingConfig(chunk_size=60, overlap_words=2))
    text = (
        "Alpha beta gamma delta epsilon. "
        "Zeta eta theta iota kappa. "
        "Lambda mu nu xi omicron."
    )

    chunks = chunker.chunk_document(_doc(text))

    assert [chunk.text for chunk in chunks] == [
        "Alpha beta gamma delta epsilon. Zeta eta theta iota kappa.",
        "iota kappa. Lambda mu nu xi omicron.",
    ]
    assert all(len(chunk.text) <= 60 for chunk in chunks)
    assert [chunk.chunk_id for chunk in chunks] == ["doc-1-chunk-0000", "doc-1-chunk-0001"]


def test_long_sentence_is_sliced_into_overlapping_word_windows() -> None:
    chunker = SentenceChunker(ChunkingConfig(chunk_size=20, overlap_words=1))

    chunks = chunker.chunk_document(
        _doc("one two three four five six seven eight nine ten")
    )

    assert [chunk.text for chunk in chunks] == [
        "one two three four",
        "four five six seven",
        "seven eight nine ten",
    ]
    assert all(len(chunk.text) <= 20 for chunk in chunks)


def test_trivial_chunks_are_discarded() -> None:
    chunker = SentenceChunker()

    assert chunker.chunk_document(_doc("... !!! ?")) == []
    assert chunker.chunk_document(_doc("Ok.")) == []


def test_chunk_documents_keeps_document_order() -> None:
    chunker = SentenceChunker()
    documents = [
        _doc("Sports competition begins on 1st November 2025.", doc_id="docB"),
        _doc("Mid semester exams start on 15th October 2025.", doc_id="docA"),
    ]

    chunks = chunker.chunk_documents(documents)

    assert [chunk.doc_id for chunk in chunks] == ["docB", "docA"]
