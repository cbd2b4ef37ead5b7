"""Unit tests for the service facade and its wiring from settings."""

from unittest.mock import MagicMock, patch

import pytest

from config.settings import Settings
from indexqa.agent.nodes import NO_RESULTS_MESSAGE
from indexqa.embedding.provider import EmbeddingProvider
from indexqa.exceptions import ConfigurationError, InputValidationError
from indexqa.generation.generator import AnswerGenerator, AnswerStream
from indexqa.ingestion.processor import DocumentProcessor
from indexqa.models.chunk import RetrievedChunk
from indexqa.models.citation import GenerationResult
from indexqa.models.document import DocumentInfo, DocumentRecord, ProcessDocumentResult
from indexqa.models.enums import AnswerSource, SourceType
from indexqa.models.query import RetrievalResult
from indexqa.retrieval.retriever import Retriever
from indexqa.retrieval.web_search import NoWebSearch, TavilyWebSearch, WebSearchProvider
from indexqa.service import QAService, build_service
from indexqa.storage.document_store import SQLiteDocumentStore
from indexqa.vectorstore.base import VectorIndex

CHUNK = RetrievedChunk(id="doc-1_chunk_0", document_id="doc-1", content="Rates held.", score=0.9)


@pytest.fixture
def store():
    s = SQLiteDocumentStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def retriever():
    r = MagicMock(spec=Retriever)
    r.retrieve_chunks.return_value = RetrievalResult([CHUNK], True)
    return r


@pytest.fixture
def generator():
    g = MagicMock(spec=AnswerGenerator)
    g.generate_answer.return_value = GenerationResult(answer="Rates held [1].")
    return g


@pytest.fixture
def processor():
    return MagicMock(spec=DocumentProcessor)


@pytest.fixture
def web_search():
    w = MagicMock(spec=WebSearchProvider)
    w.search.return_value = []
    return w


@pytest.fixture
def service(retriever, generator, processor, store, web_search):
    svc = QAService(retriever, generator, processor, store, web_search=web_search)
    svc.create_collection("col-1", "Research", namespace="ns-1")
    store.save_document(DocumentRecord(
        id="doc-1", collection_id="col-1", title="Minutes", source_type=SourceType.MARKDOWN,
    ))
    return svc


class TestValidation:

    def test_empty_question_rejected_before_retrieval(self, service, retriever):
        with pytest.raises(InputValidationError):
            service.answer_question("col-1", "   ")
        retriever.retrieve_chunks.assert_not_called()

    def test_unknown_collection_rejected_before_retrieval(self, service, retriever):
        with pytest.raises(InputValidationError):
            service.answer_question("missing", "What happened?")
        retriever.retrieve_chunks.assert_not_called()

    def test_stream_validates_too(self, service, generator):
        with pytest.raises(InputValidationError):
            service.stream_answer("missing", "What happened?")
        generator.stream_answer.assert_not_called()

    def test_ingest_into_unknown_collection(self, service, processor):
        doc = DocumentInfo(
            id="doc-9", collection_id="missing", namespace="ns", title="T",
            source_type=SourceType.MARKDOWN, content="text",
        )
        with pytest.raises(InputValidationError):
            service.ingest_document(doc)
        processor.ingest_document.assert_not_called()


class TestAnswerQuestion:

    def test_archive_answer(self, service, retriever, generator):
        answer = service.answer_question("col-1", "What happened?", document_ids=["doc-1"])

        assert answer.answer == "Rates held [1]."
        assert answer.source == AnswerSource.ARCHIVE
        kwargs = retriever.retrieve_chunks.call_args.kwargs
        assert kwargs["namespace"] == "ns-1"
        assert kwargs["document_ids"] == ["doc-1"]
        assert generator.generate_answer.call_args.args[2] == {"doc-1": "Minutes"}

    def test_no_results(self, service, retriever):
        retriever.retrieve_chunks.return_value = RetrievalResult([], False)

        answer = service.answer_question("col-1", "What happened?")

        assert answer.answer == NO_RESULTS_MESSAGE
        assert answer.citations == []


class TestStreamAnswer:

    def test_streams_from_generator(self, service, generator):
        stream = AnswerStream(iter(["Rates ", "held [1]."]), [CHUNK], {"doc-1": "Minutes"})
        generator.stream_answer.return_value = stream

        source, result = service.stream_answer("col-1", "What happened?")

        assert source == AnswerSource.ARCHIVE
        assert result is stream
        assert generator.stream_answer.call_args.args[1] == [CHUNK]
        generator.generate_answer.assert_not_called()

    def test_no_context_streams_no_results_message(self, service, retriever, generator):
        retriever.retrieve_chunks.return_value = RetrievalResult([], False)

        source, stream = service.stream_answer("col-1", "What happened?")

        assert list(stream) == [NO_RESULTS_MESSAGE]
        assert stream.citations == []
        generator.stream_answer.assert_not_called()


class TestDelegation:

    def test_ingest_document(self, service, processor):
        processor.ingest_document.return_value = ProcessDocumentResult(success=True, chunk_count=2)
        doc = DocumentInfo(
            id="doc-2", collection_id="col-1", namespace="ns-1", title="T",
            source_type=SourceType.MARKDOWN, content="text",
        )

        assert service.ingest_document(doc).chunk_count == 2
        processor.ingest_document.assert_called_once_with(doc)

    def test_delete_and_reprocess(self, service, processor):
        processor.delete_document_vectors.return_value = True
        assert service.delete_document_vectors("doc-1", 4) is True
        processor.delete_document_vectors.assert_called_once_with("doc-1", 4)

        service.reprocess_document("doc-1")
        processor.reprocess_document.assert_called_once_with("doc-1")


class TestBuildService:

    def _settings(self, **overrides):
        values = dict(
            anthropic_api_key="sk-test",
            tavily_api_key="",
            indexqa_analysis_enabled=False,
        )
        values.update(overrides)
        return Settings(_env_file=None, **values)

    @patch("indexqa.service.get_text_generator")
    def test_injected_collaborators(self, mock_get_text_generator, store):
        svc = build_service(
            self._settings(),
            embedding_provider=MagicMock(spec=EmbeddingProvider),
            vector_index=MagicMock(spec=VectorIndex),
            document_store=store,
        )
        assert svc.document_store is store
        mock_get_text_generator.assert_called_once()

    @patch("indexqa.service.QAService")
    @patch("indexqa.service.get_text_generator")
    def test_web_search_needs_key(self, mock_get_text_generator, mock_service, store):
        collaborators = dict(
            embedding_provider=MagicMock(spec=EmbeddingProvider),
            vector_index=MagicMock(spec=VectorIndex),
            document_store=store,
        )

        build_service(self._settings(), **collaborators)
        assert isinstance(mock_service.call_args.kwargs["web_search"], NoWebSearch)

        build_service(self._settings(tavily_api_key="tvly-test"), **collaborators)
        assert isinstance(mock_service.call_args.kwargs["web_search"], TavilyWebSearch)

    def test_missing_llm_key(self, store):
        with pytest.raises(ConfigurationError):
            build_service(
                self._settings(anthropic_api_key=""),
                embedding_provider=MagicMock(spec=EmbeddingProvider),
                vector_index=MagicMock(spec=VectorIndex),
                document_store=store,
            )
