"""Unit tests for the typer CLI commands."""

from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from indexqa.cli.main import app
from indexqa.exceptions import InputValidationError
from indexqa.generation.generator import AnswerStream
from indexqa.models.chunk import RetrievedChunk
from indexqa.models.citation import Citation
from indexqa.models.document import Collection, DocumentRecord, ProcessDocumentResult
from indexqa.models.enums import AnswerSource, SourceType
from indexqa.models.query import Answer
from indexqa.service import QAService

runner = CliRunner()


def _service():
    service = MagicMock(spec=QAService)
    service.document_store = MagicMock()
    return service


class TestAsk:

    @patch("indexqa.cli.ask.load_service")
    def test_prints_answer_and_sources(self, mock_load):
        service = _service()
        service.answer_question.return_value = Answer(
            answer="Rates held [1].",
            source=AnswerSource.ARCHIVE,
            citations=[Citation(1, "doc-1", "January Minutes", "Rates held...", page=3)],
        )
        mock_load.return_value = service

        result = runner.invoke(app, ["ask", "What happened?", "-c", "fomc", "-d", "doc-1"])

        assert result.exit_code == 0
        assert "Rates held [1]." in result.output
        assert "[1] January Minutes, p. 3" in result.output
        service.answer_question.assert_called_once_with("fomc", "What happened?", ["doc-1"])

    @patch("indexqa.cli.ask.load_service")
    def test_streaming(self, mock_load):
        service = _service()
        chunk = RetrievedChunk(id="doc-1_chunk_0", document_id="doc-1", content="x", score=0.9)
        service.stream_answer.return_value = (
            AnswerSource.WEB,
            AnswerStream(iter(["From the ", "web [1]."]), [chunk], {"doc-1": "Page"}),
        )
        mock_load.return_value = service

        result = runner.invoke(app, ["ask", "What happened?", "-c", "fomc", "--stream"])

        assert result.exit_code == 0
        assert "From the web [1]." in result.output
        assert "[1] Page" in result.output

    @patch("indexqa.cli.ask.load_service")
    def test_invalid_input_exits_with_error(self, mock_load):
        service = _service()
        service.answer_question.side_effect = InputValidationError("Collection not found: nope")
        mock_load.return_value = service

        result = runner.invoke(app, ["ask", "What happened?", "-c", "nope"])

        assert result.exit_code == 1
        assert "Collection not found" in result.output


class TestIngest:

    def test_requires_exactly_one_source(self):
        result = runner.invoke(app, ["ingest", "-c", "fomc"])
        assert result.exit_code == 1
        assert "exactly one" in result.output

    @patch("indexqa.cli.ingest.load_service")
    def test_markdown_file(self, mock_load, tmp_path):
        path = tmp_path / "notes.md"
        path.write_text("# Notes\n\nSome text.", encoding="utf-8")
        service = _service()
        service.document_store.get_collection.return_value = None
        service.create_collection.return_value = Collection(id="fomc", title="fomc")
        service.ingest_document.return_value = ProcessDocumentResult(
            success=True, chunk_count=1, token_count=3
        )
        mock_load.return_value = service

        result = runner.invoke(app, ["ingest", "-c", "fomc", "-f", str(path), "--id", "notes"])

        assert result.exit_code == 0
        assert "Chunks stored: 1" in result.output
        doc = service.ingest_document.call_args.args[0]
        assert doc.id == "notes"
        assert doc.title == "notes"
        assert doc.source_type == SourceType.MARKDOWN
        assert doc.content == "# Notes\n\nSome text."

    @patch("indexqa.cli.ingest.load_service")
    def test_failure_exits_nonzero(self, mock_load):
        service = _service()
        service.document_store.get_collection.return_value = Collection(id="fomc", title="fomc")
        service.ingest_document.return_value = ProcessDocumentResult.failure("Failed to fetch URL: 404")
        mock_load.return_value = service

        result = runner.invoke(app, ["ingest", "-c", "fomc", "-u", "https://example.com/x"])

        assert result.exit_code == 1
        assert "Failed to fetch URL: 404" in result.output


class TestDelete:

    @patch("indexqa.cli.delete.load_service")
    def test_uses_stored_chunk_count(self, mock_load):
        service = _service()
        service.document_store.get_document.return_value = DocumentRecord(
            id="doc-1", collection_id="fomc", title="Minutes",
            source_type=SourceType.MARKDOWN, chunk_count=4,
        )
        service.delete_document_vectors.return_value = True
        mock_load.return_value = service

        result = runner.invoke(app, ["delete", "doc-1"])

        assert result.exit_code == 0
        service.delete_document_vectors.assert_called_once_with("doc-1", 4)
        service.document_store.update_document.assert_called_once_with(
            "doc-1", chunk_count=0, token_count=0
        )

    @patch("indexqa.cli.delete.load_service")
    def test_unknown_document(self, mock_load):
        service = _service()
        service.document_store.get_document.return_value = None
        mock_load.return_value = service

        result = runner.invoke(app, ["delete", "missing"])

        assert result.exit_code == 1
