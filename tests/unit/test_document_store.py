"""Unit tests for the SQLite document store."""

import pytest

from indexqa.models.document import Collection, DocumentRecord
from indexqa.models.enums import DocumentStatus, SourceType
from indexqa.storage.document_store import SQLiteDocumentStore


@pytest.fixture
def store():
    s = SQLiteDocumentStore(":memory:")
    yield s
    s.close()


def _record(doc_id="doc-1", **overrides):
    fields = dict(
        id=doc_id,
        collection_id="col-1",
        title="Title",
        source_type=SourceType.MARKDOWN,
        content="raw content",
    )
    fields.update(overrides)
    return DocumentRecord(**fields)


class TestCollections:

    def test_round_trip(self, store):
        store.save_collection(Collection(id="col-1", title="Research", namespace="ns-1"))
        collection = store.get_collection("col-1")
        assert collection == Collection(id="col-1", title="Research", namespace="ns-1")

    def test_namespace_defaults_to_id(self, store):
        store.save_collection(Collection(id="col-2", title="Other"))
        assert store.get_collection("col-2").namespace == "col-2"

    def test_missing(self, store):
        assert store.get_collection("nope") is None


class TestDocuments:

    def test_save_and_get(self, store):
        store.save_document(_record(topics=["a", "b"]))
        record = store.get_document("doc-1")

        assert record.title == "Title"
        assert record.source_type == SourceType.MARKDOWN
        assert record.status == DocumentStatus.PENDING
        assert record.topics == ["a", "b"]
        assert record.chunk_count == 0

    def test_missing_document(self, store):
        assert store.get_document("nope") is None

    def test_update_selected_fields(self, store):
        store.save_document(_record())
        store.update_document(
            "doc-1",
            status=DocumentStatus.COMPLETED,
            chunk_count=4,
            token_count=120,
            topics=["rates"],
            summary="Short.",
        )

        record = store.get_document("doc-1")
        assert record.status == DocumentStatus.COMPLETED
        assert record.chunk_count == 4
        assert record.token_count == 120
        assert record.topics == ["rates"]
        assert record.summary == "Short."
        assert record.content == "raw content"

    def test_update_rejects_unknown_fields(self, store):
        store.save_document(_record())
        with pytest.raises(ValueError):
            store.update_document("doc-1", collection_id="other")

    def test_list_documents_in_insertion_order(self, store):
        store.save_document(_record("doc-1"))
        store.save_document(_record("doc-2", title="Second"))
        store.save_document(_record("doc-3", collection_id="col-2"))

        assert [d.id for d in store.list_documents("col-1")] == ["doc-1", "doc-2"]
        assert store.get_document_titles("col-1") == {"doc-1": "Title", "doc-2": "Second"}


class TestDocumentTexts:

    def test_prefers_processed_content(self, store):
        store.save_document(_record("doc-1", processed_content="cleaned"))
        store.save_document(_record("doc-2"))
        store.save_document(_record("doc-3", content=None))

        texts = store.get_document_texts(["doc-1", "doc-2", "doc-3", "missing"])

        assert texts == {"doc-1": "cleaned", "doc-2": "raw content"}

    def test_empty_ids(self, store):
        assert store.get_document_texts([]) == {}
