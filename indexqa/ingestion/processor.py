"""Ingestion orchestrator.

Wires together: extractor → analyzer → chunker → embedding → vector index,
and records the outcome in the document store.

Vector ids are deterministic (``{document_id}_chunk_{i}``) so a document's
vectors can be deleted from its chunk count alone, without reading the index.
"""

import logging
import re
from dataclasses import dataclass, field

from indexqa.embedding.provider import EmbeddingProvider
from indexqa.exceptions import InputValidationError
from indexqa.ingestion.analyzer import SourceAnalysis, SourceAnalyzer
from indexqa.ingestion.chunker import ChunkingOptions, chunk_markdown, normalize_line_endings
from indexqa.ingestion.extractor import ContentExtractor
from indexqa.models.chunk import Chunk
from indexqa.models.document import DocumentInfo, DocumentRecord, ProcessDocumentResult
from indexqa.models.enums import DocumentStatus, SourceType
from indexqa.storage.document_store import DocumentStore
from indexqa.vectorstore.base import VectorIndex, VectorRecord

logger = logging.getLogger(__name__)

# PDF text is laid out as "## Page N" sections; chunks under one carry its page
PAGE_SECTION = re.compile(r"^Page (\d+)$")


def vector_id(document_id: str, chunk_index: int) -> str:
    return f"{document_id}_chunk_{chunk_index}"


@dataclass(frozen=True)
class IngestionConfig:
    chunking: ChunkingOptions = field(
        default_factory=lambda: ChunkingOptions(
            max_chunk_size=1500, chunk_overlap=200, min_chunk_size=100
        )
    )
    embed_batch_size: int = 100
    upsert_batch_size: int = 100
    delete_batch_size: int = 100

    def __post_init__(self):
        for name in ("embed_batch_size", "upsert_batch_size", "delete_batch_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")


@dataclass
class _SourceText:
    content: str
    title: str


class DocumentProcessor:
    """Chunks, embeds and indexes documents; deletes and rebuilds their vectors."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_index: VectorIndex | None,
        document_store: DocumentStore,
        extractor: ContentExtractor | None = None,
        analyzer: SourceAnalyzer | None = None,
        config: IngestionConfig | None = None,
    ):
        self._embedding_provider = embedding_provider
        self._vector_index = vector_index
        self._document_store = document_store
        self._extractor = extractor or ContentExtractor()
        self._analyzer = analyzer
        self._config = config or IngestionConfig()

    def _source_text(self, doc: DocumentInfo) -> _SourceText:
        if doc.source_type == SourceType.URL:
            extracted = self._extractor.extract_from_url(doc.source_url)
            return _SourceText(extracted.content, extracted.title or doc.title)
        if doc.source_type == SourceType.PDF and doc.file_bytes:
            extracted = self._extractor.extract_from_pdf(doc.file_bytes)
            return _SourceText(extracted.content, extracted.title or doc.title)
        # Markdown, and PDFs re-ingested from their stored text
        return _SourceText(doc.content or "", doc.title)

    def _analyze(self, content: str) -> SourceAnalysis:
        if self._analyzer is None:
            return SourceAnalysis(summary="", topics=[], processed_content=content)
        return self._analyzer.analyze(content)

    def _build_records(
        self, doc: DocumentInfo, title: str, chunks: list[Chunk], vectors: list[list[float]]
    ) -> list[VectorRecord]:
        records = []
        for chunk, vector in zip(chunks, vectors):
            metadata = {
                "document_id": doc.id,
                "collection_id": doc.collection_id,
                "namespace": doc.namespace,
                "content": chunk.content,
                "chunk_index": chunk.index,
                "section": chunk.metadata.section or "",
                "title": title,
                "start_char": chunk.metadata.start_char,
                "end_char": chunk.metadata.end_char,
            }
            page = PAGE_SECTION.match(chunk.metadata.section or "")
            if page:
                metadata["page"] = int(page.group(1))
            records.append(
                VectorRecord(id=vector_id(doc.id, chunk.index), vector=vector, metadata=metadata)
            )
        return records

    def _upsert_all(self, records: list[VectorRecord]) -> None:
        """Upsert in batches; on failure remove what was written and re-raise."""
        batch_size = self._config.upsert_batch_size
        written: list[str] = []
        try:
            for i in range(0, len(records), batch_size):
                batch = records[i:i + batch_size]
                self._vector_index.upsert(batch)
                written.extend(r.id for r in batch)
        except Exception:
            if written:
                logger.warning("Upsert failed, removing %d vectors already written", len(written))
                self._remove_written(written)
            raise

    def _remove_written(self, ids: list[str]) -> None:
        """Best-effort rollback of this run's vectors; the original error wins."""
        try:
            self._delete_ids(ids)
        except Exception as cleanup_error:
            logger.error("Removing vectors of a failed run also failed: %s", cleanup_error)

    def _delete_ids(self, ids: list[str]) -> None:
        batch_size = self._config.delete_batch_size
        for i in range(0, len(ids), batch_size):
            self._vector_index.delete_by_ids(ids[i:i + batch_size])

    def process_document(self, doc: DocumentInfo) -> ProcessDocumentResult:
        """Chunk, embed and index one document.

        Never raises: any failure is reported as an unsuccessful result, and
        no vectors of this run are left behind.
        """
        if self._vector_index is None:
            logger.warning("Vector index not configured, cannot ingest %s", doc.id)
            return ProcessDocumentResult.failure("Vector index not configured")

        try:
            # Step 1: Get content (stored texts share the chunker's line endings
            # so chunk offsets index them directly)
            source = self._source_text(doc)
            content = normalize_line_endings(source.content)
            if not content.strip():
                return ProcessDocumentResult.failure("No content to process")

            # Step 2: Clean up, summarize and tag
            analysis = self._analyze(content)
            processed_content = normalize_line_endings(analysis.processed_content or content)

            # Step 3: Chunk
            chunks = chunk_markdown(processed_content, self._config.chunking)
            if not chunks:
                return ProcessDocumentResult.failure("No chunks generated")

            # Step 4: Embed
            embeddings = self._embedding_provider.embed_batched(
                [c.content for c in chunks], batch_size=self._config.embed_batch_size
            )

            # Step 5: Store vectors
            records = self._build_records(
                doc, source.title, chunks, [e.vector for e in embeddings]
            )
            self._upsert_all(records)

            # Step 6: Persist texts, summary and topics
            try:
                self._document_store.update_document(
                    doc.id,
                    title=source.title,
                    content=content,
                    processed_content=processed_content,
                    summary=analysis.summary,
                    topics=analysis.topics,
                )
            except Exception:
                logger.warning("Persisting %s failed, removing its %d vectors", doc.id, len(records))
                self._remove_written([r.id for r in records])
                raise
        except Exception as e:
            logger.error("Error processing document %s: %s", doc.id, e)
            return ProcessDocumentResult.failure(str(e) or type(e).__name__)

        token_count = sum(e.token_count for e in embeddings)
        logger.info("Processed %s: %d chunks, ~%d tokens", doc.id, len(chunks), token_count)
        return ProcessDocumentResult(
            success=True,
            chunk_count=len(chunks),
            token_count=token_count,
            summary=analysis.summary,
            topics=analysis.topics,
        )

    def delete_document_vectors(self, document_id: str, chunk_count: int) -> bool:
        """Delete a document's vectors by rebuilding their ids."""
        if self._vector_index is None:
            logger.warning("Vector index not configured, skipping vector deletion")
            return True

        ids = [vector_id(document_id, i) for i in range(chunk_count)]
        try:
            self._delete_ids(ids)
        except Exception as e:
            logger.error("Error deleting vectors for %s: %s", document_id, e)
            return False
        logger.info("Deleted %d vectors for %s", len(ids), document_id)
        return True

    def ingest_document(self, doc: DocumentInfo) -> ProcessDocumentResult:
        """Process a document and record its status in the document store.

        Vectors from a previous ingestion of the same document are removed
        first, so a document can be re-ingested any number of times. If they
        cannot be removed the ingestion fails and the stored chunk count is
        kept, so a later attempt can still find them.
        """
        record = self._document_store.get_document(doc.id)
        if record is None:
            self._document_store.save_document(
                DocumentRecord(
                    id=doc.id,
                    collection_id=doc.collection_id,
                    title=doc.title,
                    source_type=doc.source_type,
                    source_url=doc.source_url,
                    content=doc.content,
                )
            )
        elif record.chunk_count > 0:
            if not self.delete_document_vectors(doc.id, record.chunk_count):
                error = "Failed to remove vectors from the previous ingestion"
                logger.error("%s of %s", error, doc.id)
                self._document_store.update_document(
                    doc.id, status=DocumentStatus.FAILED, error=error
                )
                return ProcessDocumentResult.failure(error)

        self._document_store.update_document(
            doc.id, status=DocumentStatus.PROCESSING, error=None
        )

        result = self.process_document(doc)

        if result.success:
            self._document_store.update_document(
                doc.id,
                chunk_count=result.chunk_count,
                token_count=result.token_count,
                status=DocumentStatus.COMPLETED,
                error=None,
            )
        else:
            self._document_store.update_document(
                doc.id,
                chunk_count=0,
                token_count=0,
                status=DocumentStatus.FAILED,
                error=result.error,
            )
        return result

    def reprocess_document(self, document_id: str) -> ProcessDocumentResult:
        """Re-ingest a stored document (URL documents are fetched again)."""
        record = self._document_store.get_document(document_id)
        if record is None:
            raise InputValidationError(f"Document not found: {document_id}")

        collection = self._document_store.get_collection(record.collection_id)
        namespace = collection.namespace if collection else record.collection_id

        doc = DocumentInfo(
            id=record.id,
            collection_id=record.collection_id,
            namespace=namespace,
            title=record.title,
            source_type=record.source_type,
            content=record.content,
            source_url=record.source_url,
        )
        logger.info("Reprocessing %s (%s)", record.id, record.source_type.value)
        return self.ingest_document(doc)
