"""Service facade: the operations the pipeline exposes to callers.

``build_service`` wires every collaborator from application settings; tests
and embedding applications can construct ``QAService`` directly.
"""

import logging
from dataclasses import dataclass

from config.settings import Settings
from indexqa.agent.graph import build_answer_graph, build_context_graph
from indexqa.agent.nodes import NO_RESULTS_MESSAGE
from indexqa.embedding.provider import EmbeddingProvider
from indexqa.exceptions import InputValidationError
from indexqa.generation.generator import AnswerGenerator, AnswerStream, GenerationConfig
from indexqa.generation.llm import get_text_generator
from indexqa.ingestion.analyzer import SourceAnalyzer
from indexqa.ingestion.chunker import ChunkingOptions
from indexqa.ingestion.extractor import ContentExtractor
from indexqa.ingestion.processor import DocumentProcessor, IngestionConfig
from indexqa.models.document import Collection, DocumentInfo, ProcessDocumentResult
from indexqa.models.enums import AnswerSource
from indexqa.models.query import Answer
from indexqa.retrieval.context_expander import DEFAULT_EXPAND_CHARS
from indexqa.retrieval.retriever import RetrievalConfig, Retriever
from indexqa.retrieval.web_search import NoWebSearch, TavilyWebSearch, WebSearchProvider
from indexqa.storage.document_store import DocumentStore, SQLiteDocumentStore
from indexqa.vectorstore.base import VectorIndex

logger = logging.getLogger(__name__)


@dataclass
class _QuestionContext:
    collection: Collection
    document_titles: dict[str, str]


class QAService:
    """Ingestion and question answering over document collections."""

    def __init__(
        self,
        retriever: Retriever,
        generator: AnswerGenerator,
        processor: DocumentProcessor,
        document_store: DocumentStore,
        web_search: WebSearchProvider | None = None,
        expand_context: bool = False,
        expand_chars: int = DEFAULT_EXPAND_CHARS,
    ):
        self._retriever = retriever
        self._generator = generator
        self._processor = processor
        self._document_store = document_store
        web_search = web_search or NoWebSearch()

        self._answer_graph = build_answer_graph(
            retriever, generator, web_search, document_store,
            expand_context=expand_context, expand_chars=expand_chars,
        )
        self._context_graph = build_context_graph(
            retriever, web_search, document_store,
            expand_context=expand_context, expand_chars=expand_chars,
        )

    @property
    def document_store(self) -> DocumentStore:
        return self._document_store

    # -- ingestion ---------------------------------------------------------

    def create_collection(self, collection_id: str, title: str, namespace: str = "") -> Collection:
        collection = Collection(id=collection_id, title=title, namespace=namespace)
        self._document_store.save_collection(collection)
        return collection

    def ingest_document(self, doc: DocumentInfo) -> ProcessDocumentResult:
        if self._document_store.get_collection(doc.collection_id) is None:
            raise InputValidationError(f"Collection not found: {doc.collection_id}")
        return self._processor.ingest_document(doc)

    def delete_document_vectors(self, document_id: str, chunk_count: int) -> bool:
        return self._processor.delete_document_vectors(document_id, chunk_count)

    def reprocess_document(self, document_id: str) -> ProcessDocumentResult:
        return self._processor.reprocess_document(document_id)

    # -- answering ---------------------------------------------------------

    def _question_context(self, collection_id: str, question: str) -> _QuestionContext:
        if not question or not question.strip():
            raise InputValidationError("question must not be empty")
        collection = self._document_store.get_collection(collection_id)
        if collection is None:
            raise InputValidationError(f"Collection not found: {collection_id}")
        return _QuestionContext(
            collection=collection,
            document_titles=self._document_store.get_document_titles(collection_id),
        )

    def _initial_state(
        self, question: str, ctx: _QuestionContext, document_ids: list[str] | None
    ) -> dict:
        return {
            "question": question,
            "namespace": ctx.collection.namespace,
            "document_ids": list(document_ids) if document_ids else None,
            "document_titles": ctx.document_titles,
            "archive_chunks": [],
            "has_relevant_results": False,
            "context_chunks": [],
            "source": AnswerSource.ARCHIVE.value,
            "answer": None,
            "citations": [],
        }

    def answer_question(
        self,
        collection_id: str,
        question: str,
        document_ids: list[str] | None = None,
    ) -> Answer:
        """Answer a question from the collection, or from the web as a fallback."""
        ctx = self._question_context(collection_id, question)
        result = self._answer_graph.invoke(self._initial_state(question, ctx, document_ids))

        return Answer(
            answer=result.get("answer") or NO_RESULTS_MESSAGE,
            source=result.get("source") or AnswerSource.ARCHIVE.value,
            citations=result.get("citations") or [],
        )

    def stream_answer(
        self,
        collection_id: str,
        question: str,
        document_ids: list[str] | None = None,
    ) -> tuple[AnswerSource, AnswerStream]:
        """Make the same retrieval decisions as answer_question, then stream.

        Returns the answer source and a closeable stream of text fragments.
        """
        ctx = self._question_context(collection_id, question)
        state = self._context_graph.invoke(self._initial_state(question, ctx, document_ids))
        source = AnswerSource(state.get("source") or AnswerSource.ARCHIVE.value)

        chunks = state.get("context_chunks") or []
        if not chunks:
            return source, AnswerStream(iter([NO_RESULTS_MESSAGE]), [], {})

        stream = self._generator.stream_answer(
            question, chunks, state.get("document_titles") or {}, source=source
        )
        return source, stream


def build_service(
    settings: Settings,
    embedding_provider: EmbeddingProvider | None = None,
    vector_index: VectorIndex | None = None,
    document_store: DocumentStore | None = None,
) -> QAService:
    """Construct a QAService from settings.

    Collaborators passed in explicitly take precedence over the ones the
    settings describe.
    """
    if embedding_provider is None:
        from indexqa.embedding.sentence_transformer import SentenceTransformerEmbeddingProvider

        embedding_provider = SentenceTransformerEmbeddingProvider(
            settings.indexqa_embedding_model,
            query_prefix=settings.indexqa_embedding_query_prefix,
        )

    if vector_index is None:
        from indexqa.vectorstore.chroma_store import ChromaVectorIndex

        vector_index = ChromaVectorIndex(
            path=str(settings.chroma_path),
            collection_name=settings.indexqa_chroma_collection,
        )

    if document_store is None:
        document_store = SQLiteDocumentStore(str(settings.db_path))

    text_generator = get_text_generator(settings)

    if settings.indexqa_web_search_enabled and settings.tavily_api_key:
        web_search = TavilyWebSearch(
            settings.tavily_api_key,
            max_results=settings.indexqa_web_search_max_results,
            timeout=settings.indexqa_request_timeout,
        )
    else:
        web_search = NoWebSearch()

    retriever = Retriever(
        embedding_provider,
        vector_index,
        RetrievalConfig(
            top_k=settings.indexqa_top_k,
            threshold=settings.indexqa_relevance_threshold,
        ),
    )
    generator = AnswerGenerator(
        text_generator,
        GenerationConfig(
            max_tokens=settings.indexqa_llm_max_tokens,
            temperature=settings.indexqa_llm_temperature,
        ),
    )
    processor = DocumentProcessor(
        embedding_provider,
        vector_index,
        document_store,
        extractor=ContentExtractor(timeout=settings.indexqa_request_timeout),
        analyzer=SourceAnalyzer(text_generator) if settings.indexqa_analysis_enabled else None,
        config=IngestionConfig(
            chunking=ChunkingOptions(
                max_chunk_size=settings.indexqa_chunk_size,
                chunk_overlap=settings.indexqa_chunk_overlap,
                min_chunk_size=settings.indexqa_min_chunk_size,
            ),
            embed_batch_size=settings.indexqa_embed_batch_size,
        ),
    )

    logger.info(
        "Service ready: provider=%s, web_search=%s, expand_context=%s",
        settings.indexqa_llm_provider,
        type(web_search).__name__,
        settings.indexqa_expand_context,
    )
    return QAService(
        retriever,
        generator,
        processor,
        document_store,
        web_search=web_search,
        expand_context=settings.indexqa_expand_context,
        expand_chars=settings.indexqa_expand_chars,
    )
