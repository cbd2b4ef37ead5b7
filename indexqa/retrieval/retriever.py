"""Archive retrieval with relevance gating."""

import logging
from dataclasses import dataclass

from indexqa.embedding.provider import EmbeddingProvider
from indexqa.exceptions import InputValidationError
from indexqa.models.chunk import RetrievedChunk, RetrievedChunkMetadata
from indexqa.models.query import RetrievalResult
from indexqa.vectorstore.base import VectorIndex, VectorMatch

logger = logging.getLogger(__name__)

# Over-fetch factor when results are filtered to a document subset afterwards
DOCUMENT_FILTER_FETCH_FACTOR = 3
# Chunks scoring under threshold * FLOOR_RATIO are dropped from the result
FLOOR_RATIO = 0.5


@dataclass(frozen=True)
class RetrievalConfig:
    top_k: int = 15
    threshold: float = 0.3

    def __post_init__(self):
        if self.top_k <= 0:
            raise ValueError("top_k must be > 0")
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"threshold must be between 0.0 and 1.0, got {self.threshold}")


def _optional_int(value) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def match_to_chunk(match: VectorMatch) -> RetrievedChunk:
    """Build a RetrievedChunk from the metadata stored at ingestion time."""
    metadata = match.metadata
    return RetrievedChunk(
        id=match.id,
        document_id=metadata.get("document_id", ""),
        content=metadata.get("content", ""),
        score=match.score,
        metadata=RetrievedChunkMetadata(
            page=_optional_int(metadata.get("page")),
            section=metadata.get("section") or None,
            start_char=_optional_int(metadata.get("start_char")),
            end_char=_optional_int(metadata.get("end_char")),
        ),
    )


class Retriever:
    """Embeds a question and finds the closest chunks in one namespace."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_index: VectorIndex | None,
        config: RetrievalConfig | None = None,
    ):
        self._embedding_provider = embedding_provider
        self._vector_index = vector_index
        self._config = config or RetrievalConfig()

    @property
    def config(self) -> RetrievalConfig:
        return self._config

    def retrieve_chunks(
        self,
        query: str,
        namespace: str,
        top_k: int | None = None,
        threshold: float | None = None,
        document_ids: set[str] | list[str] | None = None,
    ) -> RetrievalResult:
        """Find chunks relevant to a query.

        ``has_relevant_results`` is true when the best chunk reaches the
        threshold. The returned chunks also include near misses down to half
        the threshold so a weak top hit still has supporting context.

        Embedding and index failures propagate; an unconfigured index yields
        an empty result.
        """
        if not query or not query.strip():
            raise InputValidationError("query must not be empty")

        top_k = top_k if top_k is not None else self._config.top_k
        threshold = threshold if threshold is not None else self._config.threshold

        if self._vector_index is None:
            logger.warning("Vector index not configured, returning empty results")
            return RetrievalResult(chunks=[], has_relevant_results=False)

        embedding = self._embedding_provider.embed_query(query)

        fetch_k = top_k * DOCUMENT_FILTER_FETCH_FACTOR if document_ids else top_k
        matches = self._vector_index.query(embedding, top_k=fetch_k, namespace=namespace)
        logger.info(
            "Vector query for namespace %s returned %d results", namespace, len(matches)
        )

        chunks = [match_to_chunk(m) for m in matches]

        # Document filtering happens here rather than in the index, which may
        # not have a metadata index on document_id
        if document_ids:
            wanted = set(document_ids)
            chunks = [c for c in chunks if c.document_id in wanted]
            logger.info("Filtered to %d chunks from selected documents", len(chunks))

        has_relevant_results = bool(chunks) and chunks[0].score >= threshold
        floor = threshold * FLOOR_RATIO

        return RetrievalResult(
            chunks=[c for c in chunks if c.score >= floor],
            has_relevant_results=has_relevant_results,
        )
