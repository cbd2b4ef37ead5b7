"""Sentence Transformer embedding provider implementation."""

import logging

from sentence_transformers import SentenceTransformer

from indexqa.embedding.provider import EmbeddingProvider

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "all-MiniLM-L6-v2"


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    """Embedding provider wrapping sentence-transformers models.

    Default model: all-MiniLM-L6-v2 (384 dimensions, ~80MB). Models that
    expect an instruction prefix on queries (BGE family) can pass it as
    ``query_prefix``.
    """

    def __init__(self, model_name: str = DEFAULT_EMBEDDING_MODEL, query_prefix: str = ""):
        logger.info("Loading embedding model: %s", model_name)
        try:
            self._model = SentenceTransformer(model_name, local_files_only=True)
        except OSError:
            self._model = SentenceTransformer(model_name)
        self._model_name = model_name
        self._query_prefix = query_prefix
        self._dimension = self._model.get_sentence_embedding_dimension()

    @property
    def model_name(self) -> str:
        return self._model_name

    def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            raise ValueError("texts must not be empty")
        embeddings = self._model.encode(
            texts, show_progress_bar=False, normalize_embeddings=True
        )
        return embeddings.tolist()

    def embed_query(self, text: str) -> list[float]:
        return self.embed([f"{self._query_prefix}{text}"])[0]

    @property
    def dimension(self) -> int:
        return self._dimension
