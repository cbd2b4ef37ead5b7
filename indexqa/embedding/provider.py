"""Abstract embedding provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from indexqa.exceptions import UpstreamError
from indexqa.ingestion.chunker import estimate_tokens


@dataclass
class EmbeddingResult:
    """One embedded text: its vector and an approximate token count."""

    vector: list[float]
    token_count: int


class EmbeddingProvider(ABC):
    """Interface for text embedding generation.

    Implementations wrap specific embedding models (e.g., sentence-transformers).
    Swap models by changing the provider implementation in configuration.
    """

    @abstractmethod
    def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a batch of text strings.

        Args:
            texts: List of text strings to embed.

        Returns:
            List of embedding vectors, one per input text and in input order.

        Raises:
            ValueError: If texts is empty.
        """
        ...

    def embed_query(self, text: str) -> list[float]:
        """Embed a single search query.

        Some models (e.g., BGE) require a special instruction prefix for
        queries but not for documents. Override this method to add
        model-specific query preprocessing. Default delegates to embed().
        """
        return self.embed([text])[0]

    def embed_batched(self, texts: list[str], batch_size: int = 100) -> list[EmbeddingResult]:
        """Embed any number of texts in sub-batches, preserving input order.

        Raises:
            UpstreamError: If the model returns a different number of vectors
                than texts it was given.
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")

        results: list[EmbeddingResult] = []
        for i in range(0, len(texts), batch_size):
            batch = texts[i:i + batch_size]
            vectors = self.embed(batch)
            if len(vectors) != len(batch):
                raise UpstreamError(
                    "Embedding count mismatch",
                    f"expected {len(batch)} vectors, got {len(vectors)}",
                )
            results.extend(
                EmbeddingResult(vector=list(vec), token_count=estimate_tokens(text))
                for text, vec in zip(batch, vectors)
            )
        return results

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the embedding dimension (e.g., 384)."""
        ...
