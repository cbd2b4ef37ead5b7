"""ChromaDB vector index for collection chunks."""

import logging

import chromadb
from chromadb.config import Settings as ChromaSettings

from indexqa.vectorstore.base import VectorIndex, VectorMatch, VectorRecord

logger = logging.getLogger(__name__)

COLLECTION_NAME = "indexqa_chunks"


class ChromaVectorIndex(VectorIndex):
    """ChromaDB-backed vector index.

    All collections share one Chroma collection with cosine distance; the
    ``namespace`` metadata field isolates them at query time.
    """

    def __init__(self, path: str = "./data/chroma", collection_name: str = COLLECTION_NAME):
        if path == ":memory:":
            self._client = chromadb.Client()
        else:
            self._client = chromadb.PersistentClient(
                path=path,
                settings=ChromaSettings(anonymized_telemetry=False),
            )
        self._collection = self._client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    def upsert(self, records: list[VectorRecord]) -> int:
        if not records:
            return 0

        self._collection.upsert(
            ids=[r.id for r in records],
            embeddings=[r.vector for r in records],
            documents=[str(r.metadata.get("content", "")) for r in records],
            # Chroma rejects None metadata values
            metadatas=[
                {k: v for k, v in r.metadata.items() if v is not None}
                for r in records
            ],
        )
        return len(records)

    def query(self, vector: list[float], top_k: int, namespace: str) -> list[VectorMatch]:
        total = self.count
        if total == 0:
            return []

        results = self._collection.query(
            query_embeddings=[vector],
            n_results=min(top_k, total),
            where={"namespace": namespace},
            include=["metadatas", "distances"],
        )

        output = []
        if results["ids"] and results["ids"][0]:
            for i in range(len(results["ids"][0])):
                # ChromaDB cosine distance = 1 - cosine similarity, range [0, 2];
                # report the similarity so thresholds read as cosine scores
                distance = results["distances"][0][i] if results["distances"] else 1.0
                output.append(VectorMatch(
                    id=results["ids"][0][i],
                    score=1.0 - distance,
                    metadata=dict(results["metadatas"][0][i] or {}) if results["metadatas"] else {},
                ))
        return output

    def delete_by_ids(self, ids: list[str]) -> None:
        if ids:
            self._collection.delete(ids=ids)

    @property
    def count(self) -> int:
        """Return the number of vectors in the collection."""
        return self._collection.count()
