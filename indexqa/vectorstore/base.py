"""Vector index interface used by retrieval and ingestion."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class VectorRecord:
    """One vector to upsert, keyed by a deterministic id."""

    id: str
    vector: list[float]
    metadata: dict = field(default_factory=dict)


@dataclass
class VectorMatch:
    """One nearest-neighbour hit. Higher score means more similar."""

    id: str
    score: float
    metadata: dict = field(default_factory=dict)


class VectorIndex(ABC):
    """A nearest-neighbour store partitioned by namespace.

    Upserts and deletes are idempotent by id; query results are ordered by
    descending score.
    """

    @abstractmethod
    def upsert(self, records: list[VectorRecord]) -> int:
        """Insert or replace records. Returns the number written."""
        ...

    @abstractmethod
    def query(self, vector: list[float], top_k: int, namespace: str) -> list[VectorMatch]:
        """Return up to top_k matches restricted to one namespace."""
        ...

    @abstractmethod
    def delete_by_ids(self, ids: list[str]) -> None:
        """Delete records by id. Unknown ids are ignored."""
        ...
