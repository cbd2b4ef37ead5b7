"""Chunk data models: chunker output and retrieval results."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ChunkMetadata:
    """Position of a chunk inside the normalized document text."""

    start_char: int
    end_char: int
    section: str | None = None

    def __post_init__(self):
        if self.start_char < 0:
            raise ValueError("start_char must be >= 0")
        if self.end_char < self.start_char:
            raise ValueError(
                f"end_char ({self.end_char}) must be >= start_char ({self.start_char})"
            )


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of one document's text, sized for embedding."""

    content: str
    index: int
    metadata: ChunkMetadata

    def __post_init__(self):
        if self.index < 0:
            raise ValueError("index must be >= 0")


@dataclass
class RetrievedChunkMetadata:
    page: int | None = None
    section: str | None = None
    start_char: int | None = None
    end_char: int | None = None


@dataclass
class RetrievedChunk:
    """A stored chunk returned by the vector index for one query."""

    id: str
    document_id: str
    content: str
    score: float
    metadata: RetrievedChunkMetadata = field(default_factory=RetrievedChunkMetadata)


@dataclass
class ExpandedChunk(RetrievedChunk):
    """A retrieved chunk widened to surrounding paragraph boundaries."""

    expanded_content: str = ""
    has_expansion: bool = False
