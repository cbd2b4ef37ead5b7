"""Citation and generation result data models."""

from dataclasses import dataclass, field


@dataclass
class Citation:
    """A reference from a numbered marker in the answer to a supplied chunk."""

    source_index: int
    document_id: str
    document_title: str
    chunk_content: str
    page: int | None = None

    def __post_init__(self):
        if self.source_index < 1:
            raise ValueError(f"source_index must be >= 1, got {self.source_index}")


@dataclass
class GenerationResult:
    """Cleaned answer text plus the citations it references."""

    answer: str
    citations: list[Citation] = field(default_factory=list)
