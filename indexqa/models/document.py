"""Collection and document data models."""

from dataclasses import dataclass, field

from indexqa.models.enums import DocumentStatus, SourceType


@dataclass
class Collection:
    """A named group of documents sharing one vector-index namespace."""

    id: str
    title: str
    namespace: str = ""

    def __post_init__(self):
        if not self.id:
            raise ValueError("id must not be empty")
        if not self.namespace:
            self.namespace = self.id


@dataclass
class DocumentInfo:
    """Everything the ingestion orchestrator needs to process one document."""

    id: str
    collection_id: str
    namespace: str
    title: str
    source_type: SourceType
    content: str | None = None
    source_url: str | None = None
    file_bytes: bytes | None = None

    def __post_init__(self):
        if not isinstance(self.source_type, SourceType):
            self.source_type = SourceType(self.source_type)
        if not self.id:
            raise ValueError("id must not be empty")
        if not self.namespace:
            raise ValueError("namespace must not be empty")
        if self.source_type == SourceType.URL and not self.source_url:
            raise ValueError("source_url is required for url documents")


@dataclass
class DocumentRecord:
    """A persisted document row as held by the document store."""

    id: str
    collection_id: str
    title: str
    source_type: SourceType
    source_url: str | None = None
    content: str | None = None
    processed_content: str | None = None
    summary: str | None = None
    topics: list[str] = field(default_factory=list)
    chunk_count: int = 0
    token_count: int = 0
    status: DocumentStatus = DocumentStatus.PENDING
    error: str | None = None

    def __post_init__(self):
        if not isinstance(self.source_type, SourceType):
            self.source_type = SourceType(self.source_type)
        if not isinstance(self.status, DocumentStatus):
            self.status = DocumentStatus(self.status)

    @property
    def best_text(self) -> str:
        """Text the chunk offsets refer to: processed content when present."""
        return self.processed_content or self.content or ""


@dataclass
class ProcessDocumentResult:
    """Outcome of ingesting one document."""

    success: bool
    chunk_count: int = 0
    token_count: int = 0
    summary: str | None = None
    topics: list[str] | None = None
    error: str | None = None

    def __post_init__(self):
        if self.success and self.chunk_count < 1:
            raise ValueError("a successful result must have chunk_count >= 1")
        if not self.success and (self.chunk_count or self.token_count):
            raise ValueError("a failed result must report zero chunks and tokens")

    @classmethod
    def failure(cls, error: str) -> "ProcessDocumentResult":
        return cls(success=False, chunk_count=0, token_count=0, error=error)
