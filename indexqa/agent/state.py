"""Answer workflow state for the LangGraph graph."""

from typing import TypedDict

from indexqa.models.chunk import RetrievedChunk
from indexqa.models.citation import Citation


class AnswerState(TypedDict):
    """State object passed through the answer workflow."""
    question: str
    namespace: str
    document_ids: list[str] | None
    document_titles: dict[str, str]
    archive_chunks: list[RetrievedChunk]
    has_relevant_results: bool
    context_chunks: list[RetrievedChunk]
    source: str  # "archive" | "web"
    answer: str | None
    citations: list[Citation]
