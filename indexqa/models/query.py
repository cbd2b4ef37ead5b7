"""Retrieval and answer data models."""

from dataclasses import dataclass, field

from indexqa.models.chunk import RetrievedChunk
from indexqa.models.citation import Citation
from indexqa.models.enums import AnswerSource


@dataclass
class RetrievalResult:
    """Chunks found for a query and whether the archive is trusted for it."""

    chunks: list[RetrievedChunk] = field(default_factory=list)
    has_relevant_results: bool = False


@dataclass
class WebSearchResult:
    title: str
    content: str
    url: str


@dataclass
class Answer:
    """The final response returned to the caller of answer_question."""

    answer: str
    source: AnswerSource
    citations: list[Citation] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.source, AnswerSource):
            self.source = AnswerSource(self.source)
