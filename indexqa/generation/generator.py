"""Grounded answer generation with citation extraction."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from indexqa.exceptions import InputValidationError
from indexqa.generation.llm import GenerationRequest, TextGenerator
from indexqa.generation.prompt_builder import (
    UNKNOWN_TITLE,
    build_context,
    build_system_prompt,
)
from indexqa.models.chunk import RetrievedChunk
from indexqa.models.citation import Citation, GenerationResult
from indexqa.models.enums import AnswerSource
from indexqa.utils.citation_normalizer import clean_answer_format, extract_citation_numbers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationConfig:
    max_tokens: int = 2048
    temperature: float = 0.7
    excerpt_chars: int = 200

    def __post_init__(self):
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be between 0.0 and 2.0, got {self.temperature}")
        if self.excerpt_chars <= 0:
            raise ValueError("excerpt_chars must be > 0")


def _excerpt(content: str, limit: int) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + "..."


def extract_citations(
    answer: str,
    chunks: list[RetrievedChunk],
    document_titles: dict[str, str],
    excerpt_chars: int = 200,
) -> list[Citation]:
    """Map ``[N]`` markers in a normalized answer back to the supplied chunks.

    Citations come out in first-appearance order, once per number. Numbers
    outside ``1..len(chunks)`` are ignored.
    """
    citations = []
    for number in extract_citation_numbers(answer):
        if not 1 <= number <= len(chunks):
            logger.debug("Ignoring out-of-range citation [%d]", number)
            continue
        chunk = chunks[number - 1]
        citations.append(
            Citation(
                source_index=number,
                document_id=chunk.document_id,
                document_title=document_titles.get(chunk.document_id) or UNKNOWN_TITLE,
                chunk_content=_excerpt(chunk.content, excerpt_chars),
                page=chunk.metadata.page,
            )
        )
    return citations


class AnswerStream:
    """Iterator over answer fragments as the model produces them.

    ``answer`` and ``citations`` become available once the stream is
    exhausted; they are computed from the accumulated text a single time.
    """

    def __init__(
        self,
        fragments: Iterator[str],
        chunks: list[RetrievedChunk],
        document_titles: dict[str, str],
        excerpt_chars: int = 200,
    ):
        self._fragments = fragments
        self._chunks = chunks
        self._document_titles = document_titles
        self._excerpt_chars = excerpt_chars
        self._parts: list[str] = []
        self._result: GenerationResult | None = None
        self._closed = False

    def __iter__(self):
        return self

    def __next__(self) -> str:
        if self._closed:
            raise StopIteration
        try:
            fragment = next(self._fragments)
        except StopIteration:
            self._finish()
            raise
        self._parts.append(fragment)
        return fragment

    def _finish(self) -> None:
        self._closed = True
        if self._result is None:
            answer = clean_answer_format("".join(self._parts))
            self._result = GenerationResult(
                answer=answer,
                citations=extract_citations(
                    answer, self._chunks, self._document_titles, self._excerpt_chars
                ),
            )

    def close(self) -> None:
        """Stop consuming the upstream stream and release it."""
        if self._closed:
            return
        self._closed = True
        close = getattr(self._fragments, "close", None)
        if close is not None:
            close()
        logger.debug("Answer stream closed after %d fragments", len(self._parts))

    @property
    def finished(self) -> bool:
        return self._result is not None

    @property
    def answer(self) -> str:
        if self._result is None:
            raise RuntimeError("Answer is available only after the stream is exhausted")
        return self._result.answer

    @property
    def citations(self) -> list[Citation]:
        if self._result is None:
            raise RuntimeError("Citations are available only after the stream is exhausted")
        return self._result.citations

    @property
    def raw_text(self) -> str:
        """Text received so far, before cleanup."""
        return "".join(self._parts)


class AnswerGenerator:
    """Builds prompts, calls the text generator and post-processes answers."""

    def __init__(self, text_generator: TextGenerator, config: GenerationConfig | None = None):
        self._text_generator = text_generator
        self._config = config or GenerationConfig()

    def _request(
        self,
        question: str,
        chunks: list[RetrievedChunk],
        document_titles: dict[str, str],
        source: AnswerSource | str,
    ) -> GenerationRequest:
        if not question or not question.strip():
            raise InputValidationError("question must not be empty")

        context = build_context(chunks, document_titles)
        return GenerationRequest(
            system_prompt=build_system_prompt(source, context),
            user_message=question,
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
        )

    def generate_answer(
        self,
        question: str,
        chunks: list[RetrievedChunk],
        document_titles: dict[str, str],
        source: AnswerSource | str = AnswerSource.ARCHIVE,
    ) -> GenerationResult:
        """Generate a cleaned, cited answer from the supplied chunks."""
        request = self._request(question, chunks, document_titles, source)
        logger.info("Generating %s answer from %d chunks", AnswerSource(source).value, len(chunks))

        raw = self._text_generator.complete(request)
        answer = clean_answer_format(raw)
        citations = extract_citations(
            answer, chunks, document_titles, self._config.excerpt_chars
        )
        logger.info("Answer has %d citations", len(citations))
        return GenerationResult(answer=answer, citations=citations)

    def stream_answer(
        self,
        question: str,
        chunks: list[RetrievedChunk],
        document_titles: dict[str, str],
        source: AnswerSource | str = AnswerSource.ARCHIVE,
    ) -> AnswerStream:
        """Like generate_answer, but yields fragments as they arrive."""
        request = self._request(question, chunks, document_titles, source)
        logger.info("Streaming %s answer from %d chunks", AnswerSource(source).value, len(chunks))
        return AnswerStream(
            iter(self._text_generator.stream(request)),
            chunks,
            document_titles,
            self._config.excerpt_chars,
        )
