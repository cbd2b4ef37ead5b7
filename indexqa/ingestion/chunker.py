"""Paragraph-first text chunker with markdown heading sections.

Chunks are slices of the line-ending normalized input, so every chunk
carries exact ``start_char``/``end_char`` offsets that the context expander
can later use to widen a match back to its surrounding paragraphs.
"""

import math
import re
from dataclasses import dataclass

from indexqa.models.chunk import Chunk, ChunkMetadata

HEADING_PATTERN = re.compile(r"^(#{1,6})[ \t]+(.+)$", re.MULTILINE)
CLOSING_HASHES = re.compile(r"[ \t]+#+[ \t]*$")
PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+\s*")

Span = tuple[int, int]


@dataclass(frozen=True)
class ChunkingOptions:
    """Size limits in characters."""

    max_chunk_size: int = 2000
    chunk_overlap: int = 300
    min_chunk_size: int = 150

    def __post_init__(self):
        for name in ("max_chunk_size", "chunk_overlap", "min_chunk_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.chunk_overlap >= self.max_chunk_size:
            raise ValueError("chunk_overlap must be smaller than max_chunk_size")


DEFAULT_OPTIONS = ChunkingOptions()


def estimate_tokens(text: str) -> int:
    """Rough token count estimate (~4 chars per token for English).

    This is a fixed approximation used for bookkeeping only, not a tokenizer.
    """
    return math.ceil(len(text) / 4)


def normalize_line_endings(text: str) -> str:
    """The text chunk offsets refer to: ``\\r\\n`` and lone ``\\r`` become ``\\n``."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _strip_span(text: str, start: int, end: int) -> Span:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    return start, end


def _trimmed_length(text: str, start: int, end: int) -> int:
    # Sentence units keep their trailing whitespace; emitted chunks do not
    s, e = _strip_span(text, start, end)
    return e - s


def _paragraph_spans(text: str, start: int, end: int) -> list[Span]:
    spans = []
    pos = start
    for match in PARAGRAPH_BREAK.finditer(text, start, end):
        spans.append(_strip_span(text, pos, match.start()))
        pos = match.end()
    spans.append(_strip_span(text, pos, end))
    return [(s, e) for s, e in spans if e > s]


def _sentence_spans(text: str, start: int, end: int) -> list[Span]:
    """Split a paragraph on sentence terminators.

    Text the pattern does not match (leading punctuation, a trailing clause
    without a terminator) is folded into the neighbouring sentence so the
    spans always tile the paragraph.
    """
    spans = []
    pos = start
    for match in SENTENCE_PATTERN.finditer(text, start, end):
        spans.append((pos, match.end()))
        pos = match.end()
    if pos < end:
        spans.append((pos, end))
    return spans


def _overlap_start(text: str, start: int, end: int, overlap: int) -> int:
    """Start offset of the overlap tail carried into the next chunk.

    Takes the last ``overlap`` characters and, when the first space falls in
    the first half of that window, skips past it so the next chunk does not
    open mid-word.
    """
    if end - start <= overlap:
        return start
    tail_start = end - overlap
    word_break = text.find(" ", tail_start, end)
    if word_break != -1 and 0 < word_break - tail_start < overlap / 2:
        return word_break + 1
    return tail_start


def _split_spans(text: str, start: int, end: int, options: ChunkingOptions) -> list[Span]:
    start, end = _strip_span(text, start, end)
    if start == end:
        return []
    if end - start <= options.max_chunk_size:
        return [(start, end)]

    units: list[Span] = []
    for p_start, p_end in _paragraph_spans(text, start, end):
        if p_end - p_start > options.max_chunk_size:
            units.extend(_sentence_spans(text, p_start, p_end))
        else:
            units.append((p_start, p_end))

    spans: list[Span] = []
    buf_start: int | None = None
    buf_end = 0
    # True once the buffer holds text beyond the previous chunk's overlap tail
    fresh = False

    for u_start, u_end in units:
        if (
            fresh
            and u_end - buf_start > options.max_chunk_size
            and _trimmed_length(text, buf_start, buf_end) >= options.min_chunk_size
        ):
            spans.append(_strip_span(text, buf_start, buf_end))
            buf_start = _overlap_start(text, buf_start, buf_end, options.chunk_overlap)
            fresh = False
        if buf_start is None:
            buf_start = u_start
        buf_end = u_end
        fresh = True

    if fresh:
        tail = _strip_span(text, buf_start, buf_end)
        if spans and tail[1] - tail[0] < options.min_chunk_size:
            # Too short to stand alone: extend the previous chunk instead of dropping it
            spans[-1] = (spans[-1][0], tail[1])
        else:
            spans.append(tail)

    return spans


def chunk_text(text: str, options: ChunkingOptions | None = None) -> list[Chunk]:
    """Split text into overlapping chunks on paragraph, then sentence, boundaries.

    Returns an empty list for empty or whitespace-only input. Offsets refer to
    the input after ``\\r\\n`` normalization.
    """
    options = options or DEFAULT_OPTIONS
    normalized = normalize_line_endings(text)
    spans = _split_spans(normalized, 0, len(normalized), options)
    return [
        Chunk(
            content=normalized[s:e],
            index=idx,
            metadata=ChunkMetadata(start_char=s, end_char=e),
        )
        for idx, (s, e) in enumerate(spans)
    ]


def _split_sections(text: str) -> list[tuple[str | None, int, int]]:
    """Split normalized markdown into (heading, body_start, body_end) sections.

    The heading line itself is not part of the body. Content before the first
    heading forms an untagged section.
    """
    sections = []
    heading = None
    pos = 0
    for match in HEADING_PATTERN.finditer(text):
        sections.append((heading, pos, match.start()))
        heading = CLOSING_HASHES.sub("", match.group(2)).strip()
        pos = match.end()
    sections.append((heading, pos, len(text)))
    return sections


def chunk_markdown(markdown: str, options: ChunkingOptions | None = None) -> list[Chunk]:
    """Chunk markdown section by section, tagging chunks with their heading.

    Chunk indices run sequentially across the whole document and offsets are
    absolute positions in the normalized markdown.
    """
    options = options or DEFAULT_OPTIONS
    normalized = normalize_line_endings(markdown)
    chunks: list[Chunk] = []

    for heading, body_start, body_end in _split_sections(normalized):
        for s, e in _split_spans(normalized, body_start, body_end, options):
            chunks.append(
                Chunk(
                    content=normalized[s:e],
                    index=len(chunks),
                    metadata=ChunkMetadata(start_char=s, end_char=e, section=heading),
                )
            )

    return chunks
