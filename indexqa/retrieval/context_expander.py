"""Widen retrieved chunks to surrounding paragraphs of their source document."""

import logging
from dataclasses import asdict

from indexqa.models.chunk import ExpandedChunk, RetrievedChunk, RetrievedChunkMetadata
from indexqa.storage.document_store import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_EXPAND_CHARS = 500


def _unexpanded(chunk: RetrievedChunk) -> ExpandedChunk:
    return _expanded(chunk, chunk.content, False)


def _expanded(chunk: RetrievedChunk, content: str, has_expansion: bool) -> ExpandedChunk:
    fields = asdict(chunk)
    fields.pop("expanded_content", None)
    fields.pop("has_expansion", None)
    fields["metadata"] = RetrievedChunkMetadata(**fields["metadata"])
    return ExpandedChunk(**fields, expanded_content=content, has_expansion=has_expansion)


def expand_chunk(
    chunk: RetrievedChunk,
    document_text: str | None,
    expand_chars: int = DEFAULT_EXPAND_CHARS,
    ensure_paragraph: bool = True,
) -> ExpandedChunk:
    """Expand one chunk by ``expand_chars`` on each side.

    With ``ensure_paragraph`` the window snaps outward to the nearest blank
    line on either side, searching no further than ``2 * expand_chars``.
    Chunks without offsets, or without document text, come back unchanged.
    """
    start_char = chunk.metadata.start_char
    end_char = chunk.metadata.end_char
    if start_char is None or end_char is None or not document_text:
        return _unexpanded(chunk)

    start = max(0, start_char - expand_chars)
    end = min(len(document_text), end_char + expand_chars)

    if ensure_paragraph:
        paragraph_start = document_text.rfind("\n\n", 0, start)
        if paragraph_start != -1 and start - paragraph_start < expand_chars * 2:
            start = paragraph_start + 2

        paragraph_end = document_text.find("\n\n", end)
        if paragraph_end != -1 and paragraph_end - end < expand_chars * 2:
            end = paragraph_end

    expanded = document_text[start:end].strip()
    return _expanded(chunk, expanded, len(expanded) > len(chunk.content))


def expand_all_chunks(
    chunks: list[RetrievedChunk],
    document_store: DocumentStore,
    expand_chars: int = DEFAULT_EXPAND_CHARS,
    ensure_paragraph: bool = True,
) -> list[ExpandedChunk]:
    """Expand a batch of chunks with one text lookup per distinct document."""
    if not chunks:
        return []

    document_ids = list(dict.fromkeys(c.document_id for c in chunks if c.document_id))
    if not document_ids:
        return [_unexpanded(c) for c in chunks]

    texts = document_store.get_document_texts(document_ids)
    logger.debug("Loaded text for %d of %d documents", len(texts), len(document_ids))

    return [
        expand_chunk(
            chunk,
            texts.get(chunk.document_id),
            expand_chars=expand_chars,
            ensure_paragraph=ensure_paragraph,
        )
        for chunk in chunks
    ]
