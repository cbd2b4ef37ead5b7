"""Prompt construction for grounded answer generation.

Context blocks are labelled ``[Document N: title]`` where N is the chunk's
1-based position in the list handed to the generator. The model is told to
cite as ``[N]`` and citation extraction maps N back to the same position.
"""

from indexqa.models.chunk import RetrievedChunk
from indexqa.models.enums import AnswerSource

CONTEXT_SEPARATOR = "\n\n---\n\n"
UNKNOWN_TITLE = "Unknown Document"

ARCHIVE_SYSTEM_PROMPT = """You are a research assistant for a curated document archive.
Answer the user's question using ONLY the documents provided below.

CITATION FORMAT (mandatory):
- Cite sources with the document number in square brackets: [1], [2], [3].
- This is the only accepted format. Never write "[Document 1]", "[Doc 1]" or "Document 1".
- Place citations at the end of the sentence they support: "This is a fact [1]."
- Every factual claim must carry at least one citation.

Rules:
1. Use only information found in the documents. Do not add outside knowledge.
2. If the documents do not contain enough information to answer, say so clearly and state what is missing.
3. Answer in the same language as the user's question.
4. Start with a brief summary, then give the details. Use blank lines between paragraphs and around lists.
5. Number list items sequentially (1. 2. 3.).

DOCUMENTS:
{context}"""

WEB_SYSTEM_PROMPT = """You are a research assistant.
The user's question could not be answered from the curated archive, so web search results are provided instead.

IMPORTANT: Begin your answer by telling the user that this information comes from a web search, not from the curated archive, and may be less reliable.

Rules:
1. Base the answer on the web search results below.
2. Cite results with their number in square brackets: [1], [2].
3. If the results do not answer the question, say so clearly.
4. Answer in the same language as the user's question.

WEB SEARCH RESULTS:
{context}"""


def build_context(chunks: list[RetrievedChunk], document_titles: dict[str, str]) -> str:
    """Render chunks as numbered context blocks, in the order supplied.

    Expanded chunks contribute their widened text.
    """
    parts = []
    for idx, chunk in enumerate(chunks, 1):
        title = document_titles.get(chunk.document_id) or UNKNOWN_TITLE
        page_info = f" (Page {chunk.metadata.page})" if chunk.metadata.page else ""
        content = getattr(chunk, "expanded_content", "") or chunk.content
        parts.append(f"[Document {idx}: {title}{page_info}]\n{content}")
    return CONTEXT_SEPARATOR.join(parts)


def build_system_prompt(source: AnswerSource | str, context: str) -> str:
    """Instruction template for archive-grounded or web-fallback answers."""
    if AnswerSource(source) == AnswerSource.ARCHIVE:
        return ARCHIVE_SYSTEM_PROMPT.format(context=context)
    return WEB_SYSTEM_PROMPT.format(context=context)
