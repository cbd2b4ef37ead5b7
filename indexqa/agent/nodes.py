"""Answer workflow nodes.

Collaborators (retriever, web search, document store, generator) are bound
with functools.partial when the graph is built.
"""

import logging

from indexqa.agent.state import AnswerState
from indexqa.exceptions import UpstreamError
from indexqa.generation.generator import AnswerGenerator
from indexqa.models.enums import AnswerSource
from indexqa.retrieval.context_expander import DEFAULT_EXPAND_CHARS, expand_all_chunks
from indexqa.retrieval.retriever import Retriever
from indexqa.retrieval.web_search import (
    WebSearchProvider,
    web_result_titles,
    web_results_to_chunks,
)
from indexqa.storage.document_store import DocumentStore

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = (
    "I couldn't find relevant information. Please try rephrasing your question."
)


def retrieve_archive(state: AnswerState, retriever: Retriever) -> dict:
    """Search the collection's namespace and gate on the relevance threshold."""
    result = retriever.retrieve_chunks(
        state["question"],
        namespace=state["namespace"],
        document_ids=state.get("document_ids"),
    )
    logger.info(
        "Archive retrieval: %d chunks, relevant=%s",
        len(result.chunks), result.has_relevant_results,
    )

    update = {
        "archive_chunks": result.chunks,
        "has_relevant_results": result.has_relevant_results,
    }
    if result.has_relevant_results:
        update["context_chunks"] = result.chunks
        update["source"] = AnswerSource.ARCHIVE.value
    return update


def search_web(state: AnswerState, web_search: WebSearchProvider) -> dict:
    """Fall back to web search when the archive has nothing relevant.

    A failing web search counts as no results. With no web results the
    archive's weaker matches are used if there are any.
    """
    try:
        results = web_search.search(state["question"])
    except UpstreamError as e:
        logger.warning("Web search failed, continuing without it: %s", e)
        results = []

    if results:
        logger.info("Web search returned %d results", len(results))
        titles = dict(state.get("document_titles") or {})
        titles.update(web_result_titles(results))
        return {
            "context_chunks": web_results_to_chunks(results),
            "document_titles": titles,
            "source": AnswerSource.WEB.value,
        }

    archive_chunks = state.get("archive_chunks") or []
    if archive_chunks:
        logger.info("No web results, answering from %d weak archive matches", len(archive_chunks))
        return {"context_chunks": archive_chunks, "source": AnswerSource.ARCHIVE.value}

    return {"context_chunks": [], "source": AnswerSource.WEB.value}


def expand_context(
    state: AnswerState,
    document_store: DocumentStore,
    expand_chars: int = DEFAULT_EXPAND_CHARS,
) -> dict:
    """Widen archive chunks to their surrounding paragraphs."""
    chunks = state.get("context_chunks") or []
    expanded = expand_all_chunks(chunks, document_store, expand_chars=expand_chars)
    logger.debug(
        "Expanded %d of %d chunks", sum(1 for c in expanded if c.has_expansion), len(expanded)
    )
    return {"context_chunks": expanded}


def generate(state: AnswerState, generator: AnswerGenerator) -> dict:
    """Generate the cited answer from the selected context."""
    result = generator.generate_answer(
        state["question"],
        state["context_chunks"],
        state.get("document_titles") or {},
        source=state.get("source") or AnswerSource.ARCHIVE.value,
    )
    return {"answer": result.answer, "citations": result.citations}


def respond(state: AnswerState) -> dict:
    """Final node: the generated answer, or the no-results message."""
    if not state.get("context_chunks") or not state.get("answer"):
        return {"answer": NO_RESULTS_MESSAGE, "citations": []}
    return {}
