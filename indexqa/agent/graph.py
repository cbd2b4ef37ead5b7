"""LangGraph workflow for answering a question over a collection."""

from functools import partial

from langgraph.graph import END, StateGraph

from indexqa.agent.nodes import (
    expand_context,
    generate,
    respond,
    retrieve_archive,
    search_web,
)
from indexqa.agent.state import AnswerState
from indexqa.generation.generator import AnswerGenerator
from indexqa.retrieval.context_expander import DEFAULT_EXPAND_CHARS
from indexqa.retrieval.retriever import Retriever
from indexqa.retrieval.web_search import WebSearchProvider
from indexqa.storage.document_store import DocumentStore


def _route_after_retrieve(state: AnswerState, expand: bool) -> str:
    """Relevant archive hits go to generation, everything else to the web."""
    if state.get("has_relevant_results"):
        return "expand_context" if expand else "generate"
    return "search_web"


def _route_after_web(state: AnswerState) -> str:
    if state.get("context_chunks"):
        return "generate"
    return "respond"


def _add_context_nodes(
    graph: StateGraph,
    retriever: Retriever,
    web_search: WebSearchProvider,
    document_store: DocumentStore | None,
    expand: bool,
    expand_chars: int,
    generate_target: str,
) -> None:
    graph.add_node("retrieve_archive", partial(retrieve_archive, retriever=retriever))
    graph.add_node("search_web", partial(search_web, web_search=web_search))
    if expand:
        graph.add_node(
            "expand_context",
            partial(expand_context, document_store=document_store, expand_chars=expand_chars),
        )
        graph.add_edge("expand_context", generate_target)

    graph.set_entry_point("retrieve_archive")

    after_retrieve = {"generate": generate_target, "search_web": "search_web"}
    if expand:
        after_retrieve["expand_context"] = "expand_context"
    graph.add_conditional_edges(
        "retrieve_archive",
        partial(_route_after_retrieve, expand=expand),
        after_retrieve,
    )
    graph.add_conditional_edges(
        "search_web",
        _route_after_web,
        {"generate": generate_target, "respond": "respond"},
    )


def build_answer_graph(
    retriever: Retriever,
    generator: AnswerGenerator,
    web_search: WebSearchProvider,
    document_store: DocumentStore | None = None,
    expand_context: bool = False,
    expand_chars: int = DEFAULT_EXPAND_CHARS,
):
    """Build the answer workflow.

    retrieve_archive → (relevant ? [expand_context →] generate : search_web)
    search_web → (chunks ? generate : respond); generate → respond.

    Returns:
        A compiled LangGraph StateGraph.
    """
    expand = expand_context and document_store is not None
    graph = StateGraph(AnswerState)

    _add_context_nodes(
        graph, retriever, web_search, document_store, expand, expand_chars, "generate"
    )
    graph.add_node("generate", partial(generate, generator=generator))
    graph.add_node("respond", respond)

    graph.add_edge("generate", "respond")
    graph.add_edge("respond", END)

    return graph.compile()


def build_context_graph(
    retriever: Retriever,
    web_search: WebSearchProvider,
    document_store: DocumentStore | None = None,
    expand_context: bool = False,
    expand_chars: int = DEFAULT_EXPAND_CHARS,
):
    """Same retrieval decisions as build_answer_graph, stopping before generation.

    Used for streaming, where the caller drives generation itself. The
    result state carries ``context_chunks``, ``document_titles`` and
    ``source``.
    """
    expand = expand_context and document_store is not None
    graph = StateGraph(AnswerState)

    _add_context_nodes(
        graph, retriever, web_search, document_store, expand, expand_chars, END
    )
    graph.add_node("respond", respond)
    graph.add_edge("respond", END)

    return graph.compile()
