"""Web search fallback providers.

Used when the archive has no sufficiently relevant chunk for a question.
Results are converted to retrieval-shaped chunks so the generator can treat
both sources the same way.
"""

import logging
from abc import ABC, abstractmethod

import requests
from pydantic import BaseModel, ValidationError

from indexqa.exceptions import UpstreamError
from indexqa.models.chunk import RetrievedChunk
from indexqa.models.query import WebSearchResult

logger = logging.getLogger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"

# Web results bypass threshold filtering downstream
WEB_RESULT_SCORE = 1.0


class WebSearchProvider(ABC):
    """Interface for an external search engine."""

    @abstractmethod
    def search(self, query: str) -> list[WebSearchResult]:
        """Search the web for the query.

        Raises:
            UpstreamError: On network failure or a malformed response.
        """
        ...


class NoWebSearch(WebSearchProvider):
    """Provider used when no search backend is configured."""

    def search(self, query: str) -> list[WebSearchResult]:
        logger.info("Web search not configured, no fallback results")
        return []


class _TavilyResult(BaseModel):
    title: str = ""
    url: str
    content: str = ""


class _TavilyResponse(BaseModel):
    results: list[_TavilyResult] = []


class TavilyWebSearch(WebSearchProvider):
    """Tavily search API client."""

    def __init__(self, api_key: str, max_results: int = 5, timeout: float = 30.0):
        if not api_key:
            raise ValueError("api_key must not be empty")
        self._api_key = api_key
        self._max_results = max_results
        self._timeout = timeout

    def search(self, query: str) -> list[WebSearchResult]:
        try:
            resp = requests.post(
                TAVILY_SEARCH_URL,
                json={
                    "api_key": self._api_key,
                    "query": query,
                    "max_results": self._max_results,
                },
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise UpstreamError("Web search request failed", str(e)) from e

        if not resp.ok:
            raise UpstreamError(f"Web search error (HTTP {resp.status_code})", resp.text)

        try:
            payload = _TavilyResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise UpstreamError("Malformed web search response", str(e)) from e

        logger.info("Web search returned %d results", len(payload.results))
        return [
            WebSearchResult(title=r.title, content=r.content, url=r.url)
            for r in payload.results
        ]


def web_results_to_chunks(results: list[WebSearchResult]) -> list[RetrievedChunk]:
    """Convert web results into chunks with synthetic ``web-{idx}`` ids."""
    return [
        RetrievedChunk(
            id=f"web-{idx}",
            document_id=f"web-{idx}",
            content=f"{result.title}\n\n{result.content}\n\nSource: {result.url}",
            score=WEB_RESULT_SCORE,
        )
        for idx, result in enumerate(results)
    ]


def web_result_titles(results: list[WebSearchResult]) -> dict[str, str]:
    """Title lookup keyed by the synthetic document ids of web chunks."""
    return {f"web-{idx}": result.title for idx, result in enumerate(results)}
