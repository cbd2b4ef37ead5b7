"""Unit tests for the Tavily web search client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from indexqa.exceptions import UpstreamError
from indexqa.retrieval.web_search import NoWebSearch, TAVILY_SEARCH_URL, TavilyWebSearch


class TestTavilyWebSearch:

    @patch("indexqa.retrieval.web_search.requests.post")
    def test_results_parsed(self, mock_post):
        mock_resp = MagicMock(ok=True)
        mock_resp.json.return_value = {
            "query": "fed rates",
            "results": [
                {"title": "Fed holds", "url": "https://a.example", "content": "Rates unchanged.", "score": 0.9},
                {"url": "https://b.example"},
            ],
        }
        mock_post.return_value = mock_resp

        results = TavilyWebSearch("key", max_results=3, timeout=5).search("fed rates")

        assert len(results) == 2
        assert results[0].title == "Fed holds"
        assert results[0].content == "Rates unchanged."
        assert results[1].title == ""
        assert mock_post.call_args.args[0] == TAVILY_SEARCH_URL
        assert mock_post.call_args.kwargs["json"]["max_results"] == 3
        assert mock_post.call_args.kwargs["timeout"] == 5

    @patch("indexqa.retrieval.web_search.requests.post")
    def test_http_error(self, mock_post):
        mock_post.return_value = MagicMock(ok=False, status_code=401, text="bad key")
        with pytest.raises(UpstreamError) as exc_info:
            TavilyWebSearch("key").search("q")
        assert exc_info.value.detail == "bad key"

    @patch("indexqa.retrieval.web_search.requests.post")
    def test_malformed_payload(self, mock_post):
        mock_resp = MagicMock(ok=True)
        mock_resp.json.return_value = {"results": [{"title": "no url"}]}
        mock_post.return_value = mock_resp
        with pytest.raises(UpstreamError):
            TavilyWebSearch("key").search("q")

    @patch("indexqa.retrieval.web_search.requests.post")
    def test_timeout(self, mock_post):
        mock_post.side_effect = requests.Timeout("slow")
        with pytest.raises(UpstreamError):
            TavilyWebSearch("key").search("q")

    def test_requires_key(self):
        with pytest.raises(ValueError):
            TavilyWebSearch("")


class TestNoWebSearch:

    def test_always_empty(self):
        assert NoWebSearch().search("anything") == []
