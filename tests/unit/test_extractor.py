"""Unit tests for URL, HTML and PDF text extraction."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from indexqa.exceptions import UpstreamError
from indexqa.ingestion.extractor import (
    ContentExtractor,
    extract_from_html,
    extract_from_pdf,
    extract_from_url,
)

SAMPLE_HTML = """<html>
<head><title>Site | Article</title><style>body {}</style></head>
<body>
<nav><a href="/">Home</a> <a href="/about">About</a></nav>
<article>
<h1>Rate Decision Explained</h1>
<p>The committee held   rates steady.</p>
<h2>Outlook</h2>
<p>Inflation is expected to ease.</p>
<ul><li>Point one</li><li>Point two</li></ul>
<script>track();</script>
</article>
<footer>Copyright 2024</footer>
</body>
</html>"""


class TestExtractFromHtml:

    def test_main_content_as_markdown(self):
        result = extract_from_html(SAMPLE_HTML)

        assert result.title == "Rate Decision Explained"
        assert "# Rate Decision Explained" in result.content
        assert "## Outlook" in result.content
        assert "The committee held rates steady." in result.content
        assert "- Point one" in result.content
        assert "- Point two" in result.content

    def test_boilerplate_removed(self):
        result = extract_from_html(SAMPLE_HTML)
        assert "Home" not in result.content
        assert "Copyright" not in result.content
        assert "track()" not in result.content

    def test_paragraphs_separated_by_blank_lines(self):
        result = extract_from_html(SAMPLE_HTML)
        assert "\n\n\n" not in result.content
        assert "steady.\n\n## Outlook" in result.content

    def test_falls_back_to_title_tag(self):
        result = extract_from_html("<html><head><title>Only Title</title></head><body><p>Text</p></body></html>")
        assert result.title == "Only Title"
        assert result.content == "Text"


class TestExtractFromUrl:

    @patch("indexqa.ingestion.extractor.requests.get")
    def test_html_is_extracted(self, mock_get):
        mock_get.return_value = MagicMock(
            ok=True, text=SAMPLE_HTML, headers={"content-type": "text/html; charset=utf-8"}
        )
        result = extract_from_url("https://example.com/post", timeout=7)

        assert result.title == "Rate Decision Explained"
        assert mock_get.call_args.kwargs["timeout"] == 7
        assert "User-Agent" in mock_get.call_args.kwargs["headers"]

    @patch("indexqa.ingestion.extractor.requests.get")
    def test_non_html_returned_as_is(self, mock_get):
        mock_get.return_value = MagicMock(
            ok=True, text="# Raw markdown\n\nBody", headers={"content-type": "text/markdown"}
        )
        result = extract_from_url("https://example.com/readme.md")
        assert result.content == "# Raw markdown\n\nBody"
        assert result.title == ""

    @patch("indexqa.ingestion.extractor.requests.get")
    def test_http_error(self, mock_get):
        mock_get.return_value = MagicMock(ok=False, status_code=404, headers={})
        with pytest.raises(UpstreamError, match="404"):
            extract_from_url("https://example.com/missing")

    @patch("indexqa.ingestion.extractor.requests.get")
    def test_network_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("dns")
        with pytest.raises(UpstreamError):
            extract_from_url("https://example.com")

    @patch("indexqa.ingestion.extractor.requests.get")
    def test_content_extractor_uses_configured_timeout(self, mock_get):
        mock_get.return_value = MagicMock(ok=True, text="plain", headers={"content-type": "text/plain"})
        ContentExtractor(timeout=3).extract_from_url("https://example.com")
        assert mock_get.call_args.kwargs["timeout"] == 3


def _page(text):
    page = MagicMock()
    page.extract_text.return_value = text
    return page


class TestExtractFromPdf:

    @patch("indexqa.ingestion.extractor.PdfReader")
    def test_pages_become_sections(self, mock_reader):
        mock_reader.return_value.pages = [
            _page("Annual Report 2024\nFirst page body."),
            _page("   "),
            _page("Third page body."),
        ]

        result = extract_from_pdf(b"%PDF-fake")

        assert result.title == "Annual Report 2024"
        assert result.page_count == 3
        assert result.content == (
            "## Page 1\n\nAnnual Report 2024\nFirst page body."
            "\n\n---\n\n"
            "## Page 3\n\nThird page body."
        )

    @patch("indexqa.ingestion.extractor.PdfReader")
    def test_long_first_line_is_not_a_title(self, mock_reader):
        mock_reader.return_value.pages = [_page("x" * 250)]
        assert extract_from_pdf(b"%PDF").title == ""

    @patch("indexqa.ingestion.extractor.PdfReader")
    def test_no_text(self, mock_reader):
        mock_reader.return_value.pages = [_page(None)]
        result = extract_from_pdf(b"%PDF")
        assert result.content == ""
        assert result.title == ""

    def test_invalid_pdf(self):
        with pytest.raises(UpstreamError):
            extract_from_pdf(b"definitely not a pdf")
