"""Raw text extraction from URLs, HTML pages and PDF files.

HTML is reduced to its main content and rendered as light markdown
(headings and list items) so the chunker can split on sections.
"""

import io
import logging
import re
from dataclasses import dataclass

import requests
from bs4 import BeautifulSoup
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from indexqa.exceptions import UpstreamError

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; indexqa/0.1)"
ACCEPT = "text/html,application/xhtml+xml,text/plain,text/markdown"
PAGE_SEPARATOR = "\n\n---\n\n"
# First PDF line is taken as the title only when shorter than this
MAX_TITLE_LENGTH = 200

_BOILERPLATE_TAGS = ["script", "style", "noscript", "nav", "footer", "header", "aside", "form"]
_HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]


@dataclass
class ExtractedContent:
    title: str
    content: str
    page_count: int | None = None


def extract_from_html(html: str) -> ExtractedContent:
    """Extract the main content of an HTML page as markdown-like text."""
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""

    root = soup.find("article") or soup.find("main") or soup.body or soup
    for tag in root.find_all(_BOILERPLATE_TAGS):
        tag.decompose()

    # Prefer the article's own heading over the <title> (which usually
    # carries the site name as well)
    h1 = root.find("h1")
    if h1 and h1.get_text(strip=True):
        title = h1.get_text(strip=True)

    for heading in root.find_all(_HEADING_TAGS):
        level = int(heading.name[1])
        heading.replace_with(f"\n\n{'#' * level} {heading.get_text(' ', strip=True)}\n\n")

    for item in root.find_all("li"):
        item.replace_with(f"\n- {item.get_text(' ', strip=True)}\n")

    for block in root.find_all(["p", "div", "section", "blockquote", "pre", "table"]):
        block.insert_before("\n\n")
        block.insert_after("\n\n")

    for br in root.find_all("br"):
        br.replace_with("\n")

    text = root.get_text(separator="", strip=False)
    return ExtractedContent(title=title, content=_normalize_whitespace(text))


def _normalize_whitespace(text: str) -> str:
    """Collapse space runs and blank-line runs, keeping paragraph breaks."""
    text = text.replace("\r\n", "\n")
    text = re.sub(r"[ \t\xa0]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def extract_from_url(url: str, timeout: float = 30.0) -> ExtractedContent:
    """Fetch a URL and extract its text.

    Non-HTML responses (plain text, markdown) are returned as-is.
    """
    try:
        resp = requests.get(
            url,
            headers={"User-Agent": USER_AGENT, "Accept": ACCEPT},
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise UpstreamError(f"Failed to fetch {url}", str(e)) from e

    if not resp.ok:
        raise UpstreamError(f"Failed to fetch URL: {resp.status_code}", url)

    content_type = resp.headers.get("content-type", "")
    if "text/html" not in content_type:
        logger.info("Non-HTML content (%s) from %s, using raw text", content_type, url)
        return ExtractedContent(title="", content=resp.text)

    return extract_from_html(resp.text)


def extract_from_pdf(data: bytes) -> ExtractedContent:
    """Extract text from a PDF, one ``## Page N`` section per non-empty page."""
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PdfReadError, ValueError, KeyError, TypeError) as e:
        raise UpstreamError("Failed to read PDF", str(e)) from e

    sections = [
        f"## Page {number}\n\n{text.strip()}"
        for number, text in enumerate(pages, 1)
        if text.strip()
    ]

    first_lines = [line.strip() for line in (pages[0] if pages else "").split("\n") if line.strip()]
    title = first_lines[0] if first_lines and len(first_lines[0]) < MAX_TITLE_LENGTH else ""

    logger.info("Extracted %d of %d PDF pages with text", len(sections), len(pages))
    return ExtractedContent(
        title=title,
        content=PAGE_SEPARATOR.join(sections),
        page_count=len(pages),
    )


class ContentExtractor:
    """Extraction entry points used by the ingestion orchestrator."""

    def __init__(self, timeout: float = 30.0):
        self._timeout = timeout

    def extract_from_url(self, url: str) -> ExtractedContent:
        return extract_from_url(url, timeout=self._timeout)

    def extract_from_pdf(self, data: bytes) -> ExtractedContent:
        return extract_from_pdf(data)
