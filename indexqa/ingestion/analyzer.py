"""LLM-based source analysis: cleaned content, summary and topic tags."""

import json
import logging
import re
from dataclasses import dataclass, field

from pydantic import BaseModel, Field, ValidationError

from indexqa.exceptions import UpstreamError
from indexqa.generation.llm import GenerationRequest, TextGenerator

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 50_000
TRUNCATION_MARKER = "\n\n[Content truncated...]"
MAX_TOPICS = 6

ANALYSIS_PROMPT = """You are a document analyzer. Analyze the document below and provide:

1. summary: 2-4 sentences on what the document is about, its key points and who would benefit from reading it.
2. topics: 3-6 key topic tags of 2-5 words each.
3. processedContent: the document content cleaned up for reading:
   - REMOVE comments and discussion sections, share/like/follow widgets, advertisements,
     newsletter prompts, cookie notices, navigation menus, "related articles" blocks,
     author bios and footer boilerplate.
   - KEEP the main body intact: headings (with their hierarchy), code, data, lists,
     tables, quotes and references.
   - FIX extra whitespace, broken lines and malformed markdown.
   - DO NOT summarize or shorten the main content.

Write the summary and topics in the same language as the document.

Respond with ONLY a JSON object (no markdown, no explanation):
{"summary": "string", "topics": ["tag1", "tag2"], "processedContent": "string"}"""


class _AnalysisResponse(BaseModel):
    summary: str = ""
    topics: list[str] = Field(default_factory=list)
    processed_content: str = Field(default="", alias="processedContent")


@dataclass
class SourceAnalysis:
    summary: str
    topics: list[str] = field(default_factory=list)
    processed_content: str = ""


def _fallback(content: str) -> SourceAnalysis:
    return SourceAnalysis(summary="", topics=[], processed_content=content)


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*", "", text)
        text = re.sub(r"\s*```$", "", text)
    return text


class SourceAnalyzer:
    """Asks the text generator to clean up, summarize and tag a document.

    Analysis is best-effort: any failure yields the raw content with an empty
    summary and no topics.
    """

    def __init__(
        self,
        text_generator: TextGenerator,
        max_tokens: int = 16384,
        temperature: float = 0.3,
    ):
        self._text_generator = text_generator
        self._max_tokens = max_tokens
        self._temperature = temperature

    def analyze(self, content: str) -> SourceAnalysis:
        if len(content) > MAX_CONTENT_CHARS:
            document = content[:MAX_CONTENT_CHARS] + TRUNCATION_MARKER
        else:
            document = content

        request = GenerationRequest(
            system_prompt=ANALYSIS_PROMPT,
            user_message=f"DOCUMENT:\n{document}",
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )

        try:
            raw = self._text_generator.complete(request)
        except UpstreamError as e:
            logger.warning("Source analysis failed, using raw content: %s", e)
            return _fallback(content)

        try:
            parsed = _AnalysisResponse.model_validate(json.loads(_strip_code_fences(raw)))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Could not parse source analysis response: %s", e)
            return _fallback(content)

        return SourceAnalysis(
            summary=parsed.summary,
            topics=parsed.topics[:MAX_TOPICS],
            processed_content=parsed.processed_content or content,
        )
