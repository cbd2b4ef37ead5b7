"""Enumeration types for indexqa data models."""

from enum import Enum


class SourceType(str, Enum):
    MARKDOWN = "markdown"
    URL = "url"
    PDF = "pdf"


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class AnswerSource(str, Enum):
    ARCHIVE = "archive"
    WEB = "web"
