"""Exception hierarchy for the answer and ingestion pipeline."""


class IndexQAError(Exception):
    """Base class for all indexqa errors."""


class InputValidationError(IndexQAError):
    """Rejected input (empty question, unknown collection, empty document).

    Raised before any network call is made.
    """


class ConfigurationError(IndexQAError):
    """A required collaborator is not configured (e.g. missing API key)."""


class UpstreamError(IndexQAError):
    """An external API returned a failure or a malformed response."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message if not detail else f"{message}: {detail}")
        self.detail = detail
