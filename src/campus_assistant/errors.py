"""Exception taxonomy for the campus assistant."""

from __future__ import annotations


class CampusAssistantError(Exception):
    """Base exception for assistant errors."""


class ExtractionError(CampusAssistantError):
    """Raised when a source document cannot be decoded at all."""


class UnsupportedFileType(CampusAssistantError):
    """Raised when an upload declares a file type with no parser."""

    def __init__(self, file_type: str, supported: list[str]) -> None:
        self.file_type = file_type
        self.supported = supported
        super().__init__(
            f"Unsupported file type: {file_type!r}. Supported: {', '.join(supported)}"
        )


class EmptyOrLowContentDocument(CampusAssistantError):
    """Raised when extracted text is too thin to be stored."""

    def __init__(self, display_name: str, word_count: int, min_tokens: int) -> None:
        self.display_name = display_name
        self.word_count = word_count
        self.min_tokens = min_tokens
        super().__init__(
            f"{display_name} has {word_count} words (minimum {min_tokens})"
        )

    @property
    def is_empty(self) -> bool:
        return self.word_count == 0


class DocumentNotFound(CampusAssistantError):
    """Raised when neither an id nor an alias resolves."""

    def __init__(self, key: str, known_names: list[str]) -> None:
        self.key = key
        self.known_names = known_names
        super().__init__(f"Document not found: {key}")


class QuotaExceeded(CampusAssistantError):
    """Raised when the model provider signals quota or rate-limit exhaustion."""

    def __init__(self, message: str, retry_after_seconds: float | None = None) -> None:
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message)


class UpstreamError(CampusAssistantError):
    """Raised for any other model call failure."""


class UnknownToolError(CampusAssistantError):
    """Raised when the model names a tool outside the closed tool set."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class InvalidToolArguments(CampusAssistantError):
    """Raised when tool arguments fail schema validation."""

    def __init__(self, name: str, detail: str) -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"Invalid arguments for {name}: {detail}")
