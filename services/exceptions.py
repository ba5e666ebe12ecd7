"""Exceptions for the RAG core and the services composed on top of it."""

from typing import Optional


class RagCoreError(Exception):
    """Base exception for RAG core errors."""

    def __init__(self, message: str, stage: str, http_status: int = 500):
        self.message = message
        self.stage = stage
        self.http_status = http_status
        super().__init__(message)


class ValidationError(RagCoreError):
    """Malformed input rejected before any external call."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message, "validation", 400)


class ServiceError(RagCoreError):
    """A hosted model call failed.

    `category` lets the calling layer decide between retrying and surfacing
    the failure to the user.
    """

    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TOO_LONG = "too_long"
    GENERIC = "generic"

    HTTP_STATUS = {AUTH: 401, RATE_LIMIT: 429, TOO_LONG: 413, GENERIC: 502}

    def __init__(self, message: str, stage: str, category: str = GENERIC):
        if category not in self.HTTP_STATUS:
            raise ValueError(f"Unknown service error category: {category}")
        self.category = category
        super().__init__(message, stage, self.HTTP_STATUS[category])

    @property
    def retryable(self) -> bool:
        return self.category in (self.RATE_LIMIT, self.GENERIC)


class EmbeddingServiceError(ServiceError):
    """Error during embedding generation."""

    def __init__(self, message: str, category: str = ServiceError.GENERIC):
        super().__init__(message, "embedding", category)


class CompletionServiceError(ServiceError):
    """Error during chat completion."""

    def __init__(self, message: str, category: str = ServiceError.GENERIC):
        super().__init__(message, "completion", category)


class NoUsableContentError(RagCoreError):
    """Chunking produced no chunk that passed the quality filter."""

    def __init__(self, message: str = "No valid chunks could be generated from the document"):
        super().__init__(message, "ingestion", 400)


class InsufficientTextError(RagCoreError):
    """Too little text survived cleaning to produce a summary."""

    def __init__(self, message: str = "Could not extract sufficient text from PDF"):
        super().__init__(message, "summary", 400)
