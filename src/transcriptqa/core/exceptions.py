"""Structured exception hierarchy for TranscriptQA.

Exception Hierarchy:
    TranscriptQAError (base)
    ├── InvalidInputError
    ├── ProviderError
    ├── ParseError
    └── ConfigurationError

Only ``InvalidInputError`` and ``ConfigurationError`` ever reach callers of the
public service. Provider failures are folded into ingestion outcomes or failed
search results, and parse failures degrade to default values.

Usage:
    from transcriptqa.core.exceptions import InvalidInputError

    try:
        result = await service.ingest_document(raw, "episode_510.json")
    except InvalidInputError as e:
        logger.warning("upload_rejected", reason=str(e))
"""

from __future__ import annotations


class TranscriptQAError(Exception):
    """Base exception class for all TranscriptQA errors.

    All exceptions raised by this package inherit from this class so that a
    single except block can catch every TranscriptQA-specific error.
    """

    pass


class InvalidInputError(TranscriptQAError):
    """Exception raised when a document is rejected before processing.

    Raised for empty uploads, unsupported file types and documents without
    any chunk. Nothing is partially applied when this error is raised.

    Args:
        message: Human-readable error message.
        filename: The name of the rejected file, if available.

    Attributes:
        filename: The rejected file name.

    Example:
        raise InvalidInputError(
            "Unsupported file type '.txt'",
            filename="notes.txt",
        )
    """

    def __init__(self, message: str, filename: str | None = None) -> None:
        """Initialize InvalidInputError with context."""
        super().__init__(message)
        self.filename = filename


class ProviderError(TranscriptQAError):
    """Exception raised when an external provider fails.

    Wraps errors from the embedding, completion and vector store providers and
    records whether the failure is transient.

    Args:
        message: Human-readable error message.
        provider: The name of the provider that failed (e.g. "openai_embedding").
        retryable: Whether the error is transient and can be retried.
            Defaults to False.

    Attributes:
        provider: The name of the failed provider.
        retryable: Whether the error can be retried.

    Example:
        raise ProviderError(
            "OpenAI API rate limit exceeded",
            provider="openai_embedding",
            retryable=True,
        )
    """

    def __init__(self, message: str, provider: str, retryable: bool = False) -> None:
        """Initialize ProviderError with context."""
        super().__init__(message)
        self.provider = provider
        self.retryable = retryable


class ParseError(TranscriptQAError):
    """Exception raised when model output cannot be parsed.

    Never escapes a component boundary: metadata extraction and question
    generation convert it into an empty default result.

    Args:
        message: Human-readable error message.
        raw_output: The (possibly truncated) text that failed to parse.
    """

    def __init__(self, message: str, raw_output: str | None = None) -> None:
        """Initialize ParseError with the offending output."""
        super().__init__(message)
        self.raw_output = raw_output


class ConfigurationError(TranscriptQAError):
    """Exception raised when configuration validation fails.

    Example:
        raise ConfigurationError(
            "Unknown vector store provider 'redis'. "
            "Set TRANSCRIPTQA_VECTOR_STORE_PROVIDER to 'memory' or 'chromadb'."
        )
    """

    def __init__(self, message: str) -> None:
        """Initialize ConfigurationError."""
        super().__init__(message)


__all__ = [
    "ConfigurationError",
    "InvalidInputError",
    "ParseError",
    "ProviderError",
    "TranscriptQAError",
]
