"""Base mixin for vector store providers."""

from __future__ import annotations

from typing import Any

from transcriptqa.core.exceptions import ProviderError
from transcriptqa.core.logging_config import get_logger
from transcriptqa.core.retry_config import RetryConfig, create_retry_decorator

logger = get_logger(__name__)


class VectorStoreMixin:
    """Shared logging, retry and error wrapping for vector stores."""

    _provider_name: str = "vector_store"
    _retryable_exceptions: tuple[type[Exception], ...] = (
        ConnectionError,
        TimeoutError,
    )

    def __init__(self, *, retry_config: RetryConfig | None = None) -> None:
        self._retry_config = retry_config or RetryConfig()
        self._logger = logger.bind(provider=self._provider_name)

    def _get_retry_decorator(self) -> Any:
        return create_retry_decorator(
            config=self._retry_config,
            exception_types=self._retryable_exceptions,
        )

    def _wrap_error(self, e: Exception, operation: str) -> ProviderError:
        return ProviderError(
            message=f"{self._provider_name} {operation} failed: {e}",
            provider=self._provider_name,
            retryable=isinstance(e, self._retryable_exceptions),
        )
