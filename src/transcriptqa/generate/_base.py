"""Base mixin for completion providers."""

from __future__ import annotations

from typing import Any

from transcriptqa.core.exceptions import ProviderError
from transcriptqa.core.logging_config import get_logger
from transcriptqa.core.retry_config import RetryConfig, create_retry_decorator

logger = get_logger(__name__)


class CompletionMixin:
    """Mixin providing common functionality for completion providers.

    Subclasses must set:
    - _provider_name: str
    - _retryable_exceptions: tuple[type[Exception], ...]
    """

    _provider_name: str = "completion"
    _retryable_exceptions: tuple[type[Exception], ...] = (
        ConnectionError,
        TimeoutError,
    )

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str,
        retry_config: RetryConfig | None = None,
    ) -> None:
        """Initialize the completion provider.

        Args:
            api_key: Provider API key. If None, the SDK reads its environment variable.
            model: LLM model to use.
            retry_config: Retry configuration. Uses default if not provided.
        """
        self._model = model
        self._retry_config = retry_config or RetryConfig()
        self._logger = logger.bind(provider=self._provider_name, model=model)
        self._api_key = api_key

    @property
    def model(self) -> str:
        return self._model

    @model.setter
    def model(self, value: str) -> None:
        self._model = value
        self._logger = self._logger.bind(model=value)

    def _get_retry_decorator(self) -> Any:
        return create_retry_decorator(
            config=self._retry_config,
            exception_types=self._retryable_exceptions,
        )

    def _wrap_error(self, e: Exception, operation: str) -> ProviderError:
        """Wrap an SDK error in a ProviderError carrying retryability."""
        return ProviderError(
            message=f"{self._provider_name} {operation} failed: {e}",
            provider=self._provider_name,
            retryable=isinstance(e, self._retryable_exceptions),
        )
