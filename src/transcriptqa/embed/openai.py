"""OpenAI embedding provider implementation."""

from __future__ import annotations

from typing import Any

from openai import APITimeoutError, AsyncOpenAI, RateLimitError  # type: ignore

from transcriptqa.core.exceptions import ProviderError
from transcriptqa.core.logging_config import get_logger
from transcriptqa.core.retry_config import RetryConfig, create_retry_decorator

logger = get_logger(__name__)


class OpenAIEmbeddingProvider:
    """Embedding provider using OpenAI's embedding models.

    Satisfies the EmbeddingProvider Protocol. One call embeds a whole batch.
    """

    _provider_name: str = "openai_embedding"
    _retryable_exceptions: tuple[type[Exception], ...] = (
        RateLimitError,
        APITimeoutError,
        ConnectionError,
    )

    def __init__(
        self,
        *,
        api_key: str | None = None,
        client: AsyncOpenAI | None = None,
        model: str = "text-embedding-ada-002",
        retry_config: RetryConfig | None = None,
    ) -> None:
        """Initialize the OpenAI embedding provider.

        Args:
            api_key: OpenAI API key. If None, the SDK reads OPENAI_API_KEY.
            client: AsyncOpenAI client instance. Overrides ``api_key`` when given.
            model: The embedding model to use.
            retry_config: Retry configuration. Uses default if not provided.
        """
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model
        self._logger = logger.bind(provider=self._provider_name, model=model)
        self._retry_config = retry_config or RetryConfig()

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a list of texts.

        Raises:
            ProviderError: If the API call fails after retries.
        """
        operation_logger = self._logger.bind(texts_count=len(texts), operation="embed")
        operation_logger.debug("embedding_started")

        retry_decorator = create_retry_decorator(
            config=self._retry_config,
            exception_types=self._retryable_exceptions,
        )

        @retry_decorator
        async def _embed_with_retry() -> Any:
            return await self.client.embeddings.create(model=self.model, input=texts)

        try:
            response = await _embed_with_retry()
        except Exception as e:
            operation_logger.error("embedding_failed", error=str(e), error_type=type(e).__name__)
            raise ProviderError(
                f"{self._provider_name} embed failed: {e}",
                provider=self._provider_name,
                retryable=isinstance(e, self._retryable_exceptions),
            ) from e

        embeddings = [item.embedding for item in response.data]
        operation_logger.info(
            "embedding_completed",
            embeddings_count=len(embeddings),
            dimensions=len(embeddings[0]) if embeddings else 0,
        )
        return embeddings
