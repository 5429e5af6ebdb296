"""OpenAI completion provider."""

from __future__ import annotations

from typing import Any

from openai import APITimeoutError, AsyncOpenAI, RateLimitError  # type: ignore

from transcriptqa.core.models import CompletionParams
from transcriptqa.generate._base import CompletionMixin


class OpenAICompletionProvider(CompletionMixin):
    """OpenAI chat-completion provider."""

    _provider_name: str = "openai_completion"
    _retryable_exceptions: tuple[type[Exception], ...] = (
        RateLimitError,
        APITimeoutError,
        ConnectionError,
    )

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        client: AsyncOpenAI | None = None,
        retry_config: Any | None = None,
    ) -> None:
        super().__init__(api_key=api_key, model=model, retry_config=retry_config)
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def complete(self, prompt: str, params: CompletionParams) -> str:
        """Send ``prompt`` as a single user message and return the reply text."""
        operation_logger = self._logger.bind(
            prompt_length=len(prompt),
            temperature=params.temperature,
            operation="complete",
        )
        operation_logger.debug("completion_started")

        retry_decorator = self._get_retry_decorator()

        @retry_decorator
        async def _complete_with_retry() -> Any:
            return await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=params.max_tokens,
                temperature=params.temperature,
                top_p=params.top_p,
            )

        try:
            response = await _complete_with_retry()
        except Exception as e:
            operation_logger.error("completion_failed", error=str(e), error_type=type(e).__name__)
            raise self._wrap_error(e, "complete") from e

        text = response.choices[0].message.content or ""
        operation_logger.info("completion_completed", response_length=len(text))
        return text
