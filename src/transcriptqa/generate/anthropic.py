"""Anthropic Claude completion provider."""

from __future__ import annotations

from typing import Any

from transcriptqa.core.models import CompletionParams
from transcriptqa.generate._base import CompletionMixin


class AnthropicCompletionProvider(CompletionMixin):
    """Anthropic Claude completion provider."""

    _provider_name: str = "anthropic_completion"
    _retryable_exceptions: tuple[type[Exception], ...] = (
        ConnectionError,
        TimeoutError,
    )

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str = "claude-3-7-sonnet-20250219",
        retry_config: Any | None = None,
    ) -> None:
        super().__init__(api_key=api_key, model=model, retry_config=retry_config)
        from anthropic import AsyncAnthropic  # type: ignore[import]

        self.client = AsyncAnthropic(api_key=api_key)

    async def complete(self, prompt: str, params: CompletionParams) -> str:
        operation_logger = self._logger.bind(
            prompt_length=len(prompt),
            temperature=params.temperature,
            operation="complete",
        )
        operation_logger.debug("completion_started")

        retry_decorator = self._get_retry_decorator()

        # top_p is only sent when it narrows sampling
        extra: dict[str, Any] = {}
        if params.top_p < 1.0:
            extra["top_p"] = params.top_p

        @retry_decorator
        async def _complete_with_retry() -> Any:
            return await self.client.messages.create(
                model=self.model,
                max_tokens=params.max_tokens,
                temperature=params.temperature,
                messages=[{"role": "user", "content": prompt}],
                **extra,
            )

        try:
            response = await _complete_with_retry()
        except Exception as e:
            operation_logger.error("completion_failed", error=str(e), error_type=type(e).__name__)
            raise self._wrap_error(e, "complete") from e

        text = response.content[0].text if response.content else ""
        operation_logger.info("completion_completed", response_length=len(text))
        return text
