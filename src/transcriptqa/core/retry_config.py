"""Retry configuration for TranscriptQA providers.

Centralized exponential-backoff retry logic for every external provider call,
logged through structlog.
"""

from __future__ import annotations

from typing import Any

from tenacity import (
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity import (
    retry as tenacity_retry,
)

from transcriptqa.core.logging_config import get_logger

logger = get_logger(__name__)


class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_attempts: Maximum number of attempts, including the first call
        min_wait_seconds: Minimum wait time between retries
        max_wait_seconds: Maximum wait time between retries
        exponential_multiplier: Multiplier for exponential backoff
    """

    def __init__(
        self,
        max_attempts: int = 3,
        min_wait_seconds: float = 4.0,
        max_wait_seconds: float = 60.0,
        exponential_multiplier: float = 1.0,
    ):
        self.max_attempts = max_attempts
        self.min_wait_seconds = min_wait_seconds
        self.max_wait_seconds = max_wait_seconds
        self.exponential_multiplier = exponential_multiplier

    @classmethod
    def from_config(cls, config: Any) -> RetryConfig:
        """Build a RetryConfig from the ``retry_*`` settings of a config object."""
        return cls(
            max_attempts=config.retry_max_attempts,
            min_wait_seconds=config.retry_min_wait_seconds,
            max_wait_seconds=config.retry_max_wait_seconds,
            exponential_multiplier=config.retry_exponential_multiplier,
        )


def log_retry_attempt(retry_state: RetryCallState) -> None:
    """Log retry attempts with structured context."""
    fn_name = retry_state.fn.__name__ if retry_state.fn else "unknown"
    exception = retry_state.outcome.exception() if retry_state.outcome else None

    logger.warning(
        "retry_attempt",
        function=fn_name,
        attempt=retry_state.attempt_number,
        wait_seconds=retry_state.next_action.sleep if retry_state.next_action else 0,
        error=str(exception) if exception else None,
        error_type=type(exception).__name__ if exception else None,
    )


def create_retry_decorator(
    config: RetryConfig,
    exception_types: tuple[type[Exception], ...],
) -> Any:
    """Create a retry decorator with the specified configuration.

    Args:
        config: Retry configuration
        exception_types: Tuple of exception types to retry on

    Returns:
        Configured retry decorator that re-raises the last error
    """
    return tenacity_retry(
        stop=stop_after_attempt(config.max_attempts),
        wait=wait_exponential(
            multiplier=config.exponential_multiplier,
            min=config.min_wait_seconds,
            max=config.max_wait_seconds,
        ),
        retry=retry_if_exception_type(exception_types),
        before_sleep=log_retry_attempt,
        reraise=True,
    )


# No retries at all; used by tests and by callers that handle failure themselves
RETRY_CONFIG_NONE = RetryConfig(
    max_attempts=1,
    min_wait_seconds=0.0,
    max_wait_seconds=0.0,
    exponential_multiplier=0.0,
)
