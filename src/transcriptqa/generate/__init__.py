"""Completion (LLM) providers."""

from __future__ import annotations


def __getattr__(name: str):
    """Lazy import with clear error messages for missing dependencies."""
    if name == "OpenAICompletionProvider":
        try:
            from transcriptqa.generate.openai import OpenAICompletionProvider

            return OpenAICompletionProvider
        except ImportError:
            raise ImportError(
                "OpenAICompletionProvider requires 'openai'. Install with: pip install openai"
            ) from None
    if name == "AnthropicCompletionProvider":
        try:
            from transcriptqa.generate.anthropic import AnthropicCompletionProvider

            return AnthropicCompletionProvider
        except ImportError:
            raise ImportError(
                "AnthropicCompletionProvider requires 'anthropic'. "
                "Install with: pip install transcriptqa[anthropic]"
            ) from None
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "AnthropicCompletionProvider",
    "OpenAICompletionProvider",
]
