from typing import Protocol, runtime_checkable

from transcriptqa.core.models import CompletionParams


@runtime_checkable
class CompletionProvider(Protocol):
    async def complete(self, prompt: str, params: CompletionParams) -> str: ...
