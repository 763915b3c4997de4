"""Abstract bases for the completion and web-search services."""

from abc import ABC, abstractmethod
from collections.abc import Callable

from council.models import ModelResponse, ResearchResult

# Receives each incremental text delta of a streamed completion
ChunkHandler = Callable[[str], None]


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class SearchError(ProviderError):
    """Raised when a web-search call fails."""


class AIProvider(ABC):
    """Abstract base for all completion providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the configured provider name (e.g. 'claude', 'gemini')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        max_tokens: int,
        on_chunk: ChunkHandler | None = None,
    ) -> ModelResponse:
        """Run one completion.

        Args:
            system_prompt: Instruction text; may be empty.
            messages: Chat turns as {"role": "user"|"assistant", "content": ...}.
            max_tokens: Output token cap for this call.
            on_chunk: When given, the call is streamed and every text delta is
                passed to it as it arrives. The aggregated text is returned
                either way.

        Returns:
            ModelResponse with the full content and metadata.

        Raises:
            ProviderError: On API failure, timeout, or empty response.
        """
        ...


class SearchProvider(ABC):
    """Abstract base for web-search services."""

    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def search(self, query: str, max_results: int) -> list[ResearchResult]:
        """Return up to max_results results, best first.

        Raises:
            SearchError: On API failure or timeout.
        """
        ...
