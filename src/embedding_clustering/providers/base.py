"""
Base classes for the chat model used to name clusters.

The LLM-backed theme extractor only needs a single prompt-in, text-out call,
so this interface stays deliberately small.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ProviderResponse:
    """
    Normalized reply from a chat model.

    Attributes:
        text: The generated reply
        provider: Label of the provider that produced it
        tokens: Total tokens used, if the server reports usage
        latency_ms: Round-trip latency in milliseconds
        metadata: Model name, finish reason and token breakdown
    """
    text: str
    provider: str
    tokens: Optional[int] = None
    latency_ms: Optional[float] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        tokens_str = f"{self.tokens} tokens" if self.tokens else "unknown tokens"
        latency_str = f"{self.latency_ms:.2f}ms" if self.latency_ms else "unknown latency"
        return f"ProviderResponse(provider={self.provider}, {tokens_str}, {latency_str})"


class BaseLLMProvider(ABC):
    """Abstract chat model used by ``LLMThemeExtractor``."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs: Any,
    ) -> ProviderResponse:
        """
        Send one prompt and return the reply.

        Args:
            prompt: User message
            system_prompt: Optional instructions sent ahead of the prompt
            **kwargs: Sampling parameters such as ``temperature`` and
                      ``max_tokens``

        Raises:
            Exception: Transport or API errors from the underlying client.
                       Callers decide whether a failure is fatal.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short label for this provider (e.g. ``'local_llm'``)."""

    async def close(self) -> None:
        """Release the underlying client. No-op by default."""
