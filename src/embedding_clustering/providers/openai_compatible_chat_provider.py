"""
OpenAI-Compatible Chat Provider.

Uses the vanilla ``AsyncOpenAI`` client with a configurable ``base_url`` so
theme extraction can run against Ollama, vLLM or plain OpenAI alike.
"""

import time
from typing import Any, Optional

from openai import AsyncOpenAI

from ..config import LLMConfig
from ..utils.logging_config import get_logger
from .base import BaseLLMProvider, ProviderResponse

logger = get_logger(__name__)


class OpenAICompatibleChatProvider(BaseLLMProvider):
    """Chat provider for any endpoint exposing OpenAI ``/chat/completions``."""

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str = "not-needed",
        provider_label: str = "local_llm",
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        """
        Args:
            base_url: Root URL of the chat endpoint
                      (e.g. ``http://localhost:11434/v1``).
            model: Model identifier sent with every request.
            api_key: Bearer token; ``"not-needed"`` for local servers.
            provider_label: Label returned by ``get_provider_name()``.
            client: Pre-built client, mainly for tests.
        """
        self._model = model
        self._provider_label = provider_label
        self._client = client or AsyncOpenAI(base_url=base_url, api_key=api_key)
        logger.info(
            "Initialized OpenAICompatibleChatProvider (base_url=%s, model=%s)",
            base_url,
            model,
        )

    @classmethod
    def from_config(cls, llm_config: LLMConfig) -> "OpenAICompatibleChatProvider":
        return cls(
            base_url=llm_config.base_url,
            model=llm_config.model,
            api_key=llm_config.api_key,
        )

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: Optional[int] = None,
        **kwargs: Any,
    ) -> ProviderResponse:
        start_time = time.time()

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        params: dict = {
            "model": self._model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            params["max_tokens"] = max_tokens

        response = await self._client.chat.completions.create(**params)

        latency_ms = (time.time() - start_time) * 1000
        choice = response.choices[0]
        usage = response.usage

        return ProviderResponse(
            text=choice.message.content or "",
            provider=self._provider_label,
            tokens=usage.total_tokens if usage else None,
            latency_ms=latency_ms,
            metadata={
                "model": self._model,
                "finish_reason": choice.finish_reason,
            },
        )

    def get_provider_name(self) -> str:
        return self._provider_label

    async def close(self) -> None:
        await self._client.close()
