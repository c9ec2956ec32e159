"""
Provider Factory - builds the remote backends from configuration.

The embedding store and the analytics service talk to the same host, so the
factory hands both one shared ``AnalyticsHttpClient``.
"""

from typing import Optional, Tuple

from ..config import Config
from .http_analytics import HttpAnalyticsService
from .http_client import AnalyticsHttpClient
from .http_store import HttpEmbeddingStore
from .openai_compatible_chat_provider import OpenAICompatibleChatProvider


class ProviderFactory:
    """
    Factory for the remote backends.

    Usage:
        factory = ProviderFactory()
        store, analytics = factory.create_remote_backends()
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config.from_env()

    def create_http_client(self) -> AnalyticsHttpClient:
        return AnalyticsHttpClient(self.config.analytics)

    def create_remote_backends(self) -> Tuple[HttpEmbeddingStore, HttpAnalyticsService]:
        """Create a store and an analytics service sharing one HTTP client."""
        client = self.create_http_client()
        return HttpEmbeddingStore(client), HttpAnalyticsService(client)

    def create_theme_llm(self) -> OpenAICompatibleChatProvider:
        """Create the chat provider used by ``LLMThemeExtractor``."""
        return OpenAICompatibleChatProvider.from_config(self.config.llm)
