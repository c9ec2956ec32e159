"""
Provider abstraction layer.

Embedding stores supply vectors, analytics services run the remote-only
operations (GNN clustering, projection, theme extraction) and chat
providers back the optional LLM theme extractor.
"""

from .base import BaseLLMProvider, ProviderResponse
from .base_analytics import BaseAnalyticsService, BaseThemeExtractor
from .base_store import BaseEmbeddingStore
from .factory import ProviderFactory
from .http_analytics import HttpAnalyticsService
from .http_client import AnalyticsHttpClient
from .http_store import HttpEmbeddingStore
from .memory_store import InMemoryEmbeddingStore
from .openai_compatible_chat_provider import OpenAICompatibleChatProvider

__all__ = [
    "BaseLLMProvider",
    "ProviderResponse",
    "BaseAnalyticsService",
    "BaseThemeExtractor",
    "BaseEmbeddingStore",
    "ProviderFactory",
    "HttpAnalyticsService",
    "AnalyticsHttpClient",
    "HttpEmbeddingStore",
    "InMemoryEmbeddingStore",
    "OpenAICompatibleChatProvider",
]
