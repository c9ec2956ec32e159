"""
Pytest configuration and shared fixtures.

This file is automatically discovered by pytest and provides fixtures
available to all test modules.
"""

import asyncio
from typing import List, Optional, Sequence

import pytest

from embedding_clustering.exceptions import RemoteServiceError
from embedding_clustering.models import (
    Cluster,
    ClusterAnalysis,
    ClusteringMetadata,
    ClusteringResult,
    ClusterStatistics,
    Embedding,
    GNNModelMetadata,
    ProjectedPoint,
    ThemeExtraction,
)
from embedding_clustering.providers.base import BaseLLMProvider, ProviderResponse
from embedding_clustering.providers.base_analytics import BaseAnalyticsService
from embedding_clustering.providers.memory_store import InMemoryEmbeddingStore
from embedding_clustering.services.cluster_service import ClusterService


class FakeAnalyticsService(BaseAnalyticsService):
    """
    In-process analytics backend.

    GNN clustering puts every requested id into one cluster; projection
    places ids on a line. Every call is recorded in ``calls``.
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.closed = False

    async def gnn_cluster(self, embedding_ids, model_id=None, options=None, gnn_config=None):
        self.calls.append(("gnn_cluster", list(embedding_ids), model_id))
        return ClusteringResult(
            clusters=[Cluster(id="gnn-0", members=list(embedding_ids), cohesion=0.8)],
            outliers=[],
            metadata=ClusteringMetadata(algorithm="gnn", convergence=True),
        )

    async def train_gnn_model(self, training_data):
        self.calls.append(("train_gnn_model", len(training_data.embeddings)))
        return GNNModelMetadata(model_id="model-1", accuracy=0.9, loss=0.1, epochs=10)

    async def project_2d(self, embedding_ids: Sequence[str], method: str = "umap"):
        self.calls.append(("project_2d", list(embedding_ids), method))
        return [ProjectedPoint(id=i, x=float(n), y=0.0) for n, i in enumerate(embedding_ids)]

    async def extract_theme(self, texts, cluster_size):
        self.calls.append(("extract_theme", list(texts), cluster_size))
        return ThemeExtraction(name=f"About {texts[0]}", confidence=0.75, keywords=["k1", "k2"])

    async def analyze_cluster(self, cluster_id: str):
        self.calls.append(("analyze_cluster", cluster_id))
        return ClusterAnalysis(
            cluster_id=cluster_id,
            statistics=ClusterStatistics(
                size=2, avg_similarity=0.9, min_similarity=0.9, max_similarity=0.9, variance=0.0
            ),
        )

    async def close(self) -> None:
        self.closed = True


class FailingAnalyticsService(FakeAnalyticsService):
    """Analytics backend whose every call fails like an unreachable server."""

    def __init__(self, status_code: Optional[int] = 503):
        super().__init__()
        self.status_code = status_code

    def _fail(self, operation: str):
        self.calls.append((operation,))
        raise RemoteServiceError(f"{operation} unavailable", status_code=self.status_code)

    async def gnn_cluster(self, embedding_ids, model_id=None, options=None, gnn_config=None):
        self._fail("gnn_cluster")

    async def train_gnn_model(self, training_data):
        self._fail("train_gnn_model")

    async def project_2d(self, embedding_ids, method="umap"):
        self._fail("project_2d")

    async def extract_theme(self, texts, cluster_size):
        self._fail("extract_theme")

    async def analyze_cluster(self, cluster_id):
        self._fail("analyze_cluster")


class SlowAnalyticsService(FakeAnalyticsService):
    """Analytics backend that answers after ``delay`` seconds."""

    def __init__(self, delay: float = 1.0):
        super().__init__()
        self.delay = delay

    async def project_2d(self, embedding_ids, method="umap"):
        await asyncio.sleep(self.delay)
        return await super().project_2d(embedding_ids, method)

    async def extract_theme(self, texts, cluster_size):
        await asyncio.sleep(self.delay)
        return await super().extract_theme(texts, cluster_size)


def make_embeddings(points: dict, document_id: Optional[str] = None) -> List[Embedding]:
    """Build embeddings from ``{id: vector}`` with ``text`` equal to the id."""
    return [
        Embedding(id=i, vector=list(v), text=f"text {i}", document_id=document_id)
        for i, v in points.items()
    ]


@pytest.fixture
def two_group_embeddings():
    """Four points in two well-separated pairs."""
    return make_embeddings(
        {"A": [0.0, 0.0], "B": [0.0, 1.0], "C": [10.0, 10.0], "D": [10.0, 11.0]},
        document_id="doc-1",
    )


@pytest.fixture
def store(two_group_embeddings):
    """In-memory store holding ``two_group_embeddings`` in namespace ``docs``."""
    return InMemoryEmbeddingStore(two_group_embeddings, namespace="docs")


@pytest.fixture
def fake_analytics():
    return FakeAnalyticsService()


@pytest.fixture
def failing_analytics():
    return FailingAnalyticsService()


@pytest.fixture
def service(store, fake_analytics):
    """ClusterService over the in-memory store and the fake backend."""
    return ClusterService(store, fake_analytics, remote_timeout=1.0)


@pytest.fixture
def failing_service(store, failing_analytics):
    """ClusterService whose remote backend always fails."""
    return ClusterService(store, failing_analytics, remote_timeout=1.0)


@pytest.fixture
def mock_llm_provider():
    """
    Fixture for a mock chat provider.

    ``reply`` can be reassigned by a test to control the model output.
    """
    class MockLLMProvider(BaseLLMProvider):
        def __init__(self):
            self.reply = '{"theme": "Mock theme", "confidence": 0.6, "keywords": ["mock"]}'
            self.prompts: List[str] = []

        async def complete(self, prompt: str, system_prompt=None, **kwargs) -> ProviderResponse:
            self.prompts.append(prompt)
            return ProviderResponse(text=self.reply, provider="mock", tokens=10, latency_ms=1.0)

        def get_provider_name(self) -> str:
            return "mock"

    return MockLLMProvider()


@pytest.fixture
def slow_analytics():
    return SlowAnalyticsService(delay=0.5)


@pytest.fixture
def embedding_factory():
    """Return ``make_embeddings`` for tests that need custom points."""
    return make_embeddings
