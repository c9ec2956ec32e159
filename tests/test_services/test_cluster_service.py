"""
Tests for ClusterService.

Covers dispatch to every engine, input validation, error wrapping, the GNN
model cache, local cluster description and the similarity clusterer.
"""

import pytest
from unittest.mock import AsyncMock

from embedding_clustering.config import ClusteringDefaults
from embedding_clustering.exceptions import (
    ClusteringError,
    DimensionMismatchError,
    InvalidArgumentError,
    RemoteServiceError,
)
from embedding_clustering.models import (
    Cluster,
    ClusterConfig,
    ClusteringAlgorithm,
    Embedding,
    GNNClusteringOptions,
    GNNTrainingData,
    HierarchicalCluster,
)
from embedding_clustering.providers.memory_store import InMemoryEmbeddingStore
from embedding_clustering.services.cluster_service import ClusterService

ALL_IDS = ["A", "B", "C", "D"]


def _partition(result):
    return {frozenset(c.members) for c in result.clusters}


# ------------------------------------------------------------------
# cluster
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_cluster_defaults_to_kmeans(service):
    result = await service.cluster(ALL_IDS, {"numClusters": 2, "seed": 0})

    assert _partition(result) == {frozenset("AB"), frozenset("CD")}
    assert result.metadata.algorithm == "kmeans"
    assert result.metadata.execution_time_ms >= 0
    assert result.metadata.convergence is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "config",
    [
        ClusterConfig(algorithm=ClusteringAlgorithm.KMEANS, num_clusters=2, seed=1),
        ClusterConfig(algorithm="hierarchical", num_clusters=2),
        {"algorithm": "dbscan", "minSimilarity": -1.0},
    ],
)
async def test_cluster_partition_property(service, config):
    """Every id lands in exactly one cluster or in the outliers."""
    result = await service.cluster(ALL_IDS, config)

    placed = [m for c in result.clusters for m in c.members] + result.outliers
    assert sorted(placed) == ALL_IDS


@pytest.mark.asyncio
async def test_cluster_dbscan_uses_min_similarity(embedding_factory, fake_analytics):
    store = InMemoryEmbeddingStore(
        embedding_factory({"A": [0, 0], "B": [0, 1], "C": [0, 2], "D": [0, 3], "E": [100, 100]})
    )
    service = ClusterService(store, fake_analytics)

    # eps = 1 - (-1) = 2; min points = 3
    result = await service.cluster(["A", "B", "C", "D", "E"], {"algorithm": "dbscan", "min_similarity": -1.0})

    assert _partition(result) == {frozenset("ABCD")}
    assert result.outliers == ["E"]
    assert result.metadata.algorithm == "dbscan"


@pytest.mark.asyncio
async def test_cluster_hierarchical_result(service):
    result = await service.cluster(ALL_IDS, {"algorithm": "hierarchical", "numClusters": 2, "linkage": "complete"})

    assert _partition(result) == {frozenset("AB"), frozenset("CD")}
    assert result.metadata.algorithm == "hierarchical"
    assert result.silhouette_score > 0.8


@pytest.mark.asyncio
async def test_cluster_gnn_goes_remote(service, fake_analytics):
    result = await service.cluster(ALL_IDS, {"algorithm": "gnn", "gnnModelId": "explicit"})

    assert result.clusters[0].id == "gnn-0"
    assert result.metadata.algorithm == "gnn"
    assert fake_analytics.calls[0] == ("gnn_cluster", ALL_IDS, "explicit")


@pytest.mark.asyncio
async def test_cluster_ignores_duplicate_ids(service):
    result = await service.cluster(["A", "B", "A", "C", "D"], {"numClusters": 2, "seed": 0})
    placed = [m for c in result.clusters for m in c.members]
    assert sorted(placed) == ALL_IDS


@pytest.mark.asyncio
async def test_cluster_empty_ids_is_invalid(service):
    with pytest.raises(InvalidArgumentError):
        await service.cluster([])


@pytest.mark.asyncio
async def test_cluster_unknown_ids_are_invalid(service):
    with pytest.raises(InvalidArgumentError) as exc_info:
        await service.cluster(["A", "nope"])
    assert exc_info.value.details == {"missing": ["nope"]}


@pytest.mark.asyncio
async def test_cluster_dimension_mismatch_is_not_wrapped(fake_analytics):
    store = InMemoryEmbeddingStore([Embedding("a", [0.0, 1.0]), Embedding("b", [1.0, 2.0, 3.0])])
    service = ClusterService(store, fake_analytics)

    with pytest.raises(DimensionMismatchError):
        await service.cluster(["a", "b"])


@pytest.mark.asyncio
async def test_cluster_bad_config_is_invalid(service):
    with pytest.raises(InvalidArgumentError):
        await service.cluster(ALL_IDS, {"algorithm": "spectral"})
    with pytest.raises(InvalidArgumentError):
        await service.cluster(ALL_IDS, {"bogus": 1})
    with pytest.raises(InvalidArgumentError):
        await service.cluster(ALL_IDS, "kmeans")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "config",
    [
        {"maxIterations": None},
        {"numClusters": "2"},
        {"num_clusters": 2.5},
        {"max_iterations": True},
        {"algorithm": "dbscan", "minSimilarity": "high"},
    ],
)
async def test_cluster_badly_typed_config_is_invalid(service, config):
    with pytest.raises(InvalidArgumentError):
        await service.cluster(ALL_IDS, config)


@pytest.mark.asyncio
@pytest.mark.parametrize("config", [None, {"algorithm": "kmeans"}, {"numClusters": 2}])
async def test_cluster_mapping_config_uses_default_max_iterations(store, fake_analytics, config):
    service = ClusterService(store, fake_analytics, defaults=ClusteringDefaults(max_iterations=1))

    result = await service.cluster(ALL_IDS, config)

    assert result.metadata.iterations == 1


@pytest.mark.asyncio
async def test_cluster_explicit_max_iterations_overrides_default(store, fake_analytics):
    service = ClusterService(store, fake_analytics, defaults=ClusteringDefaults(max_iterations=1))

    result = await service.cluster(ALL_IDS, {"numClusters": 2, "maxIterations": 50, "seed": 0})

    assert result.metadata.iterations > 1
    assert result.metadata.convergence is True


@pytest.mark.asyncio
async def test_cluster_wraps_store_failures(fake_analytics):
    store = AsyncMock(spec=InMemoryEmbeddingStore)
    store.get_embeddings = AsyncMock(side_effect=RemoteServiceError("store down", status_code=500))
    service = ClusterService(store, fake_analytics)

    with pytest.raises(ClusteringError) as exc_info:
        await service.cluster(ALL_IDS)
    assert isinstance(exc_info.value.cause, RemoteServiceError)
    assert isinstance(exc_info.value.__cause__, RemoteServiceError)


@pytest.mark.asyncio
async def test_cluster_gnn_failure_is_clustering_error(failing_service):
    with pytest.raises(ClusteringError):
        await failing_service.cluster(ALL_IDS, {"algorithm": "gnn"})


# ------------------------------------------------------------------
# cluster_documents / cluster_by_namespace
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_cluster_documents(service):
    result = await service.cluster_documents(["doc-1"], {"numClusters": 2, "seed": 0})
    assert _partition(result) == {frozenset("AB"), frozenset("CD")}


@pytest.mark.asyncio
async def test_cluster_documents_without_embeddings(service):
    with pytest.raises(InvalidArgumentError):
        await service.cluster_documents(["unknown-doc"])
    with pytest.raises(InvalidArgumentError):
        await service.cluster_documents([])


@pytest.mark.asyncio
async def test_cluster_by_namespace(service):
    result = await service.cluster_by_namespace("docs", {"numClusters": 2, "seed": 0})
    assert _partition(result) == {frozenset("AB"), frozenset("CD")}

    with pytest.raises(InvalidArgumentError):
        await service.cluster_by_namespace("empty")


# ------------------------------------------------------------------
# GNN
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_train_gnn_model_caches_model_id(service, fake_analytics):
    metadata = await service.train_gnn_model(GNNTrainingData(embeddings=["A", "B"], labels=["x", "y"]))

    assert metadata.model_id == "model-1"
    assert service.gnn_model_id == "model-1"

    await service.gnn_cluster(ALL_IDS)
    assert fake_analytics.calls[-1] == ("gnn_cluster", ALL_IDS, "model-1")

    await service.gnn_cluster(ALL_IDS, options=GNNClusteringOptions(use_attention=False), model_id="other")
    assert fake_analytics.calls[-1] == ("gnn_cluster", ALL_IDS, "other")


@pytest.mark.asyncio
async def test_gnn_failures_are_clustering_errors(failing_service):
    with pytest.raises(ClusteringError) as exc_info:
        await failing_service.gnn_cluster(ALL_IDS)
    assert isinstance(exc_info.value.cause, RemoteServiceError)

    with pytest.raises(ClusteringError):
        await failing_service.train_gnn_model(GNNTrainingData(embeddings=["A"], labels=["x"]))
    assert failing_service.gnn_model_id is None


@pytest.mark.asyncio
async def test_train_gnn_model_requires_data(service):
    with pytest.raises(InvalidArgumentError):
        await service.train_gnn_model(GNNTrainingData(embeddings=[], labels=[]))


# ------------------------------------------------------------------
# Hierarchy
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_hierarchical_cluster_returns_tree_nodes(service):
    clusters = await service.hierarchical_cluster(ALL_IDS, {"numClusters": 2})

    assert len(clusters) == 2
    assert all(isinstance(c, HierarchicalCluster) for c in clusters)
    assert {frozenset(c.members) for c in clusters} == {frozenset("AB"), frozenset("CD")}


@pytest.mark.asyncio
async def test_build_hierarchy(service):
    tree = await service.build_hierarchy(ALL_IDS, "single")
    assert len(tree) == 7
    assert sorted(tree.node(tree.root).members) == ALL_IDS


# ------------------------------------------------------------------
# cluster_by_similarity
# ------------------------------------------------------------------


def test_cluster_by_similarity_mapping(service):
    clusters = service.cluster_by_similarity({"A": [1, 0], "B": [1, 0], "C": [0, 1]}, threshold=0.9)
    assert [c.members for c in clusters] == [["A", "B"], ["C"]]


def test_cluster_by_similarity_embeddings(service, two_group_embeddings):
    clusters = service.cluster_by_similarity(two_group_embeddings)
    placed = [m for c in clusters for m in c.members]
    assert sorted(placed) == ALL_IDS


def test_cluster_by_similarity_uses_configured_threshold(store, fake_analytics):
    vectors = {"A": [1.0, 0.0], "B": [0.6, 0.8], "C": [0.0, 1.0]}

    loose = ClusterService(store, fake_analytics, defaults=ClusteringDefaults(similarity_threshold=0.5))
    strict = ClusterService(store, fake_analytics, defaults=ClusteringDefaults(similarity_threshold=0.9))

    assert [c.members for c in loose.cluster_by_similarity(vectors)] == [["A", "B"], ["C"]]
    assert len(strict.cluster_by_similarity(vectors)) == 3


def test_cluster_by_similarity_validation(service):
    assert service.cluster_by_similarity({}) == []
    with pytest.raises(InvalidArgumentError):
        service.cluster_by_similarity({"A": [1, 0]}, threshold=1.5)
    with pytest.raises(DimensionMismatchError):
        service.cluster_by_similarity({"A": [1, 0], "B": [1, 0, 0]})


# ------------------------------------------------------------------
# Analysis
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_analyze_cluster(service, fake_analytics):
    analysis = await service.analyze_cluster("cluster-0")
    assert analysis.cluster_id == "cluster-0"
    assert fake_analytics.calls[-1] == ("analyze_cluster", "cluster-0")


@pytest.mark.asyncio
async def test_analyze_cluster_failure(failing_service):
    with pytest.raises(ClusteringError):
        await failing_service.analyze_cluster("cluster-0")


@pytest.mark.asyncio
async def test_describe_cluster(service):
    analysis = await service.describe_cluster(Cluster(id="c", members=["C", "D"]), representatives=1)

    assert analysis.cluster_id == "c"
    assert analysis.statistics.size == 2
    assert 0.99 < analysis.statistics.avg_similarity <= 1.0
    assert len(analysis.representatives) == 1


@pytest.mark.asyncio
async def test_close_closes_collaborators(service, fake_analytics):
    async with service:
        pass
    assert fake_analytics.closed is True
