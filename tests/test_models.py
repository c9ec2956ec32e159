"""
Tests for the data model and its wire-format helpers.
"""

import logging

import pytest

from embedding_clustering.exceptions import ClusteringError, InvalidArgumentError
from embedding_clustering.models import (
    Cluster,
    ClusterConfig,
    ClusteringAlgorithm,
    ClusteringMetadata,
    ClusteringResult,
    Embedding,
    GNNClusteringOptions,
    GNNTrainingData,
    Linkage,
)
from embedding_clustering.utils.logging_config import get_logger, setup_logging


def test_algorithm_parse():
    assert ClusteringAlgorithm.parse(None) is ClusteringAlgorithm.KMEANS
    assert ClusteringAlgorithm.parse("DBSCAN") is ClusteringAlgorithm.DBSCAN
    assert ClusteringAlgorithm.parse(ClusteringAlgorithm.GNN) is ClusteringAlgorithm.GNN
    with pytest.raises(InvalidArgumentError):
        ClusteringAlgorithm.parse("spectral")


def test_linkage_parse():
    assert Linkage.parse(None) is Linkage.AVERAGE
    assert Linkage.parse("Single") is Linkage.SINGLE
    with pytest.raises(InvalidArgumentError):
        Linkage.parse("ward")


def test_cluster_config_from_dict_accepts_camel_case():
    config = ClusterConfig.from_dict({
        "algorithm": "hierarchical",
        "numClusters": 4,
        "maxIterations": 20,
        "gnnConfig": {"layers": 2},
        "linkage": "complete",
    })
    assert config.algorithm is ClusteringAlgorithm.HIERARCHICAL
    assert config.num_clusters == 4
    assert config.max_iterations == 20
    assert config.gnn_config == {"layers": 2}
    assert config.linkage is Linkage.COMPLETE


@pytest.mark.parametrize(
    "data",
    [
        {"numClusters": 0},
        {"maxIterations": 0},
        {"minSimilarity": 1.5},
        {"unknown": True},
    ],
)
def test_cluster_config_validation(data):
    with pytest.raises(InvalidArgumentError):
        ClusterConfig.from_dict(data)


def test_cluster_config_from_dict_merges_over_defaults():
    defaults = {"max_iterations": 7, "seed": 3}

    assert ClusterConfig.from_dict(None, defaults=defaults).max_iterations == 7
    config = ClusterConfig.from_dict({"maxIterations": 20}, defaults=defaults)
    assert config.max_iterations == 20
    assert config.seed == 3


@pytest.mark.parametrize(
    "data",
    [
        {"numClusters": "2"},
        {"maxIterations": None},
        {"maxIterations": 1.5},
        {"minSimilarity": "0.5"},
        {"numClusters": False},
    ],
)
def test_cluster_config_rejects_wrong_types(data):
    with pytest.raises(InvalidArgumentError):
        ClusterConfig.from_dict(data)


def test_gnn_models_validation():
    with pytest.raises(InvalidArgumentError):
        GNNClusteringOptions(aggregation_method="median")
    with pytest.raises(InvalidArgumentError):
        GNNTrainingData(embeddings=["a"], labels=[])
    with pytest.raises(InvalidArgumentError):
        GNNTrainingData(embeddings=["a"], labels=["x"], validation_split=1.0)


def test_embedding_from_dict_reads_document_id():
    embedding = Embedding.from_dict({"id": 7, "vector": [1, 2], "documentId": "d"})
    assert embedding.id == "7"
    assert embedding.vector == [1.0, 2.0]
    assert embedding.document_id == "d"
    assert embedding.dimension == 2


def test_result_round_trip_and_helpers():
    result = ClusteringResult(
        clusters=[Cluster(id="c0", members=["a", "b"], centroid=[0.5, 0.5], cohesion=0.9)],
        outliers=["z"],
        silhouette_score=0.3,
        metadata=ClusteringMetadata(algorithm="dbscan", execution_time_ms=1.5, convergence=True),
    )

    data = result.to_dict()
    assert data["totalClusters"] == 1
    assert data["clusters"][0]["size"] == 2
    assert data["metadata"] == {"algorithm": "dbscan", "executionTime": 1.5, "convergence": True}

    restored = ClusteringResult.from_dict(data)
    assert restored.assignments() == {"a": "c0", "b": "c0"}
    assert restored.get_cluster("c0").centroid == [0.5, 0.5]
    assert restored.get_cluster("nope") is None


def test_clustering_error_keeps_cause():
    cause = RuntimeError("boom")
    error = ClusteringError("kmeans clustering failed", cause=cause)
    assert error.cause is cause
    assert str(error) == "kmeans clustering failed: boom"
    assert error.code == "CLUSTERING_ERROR"


def test_get_logger_uses_package_namespace():
    assert get_logger("embedding_clustering.services").name == "embedding_clustering.services"
    assert get_logger("scripts.run").name == "embedding_clustering.scripts.run"


def test_setup_logging_sets_package_level():
    logger = setup_logging("DEBUG")
    assert logger.name == "embedding_clustering"
    assert logger.level == logging.DEBUG
    setup_logging("WARNING")
    assert logger.level == logging.WARNING
