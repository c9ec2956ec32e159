"""
Data model for embedding clustering.

Plain dataclasses shared by the engines, the providers and the facade.
``to_dict`` / ``from_dict`` helpers translate to and from the camelCase
wire form used by the remote analytics service.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .exceptions import InvalidArgumentError


class ClusteringAlgorithm(str, Enum):
    """Algorithms the facade can dispatch to."""

    KMEANS = "kmeans"
    HIERARCHICAL = "hierarchical"
    DBSCAN = "dbscan"
    GNN = "gnn"

    @classmethod
    def parse(cls, value: Any) -> "ClusteringAlgorithm":
        """Coerce a name (any case) or member into a ``ClusteringAlgorithm``."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.KMEANS
        try:
            return cls(str(value).lower())
        except ValueError as e:
            valid = ", ".join(m.value for m in cls)
            raise InvalidArgumentError(
                f"Unknown clustering algorithm {value!r} (expected one of: {valid})"
            ) from e


class Linkage(str, Enum):
    """Inter-cluster distance rule for hierarchical agglomeration."""

    AVERAGE = "average"
    COMPLETE = "complete"
    SINGLE = "single"

    @classmethod
    def parse(cls, value: Any) -> "Linkage":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.AVERAGE
        try:
            return cls(str(value).lower())
        except ValueError as e:
            valid = ", ".join(m.value for m in cls)
            raise InvalidArgumentError(
                f"Unknown linkage {value!r} (expected one of: {valid})"
            ) from e


@dataclass
class Embedding:
    """A stored embedding vector and the text it was computed from."""

    id: str
    vector: List[float]
    text: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    document_id: Optional[str] = None

    @property
    def dimension(self) -> int:
        return len(self.vector)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Embedding":
        metadata = dict(data.get("metadata") or {})
        document_id = (
            data.get("document_id")
            or data.get("documentId")
            or metadata.get("documentId")
        )
        return cls(
            id=str(data["id"]),
            vector=[float(x) for x in data["vector"]],
            text=data.get("text", "") or "",
            metadata=metadata,
            document_id=document_id,
        )


@dataclass
class Cluster:
    """
    A group of embeddings.

    Attributes:
        id: Cluster identifier (e.g. ``"cluster-0"``)
        members: Embedding ids in the cluster (order is not significant)
        centroid: Mean member vector, if known
        cohesion: Mean pairwise cosine similarity of members, in [0, 1]
        label: Optional human-readable label
        properties: Free-form extra attributes
    """

    id: str
    members: List[str] = field(default_factory=list)
    centroid: Optional[List[float]] = None
    cohesion: float = 1.0
    label: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.members)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "members": list(self.members),
            "size": self.size,
            "cohesion": self.cohesion,
        }
        if self.centroid is not None:
            data["centroid"] = list(self.centroid)
        if self.label is not None:
            data["label"] = self.label
        if self.properties:
            data["properties"] = dict(self.properties)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Cluster":
        centroid = data.get("centroid")
        return cls(
            id=str(data["id"]),
            members=[str(m) for m in data.get("members", [])],
            centroid=[float(x) for x in centroid] if centroid is not None else None,
            cohesion=float(data.get("cohesion", 1.0)),
            label=data.get("label"),
            properties=dict(data.get("properties") or {}),
        )


@dataclass
class HierarchicalCluster(Cluster):
    """
    A cluster that is a node of a ``ClusterTree``.

    Tree links are arena indices, never object references: ``children`` are
    the indices of the child nodes in merge order and ``parent`` is a lookup
    key into the same arena (``None`` for the root).
    """

    index: int = 0
    children: List[int] = field(default_factory=list)
    parent: Optional[int] = None
    level: int = 0
    merge_height: Optional[float] = None

    @property
    def is_leaf(self) -> bool:
        return not self.children


@dataclass
class ClusteringMetadata:
    """Execution details attached to a ``ClusteringResult``."""

    algorithm: str
    execution_time_ms: Optional[float] = None
    convergence: Optional[bool] = None
    iterations: Optional[int] = None


@dataclass
class ClusteringResult:
    """Result of one clustering run."""

    clusters: List[Cluster] = field(default_factory=list)
    outliers: List[str] = field(default_factory=list)
    silhouette_score: Optional[float] = None
    metadata: Optional[ClusteringMetadata] = None

    @property
    def total_clusters(self) -> int:
        return len(self.clusters)

    def assignments(self) -> Dict[str, str]:
        """Map each clustered embedding id to its cluster id."""
        return {
            member: cluster.id
            for cluster in self.clusters
            for member in cluster.members
        }

    def get_cluster(self, cluster_id: str) -> Optional[Cluster]:
        for cluster in self.clusters:
            if cluster.id == cluster_id:
                return cluster
        return None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "clusters": [c.to_dict() for c in self.clusters],
            "outliers": list(self.outliers),
            "totalClusters": self.total_clusters,
        }
        if self.silhouette_score is not None:
            data["silhouetteScore"] = self.silhouette_score
        if self.metadata is not None:
            data["metadata"] = {
                "algorithm": self.metadata.algorithm,
                "executionTime": self.metadata.execution_time_ms,
                "convergence": self.metadata.convergence,
            }
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClusteringResult":
        metadata = None
        raw_meta = data.get("metadata")
        if raw_meta:
            metadata = ClusteringMetadata(
                algorithm=str(raw_meta.get("algorithm", "unknown")),
                execution_time_ms=raw_meta.get("executionTime"),
                convergence=raw_meta.get("convergence"),
            )
        silhouette = data.get("silhouetteScore", data.get("silhouette_score"))
        return cls(
            clusters=[Cluster.from_dict(c) for c in data.get("clusters", [])],
            outliers=[str(o) for o in data.get("outliers", [])],
            silhouette_score=float(silhouette) if silhouette is not None else None,
            metadata=metadata,
        )


# camelCase keys accepted by ClusterConfig.from_dict
_CONFIG_ALIASES = {
    "numClusters": "num_clusters",
    "minSimilarity": "min_similarity",
    "maxIterations": "max_iterations",
    "gnnConfig": "gnn_config",
    "gnnModelId": "gnn_model_id",
}


def _is_int(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_real(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


@dataclass
class ClusterConfig:
    """
    Options for one clustering call.

    Attributes:
        algorithm: Engine to dispatch to (default: k-means)
        num_clusters: Target k; estimated from the input size when unset
        min_similarity: For DBSCAN, ``eps = 1 - min_similarity``
        max_iterations: K-means iteration cap
        gnn_config: Passed through untouched to the remote GNN backend
        linkage: Hierarchical linkage rule
        seed: Seed for the k-means random generator
        gnn_model_id: Explicit GNN model, overrides the service's cached id
    """

    algorithm: ClusteringAlgorithm = ClusteringAlgorithm.KMEANS
    num_clusters: Optional[int] = None
    min_similarity: Optional[float] = None
    max_iterations: int = 100
    gnn_config: Optional[Dict[str, Any]] = None
    linkage: Linkage = Linkage.AVERAGE
    seed: Optional[int] = None
    gnn_model_id: Optional[str] = None

    def __post_init__(self):
        self.algorithm = ClusteringAlgorithm.parse(self.algorithm)
        self.linkage = Linkage.parse(self.linkage)
        if self.num_clusters is not None and not _is_int(self.num_clusters):
            raise InvalidArgumentError(
                f"num_clusters must be an integer, got {self.num_clusters!r}"
            )
        if not _is_int(self.max_iterations):
            raise InvalidArgumentError(
                f"max_iterations must be an integer, got {self.max_iterations!r}"
            )
        if self.min_similarity is not None and not _is_real(self.min_similarity):
            raise InvalidArgumentError(
                f"min_similarity must be a number, got {self.min_similarity!r}"
            )
        if self.num_clusters is not None and self.num_clusters < 1:
            raise InvalidArgumentError(
                f"num_clusters must be >= 1, got {self.num_clusters}"
            )
        if self.max_iterations < 1:
            raise InvalidArgumentError(
                f"max_iterations must be >= 1, got {self.max_iterations}"
            )
        if self.min_similarity is not None and not -1.0 <= self.min_similarity <= 1.0:
            raise InvalidArgumentError(
                f"min_similarity must be in [-1, 1], got {self.min_similarity}"
            )

    @classmethod
    def from_dict(
        cls,
        data: Optional[Mapping[str, Any]],
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> "ClusterConfig":
        """
        Build a config from snake_case or camelCase keys.

        Keys in *data* override those in *defaults*.
        """
        kwargs: Dict[str, Any] = {}
        for key, value in list((defaults or {}).items()) + list((data or {}).items()):
            name = _CONFIG_ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise InvalidArgumentError(f"Unknown cluster config option: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)


@dataclass
class GNNClusteringOptions:
    """Request options for the remote GNN clustering backend."""

    use_attention: bool = True
    aggregation_method: str = "mean"
    node_features: Optional[Dict[str, List[float]]] = None
    edge_weights: bool = True

    def __post_init__(self):
        if self.aggregation_method not in ("mean", "max", "sum"):
            raise InvalidArgumentError(
                f"aggregation_method must be 'mean', 'max' or 'sum', "
                f"got {self.aggregation_method!r}"
            )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "use_attention": self.use_attention,
            "aggregation_method": self.aggregation_method,
            "node_features": self.node_features,
            "edge_weights": self.edge_weights,
        }


@dataclass
class GNNTrainingData:
    """Labeled embeddings for GNN training."""

    embeddings: List[str]
    labels: List[str]
    validation_split: float = 0.2

    def __post_init__(self):
        if len(self.embeddings) != len(self.labels):
            raise InvalidArgumentError(
                f"embeddings ({len(self.embeddings)}) and labels "
                f"({len(self.labels)}) must have the same length"
            )
        if not 0.0 <= self.validation_split < 1.0:
            raise InvalidArgumentError(
                f"validation_split must be in [0, 1), got {self.validation_split}"
            )


@dataclass
class GNNModelMetadata:
    """Metadata returned after a GNN training run."""

    model_id: str
    accuracy: float = 0.0
    loss: float = 0.0
    epochs: int = 0
    trained_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GNNModelMetadata":
        return cls(
            model_id=str(data.get("modelId", data.get("model_id", ""))),
            accuracy=float(data.get("accuracy", 0.0)),
            loss=float(data.get("loss", 0.0)),
            epochs=int(data.get("epochs", 0)),
            trained_at=data.get("trained_at"),
        )


@dataclass
class ProjectedPoint:
    """A 2D position for one embedding."""

    id: str
    x: float
    y: float
    importance: Optional[float] = None


@dataclass
class VisualizationNode:
    id: str
    cluster_id: str
    x: float
    y: float
    size: float = 1.0


@dataclass
class VisualizationEdge:
    source: str
    target: str
    weight: float


@dataclass
class ClusterCenter:
    cluster_id: str
    x: float
    y: float


@dataclass
class ClusterVisualization:
    """
    Layout data for rendering a clustering result.

    ``projection`` is ``"remote"`` when positions came from the analytics
    service and ``"circular"`` when the local fallback layout was used.
    """

    nodes: List[VisualizationNode] = field(default_factory=list)
    edges: List[VisualizationEdge] = field(default_factory=list)
    cluster_centers: List[ClusterCenter] = field(default_factory=list)
    projection: str = "remote"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [
                {
                    "id": n.id,
                    "clusterId": n.cluster_id,
                    "position": {"x": n.x, "y": n.y},
                    "size": n.size,
                }
                for n in self.nodes
            ],
            "edges": [
                {"source": e.source, "target": e.target, "weight": e.weight}
                for e in self.edges
            ],
            "clusterCenters": [
                {"clusterId": c.cluster_id, "position": {"x": c.x, "y": c.y}}
                for c in self.cluster_centers
            ],
        }


@dataclass
class ThemeExtraction:
    """A label produced for one cluster by a theme extractor."""

    name: str
    confidence: float
    keywords: List[str] = field(default_factory=list)


@dataclass
class ThemeDiscoveryResult:
    """A discovered theme and the cluster it describes."""

    theme: str
    cluster: Cluster
    representative_texts: List[str]
    confidence: float
    keywords: List[str] = field(default_factory=list)


@dataclass
class ClusterStatistics:
    size: int
    avg_similarity: float
    min_similarity: float
    max_similarity: float
    variance: float


@dataclass
class ClusterAnalysis:
    """Descriptive statistics for one cluster."""

    cluster_id: str
    statistics: ClusterStatistics
    representatives: List[str] = field(default_factory=list)
    top_terms: Optional[List[Tuple[str, float]]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClusterAnalysis":
        stats = data.get("statistics") or {}
        top_terms = data.get("topTerms")
        return cls(
            cluster_id=str(data.get("clusterId", data.get("cluster_id", ""))),
            statistics=ClusterStatistics(
                size=int(stats.get("size", 0)),
                avg_similarity=float(stats.get("avgSimilarity", 0.0)),
                min_similarity=float(stats.get("minSimilarity", 0.0)),
                max_similarity=float(stats.get("maxSimilarity", 0.0)),
                variance=float(stats.get("variance", 0.0)),
            ),
            representatives=[str(r) for r in data.get("representatives", [])],
            top_terms=(
                [(str(t["term"]), float(t["score"])) for t in top_terms]
                if top_terms is not None
                else None
            ),
        )
