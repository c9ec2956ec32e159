"""
Cluster Service - orchestration facade for embedding clustering.

Resolves embedding ids through an embedding store, dispatches to the local
engines or the remote GNN backend, and derives visualization layouts and
theme labels from the result.

Usage:
    from embedding_clustering.providers import ProviderFactory
    from embedding_clustering.services import ClusterService

    store, analytics = ProviderFactory().create_remote_backends()
    service = ClusterService(store, analytics)

    result = await service.cluster(["emb-1", "emb-2", "emb-3"], {"algorithm": "dbscan"})
    layout = await service.get_cluster_visualization(result)
"""

import time
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..algorithms.dbscan import dbscan_cluster
from ..algorithms.hierarchical import (
    ClusterTree,
    build_hierarchy,
    flatten_hierarchy,
    hierarchical_cluster,
)
from ..algorithms.kmeans import kmeans_cluster
from ..algorithms.metrics import cluster_statistics, estimate_num_clusters
from ..algorithms.threshold import threshold_cluster
from ..algorithms.vector_math import Array2D, as_matrix
from ..config import ClusteringDefaults, config as app_config
from ..exceptions import ClusteringError, InvalidArgumentError
from ..models import (
    Cluster,
    ClusterAnalysis,
    ClusterConfig,
    ClusteringAlgorithm,
    ClusteringMetadata,
    ClusteringResult,
    ClusterVisualization,
    Embedding,
    GNNClusteringOptions,
    GNNModelMetadata,
    GNNTrainingData,
    HierarchicalCluster,
    Linkage,
    ThemeDiscoveryResult,
)
from ..providers.base_analytics import BaseAnalyticsService, BaseThemeExtractor
from ..providers.base_store import BaseEmbeddingStore
from ..utils.logging_config import get_logger
from ._shared import call_remote
from .themes import select_representatives
from .visualization import calculate_edges, circular_layout, cluster_centers, projected_nodes

logger = get_logger(__name__)

ConfigLike = Union[ClusterConfig, Mapping[str, Any], None]


class ClusterService:
    """
    Facade over the clustering engines and the remote analytics service.

    Holds one piece of mutable state: ``gnn_model_id``, the id of the most
    recently trained GNN model (last write wins). It is used whenever a GNN
    request does not name a model explicitly.
    """

    def __init__(
        self,
        store: BaseEmbeddingStore,
        analytics: BaseAnalyticsService,
        theme_extractor: Optional[BaseThemeExtractor] = None,
        gnn_model_id: Optional[str] = None,
        remote_timeout: Optional[float] = None,
        defaults: Optional[ClusteringDefaults] = None,
    ):
        """
        Initialize the cluster service.

        Args:
            store: Source of embeddings
            analytics: Remote analytics backend (GNN, projection, themes)
            theme_extractor: Labels clusters in ``discover_themes``;
                             defaults to *analytics*
            gnn_model_id: Initial GNN model id
            remote_timeout: Seconds allowed for each projection or theme
                            call before falling back (default from config)
            defaults: Engine defaults (default from config)
        """
        self.store = store
        self.analytics = analytics
        self.theme_extractor = theme_extractor or analytics
        self.gnn_model_id = gnn_model_id
        self.defaults = defaults or app_config.clustering
        self.remote_timeout = (
            remote_timeout if remote_timeout is not None else self.defaults.remote_timeout
        )

    # ------------------------------------------------------------------
    # Clustering
    # ------------------------------------------------------------------

    async def cluster(self, embedding_ids: Sequence[str], config: ConfigLike = None) -> ClusteringResult:
        """
        Cluster the given embeddings.

        Args:
            embedding_ids: Ids to cluster; duplicates are ignored
            config: ``ClusterConfig`` or a mapping of its fields
                    (camelCase keys accepted). Defaults to k-means.

        Returns:
            ``ClusteringResult`` with metadata (algorithm, elapsed ms,
            convergence flag)

        Raises:
            InvalidArgumentError: Empty ids, unknown ids, bad config or
                                  mismatched vector dimensions
            ClusteringError: Any other failure, with the cause attached
        """
        cfg = self._resolve_config(config)
        ids = self._require_ids(embedding_ids)
        algorithm = cfg.algorithm
        logger.info("Clustering %d embeddings with %s", len(ids), algorithm.value)

        start = time.perf_counter()
        try:
            if algorithm is ClusteringAlgorithm.GNN:
                result = await self.analytics.gnn_cluster(
                    ids,
                    model_id=cfg.gnn_model_id or self.gnn_model_id,
                    gnn_config=cfg.gnn_config,
                )
            else:
                X = await self._fetch_matrix(ids)
                result = self._run_local(ids, X, cfg)
        except (InvalidArgumentError, ClusteringError):
            raise
        except Exception as e:
            logger.error("%s clustering failed: %s", algorithm.value, e, exc_info=True)
            raise ClusteringError(f"{algorithm.value} clustering failed", cause=e) from e

        elapsed_ms = (time.perf_counter() - start) * 1000
        engine_meta = result.metadata or ClusteringMetadata(algorithm=algorithm.value)
        result.metadata = ClusteringMetadata(
            algorithm=algorithm.value,
            execution_time_ms=elapsed_ms,
            # remote results may omit the flag
            convergence=engine_meta.convergence if engine_meta.convergence is not None else True,
            iterations=engine_meta.iterations,
        )
        logger.info(
            "%s produced %d clusters, %d outliers in %.1fms",
            algorithm.value,
            result.total_clusters,
            len(result.outliers),
            elapsed_ms,
        )
        return result

    async def cluster_documents(self, document_ids: Sequence[str], config: ConfigLike = None) -> ClusteringResult:
        """Cluster every embedding that belongs to *document_ids*."""
        if not document_ids:
            raise InvalidArgumentError("document_ids must not be empty")
        try:
            ids = await self.store.get_ids_by_documents(list(document_ids))
        except InvalidArgumentError:
            raise
        except Exception as e:
            raise ClusteringError("Failed to resolve document embeddings", cause=e) from e
        if not ids:
            raise InvalidArgumentError(
                f"No embeddings found for {len(document_ids)} document(s)"
            )
        return await self.cluster(ids, config)

    async def cluster_by_namespace(self, namespace: str, config: ConfigLike = None) -> ClusteringResult:
        """Cluster every embedding in *namespace*."""
        if not namespace:
            raise InvalidArgumentError("namespace must not be empty")
        try:
            ids = await self.store.get_ids_by_namespace(namespace)
        except InvalidArgumentError:
            raise
        except Exception as e:
            raise ClusteringError(f"Failed to list namespace {namespace!r}", cause=e) from e
        if not ids:
            raise InvalidArgumentError(f"No embeddings found in namespace {namespace!r}")
        return await self.cluster(ids, config)

    async def gnn_cluster(
        self,
        embedding_ids: Sequence[str],
        options: Optional[GNNClusteringOptions] = None,
        model_id: Optional[str] = None,
    ) -> ClusteringResult:
        """
        Cluster with the remote GNN backend.

        Uses *model_id*, else the cached ``gnn_model_id``. There is no local
        fallback: remote failures surface as ``ClusteringError``.
        """
        ids = self._require_ids(embedding_ids)
        start = time.perf_counter()
        try:
            result = await self.analytics.gnn_cluster(
                ids,
                model_id=model_id or self.gnn_model_id,
                options=options or GNNClusteringOptions(),
            )
        except InvalidArgumentError:
            raise
        except Exception as e:
            logger.error("GNN clustering failed: %s", e)
            raise ClusteringError("GNN clustering failed", cause=e) from e

        if result.metadata is None:
            result.metadata = ClusteringMetadata(
                algorithm=ClusteringAlgorithm.GNN.value,
                execution_time_ms=(time.perf_counter() - start) * 1000,
                convergence=True,
            )
        return result

    async def train_gnn_model(self, training_data: GNNTrainingData) -> GNNModelMetadata:
        """Train a GNN model remotely and remember its id for later GNN calls."""
        if not training_data.embeddings:
            raise InvalidArgumentError("training_data must contain at least one embedding")
        try:
            metadata = await self.analytics.train_gnn_model(training_data)
        except InvalidArgumentError:
            raise
        except Exception as e:
            logger.error("GNN training failed: %s", e)
            raise ClusteringError("GNN training failed", cause=e) from e

        self.gnn_model_id = metadata.model_id
        logger.info("Using GNN model %s", metadata.model_id)
        return metadata

    async def hierarchical_cluster(
        self, embedding_ids: Sequence[str], config: ConfigLike = None
    ) -> List[HierarchicalCluster]:
        """Return the clusters of a hierarchical cut (``num_clusters`` of them)."""
        cfg = self._resolve_config(config)
        ids = self._require_ids(embedding_ids)
        try:
            X = await self._fetch_matrix(ids)
            return hierarchical_cluster(ids, X, self._num_clusters(cfg, len(ids)), cfg.linkage)
        except (InvalidArgumentError, ClusteringError):
            raise
        except Exception as e:
            raise ClusteringError("Hierarchical clustering failed", cause=e) from e

    async def build_hierarchy(
        self, embedding_ids: Sequence[str], linkage: Union[Linkage, str, None] = None
    ) -> ClusterTree:
        """Return the full merge tree over *embedding_ids*."""
        linkage = Linkage.parse(linkage)
        ids = self._require_ids(embedding_ids)
        try:
            X = await self._fetch_matrix(ids)
            return build_hierarchy(ids, X, linkage)
        except (InvalidArgumentError, ClusteringError):
            raise
        except Exception as e:
            raise ClusteringError("Hierarchy construction failed", cause=e) from e

    def cluster_by_similarity(
        self,
        embeddings: Union[Mapping[str, Any], Sequence[Embedding]],
        threshold: Optional[float] = None,
    ) -> List[Cluster]:
        """
        Legacy single-pass threshold clustering over vectors already in hand.

        Args:
            embeddings: Mapping of id to vector (or ``Embedding``), or a
                        sequence of ``Embedding``
            threshold: Minimum cosine similarity to a cluster's running
                       centroid for joining it. Defaults to
                       ``defaults.similarity_threshold``.
        """
        if threshold is None:
            threshold = self.defaults.similarity_threshold
        if not -1.0 <= threshold <= 1.0:
            raise InvalidArgumentError(f"threshold must be in [-1, 1], got {threshold}")

        if isinstance(embeddings, Mapping):
            ids = [str(k) for k in embeddings]
            vectors = [
                v.vector if isinstance(v, Embedding) else v for v in embeddings.values()
            ]
        else:
            ids = [e.id for e in embeddings]
            vectors = [e.vector for e in embeddings]

        if not ids:
            return []
        try:
            return threshold_cluster(ids, vectors, threshold)
        except InvalidArgumentError:
            raise
        except Exception as e:
            raise ClusteringError("Similarity clustering failed", cause=e) from e

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze_cluster(self, cluster_id: str) -> ClusterAnalysis:
        """Fetch server-side statistics for a stored cluster."""
        if not cluster_id:
            raise InvalidArgumentError("cluster_id must not be empty")
        try:
            return await self.analytics.analyze_cluster(cluster_id)
        except InvalidArgumentError:
            raise
        except Exception as e:
            raise ClusteringError(f"Failed to analyze cluster {cluster_id}", cause=e) from e

    async def describe_cluster(self, cluster: Cluster, representatives: Optional[int] = None) -> ClusterAnalysis:
        """Compute the same statistics as ``analyze_cluster`` locally."""
        ids = self._require_ids(cluster.members)
        count = representatives if representatives is not None else self.defaults.theme_representatives
        try:
            embeddings = await self._fetch_embeddings(ids)
        except (InvalidArgumentError, ClusteringError):
            raise
        except Exception as e:
            raise ClusteringError(f"Failed to describe cluster {cluster.id}", cause=e) from e

        by_id = {e.id: e for e in embeddings}
        return ClusterAnalysis(
            cluster_id=cluster.id,
            statistics=cluster_statistics([e.vector for e in embeddings]),
            representatives=[e.id for e in select_representatives(cluster, by_id, count)],
        )

    async def get_cluster_visualization(self, result: ClusteringResult, method: str = "umap") -> ClusterVisualization:
        """
        Lay out a clustering result in 2D.

        Uses the remote projection when it succeeds within
        ``remote_timeout`` and covers every member; otherwise falls back to
        ``circular_layout``. Remote failures never propagate.
        """
        clusters = result.clusters
        member_ids = [m for c in clusters for m in c.members]
        edges = calculate_edges(clusters)

        if not member_ids:
            return ClusterVisualization(edges=edges, projection="circular")

        outcome = await call_remote(
            lambda: self.analytics.project_2d(member_ids, method),
            self.remote_timeout,
            "project_2d",
        )

        nodes = None
        projection = "remote"
        if outcome.ok:
            projected, missing = projected_nodes(clusters, outcome.value or [])
            if missing:
                logger.warning(
                    "Projection missed %d of %d members, using circular layout",
                    len(missing),
                    len(member_ids),
                )
            else:
                nodes = projected

        if nodes is None:
            if not outcome.ok:
                logger.warning("Projection unavailable, using circular layout: %s", outcome.error)
            nodes = circular_layout(clusters)
            projection = "circular"

        return ClusterVisualization(
            nodes=nodes,
            edges=edges,
            cluster_centers=cluster_centers(nodes),
            projection=projection,
        )

    async def discover_themes(
        self,
        document_ids: Sequence[str],
        min_cluster_size: Optional[int] = None,
        config: ConfigLike = None,
        representatives: Optional[int] = None,
    ) -> List[ThemeDiscoveryResult]:
        """
        Cluster a document set and label each sufficiently large cluster.

        Args:
            document_ids: Documents whose embeddings are clustered
            min_cluster_size: Clusters smaller than this are skipped
                              (default 3)
            config: Clustering config; defaults to GNN clustering
            representatives: Members per cluster sent to the theme
                             extractor (default 3)

        Returns:
            One ``ThemeDiscoveryResult`` per qualifying cluster, largest
            cluster first. A cluster whose theme call fails gets the label
            ``"Theme <cluster id>"`` with its cohesion as confidence.
        """
        min_size = min_cluster_size if min_cluster_size is not None else self.defaults.theme_min_cluster_size
        count = representatives if representatives is not None else self.defaults.theme_representatives
        cfg = (
            self._resolve_config(config)
            if config is not None
            else ClusterConfig(algorithm=ClusteringAlgorithm.GNN)
        )

        result = await self.cluster_documents(document_ids, cfg)
        qualifying = [c for c in result.clusters if c.size >= min_size]
        if not qualifying:
            logger.info("No cluster reached %d members, no themes to extract", min_size)
            return []

        wanted = list(dict.fromkeys(m for c in qualifying for m in c.members))
        try:
            by_id = {e.id: e for e in await self.store.get_embeddings(wanted)}
        except InvalidArgumentError:
            raise
        except Exception as e:
            raise ClusteringError("Failed to load cluster members for theme extraction", cause=e) from e

        themes: List[ThemeDiscoveryResult] = []
        for cluster in qualifying:
            texts = [e.text for e in select_representatives(cluster, by_id, count)]
            outcome = await call_remote(
                lambda: self.theme_extractor.extract_theme(texts, cluster.size),
                self.remote_timeout,
                f"extract_theme[{cluster.id}]",
            )
            if outcome.ok:
                theme = outcome.value
                name, confidence, keywords = theme.name, theme.confidence, list(theme.keywords)
            else:
                logger.warning("Using fallback theme for %s: %s", cluster.id, outcome.error)
                name, confidence, keywords = f"Theme {cluster.id}", cluster.cohesion, []

            themes.append(
                ThemeDiscoveryResult(
                    theme=name,
                    cluster=cluster,
                    representative_texts=texts,
                    confidence=confidence,
                    keywords=keywords,
                )
            )

        themes.sort(key=lambda t: t.cluster.size, reverse=True)
        return themes

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run_local(self, ids: List[str], X: Array2D, cfg: ClusterConfig) -> ClusteringResult:
        algorithm = cfg.algorithm
        if algorithm is ClusteringAlgorithm.KMEANS:
            return kmeans_cluster(
                ids,
                X,
                self._num_clusters(cfg, len(ids)),
                max_iterations=cfg.max_iterations,
                seed=cfg.seed,
            )
        elif algorithm is ClusteringAlgorithm.HIERARCHICAL:
            clusters = hierarchical_cluster(ids, X, self._num_clusters(cfg, len(ids)), cfg.linkage)
            return flatten_hierarchy(clusters, ids, X)
        elif algorithm is ClusteringAlgorithm.DBSCAN:
            eps = 1.0 - cfg.min_similarity if cfg.min_similarity is not None else self.defaults.dbscan_eps
            return dbscan_cluster(ids, X, eps=eps, min_pts=self.defaults.dbscan_min_points)
        raise ClusteringError(f"No local engine for algorithm {algorithm.value!r}")

    def _num_clusters(self, cfg: ClusterConfig, n: int) -> int:
        if cfg.num_clusters is not None:
            return cfg.num_clusters
        return estimate_num_clusters(n, self.defaults.min_default_clusters, self.defaults.max_default_clusters)

    def _resolve_config(self, config: ConfigLike) -> ClusterConfig:
        if config is None:
            return ClusterConfig(max_iterations=self.defaults.max_iterations)
        if isinstance(config, ClusterConfig):
            return config
        if isinstance(config, Mapping):
            return ClusterConfig.from_dict(
                config, defaults={"max_iterations": self.defaults.max_iterations}
            )
        raise InvalidArgumentError(
            f"config must be a ClusterConfig or a mapping, got {type(config).__name__}"
        )

    @staticmethod
    def _require_ids(embedding_ids: Sequence[str]) -> List[str]:
        if isinstance(embedding_ids, str):
            raise InvalidArgumentError("embedding_ids must be a sequence of ids, not a string")
        ids = list(dict.fromkeys(embedding_ids or []))
        if not ids:
            raise InvalidArgumentError("embedding_ids must not be empty")
        return ids

    async def _fetch_embeddings(self, ids: List[str]) -> List[Embedding]:
        """Fetch *ids* in order; any id the store does not know is an error."""
        embeddings = await self.store.get_embeddings(ids)
        by_id: Dict[str, Embedding] = {e.id: e for e in embeddings}
        missing = [i for i in ids if i not in by_id]
        if missing:
            preview = ", ".join(missing[:5]) + (" ..." if len(missing) > 5 else "")
            raise InvalidArgumentError(
                f"{len(missing)} embedding id(s) not found: {preview}",
                details={"missing": missing},
            )
        return [by_id[i] for i in ids]

    async def _fetch_matrix(self, ids: List[str]) -> Array2D:
        embeddings = await self._fetch_embeddings(ids)
        return as_matrix([e.vector for e in embeddings])

    async def close(self) -> None:
        await self.store.close()
        await self.analytics.close()

    async def __aenter__(self) -> "ClusterService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
