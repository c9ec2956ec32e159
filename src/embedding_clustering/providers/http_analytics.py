"""
HTTP implementation of the remote analytics service.

Endpoints:
    POST /v1/cluster/gnn            GNN clustering
    POST /v1/cluster/gnn/train      GNN training
    POST /v1/cluster/visualize      2D projection
    POST /v1/rag/extract-theme      theme / keyword extraction
    GET  /v1/cluster/{id}/analyze   cluster statistics
"""

from typing import Any, List, Mapping, Optional, Sequence

from ..exceptions import RemoteServiceError
from ..models import (
    ClusterAnalysis,
    ClusteringResult,
    GNNClusteringOptions,
    GNNModelMetadata,
    GNNTrainingData,
    ProjectedPoint,
    ThemeExtraction,
)
from ..utils.logging_config import get_logger
from .base_analytics import BaseAnalyticsService
from .http_client import AnalyticsHttpClient

logger = get_logger(__name__)


class HttpAnalyticsService(BaseAnalyticsService):
    """``BaseAnalyticsService`` backed by ``AnalyticsHttpClient``."""

    def __init__(self, client: AnalyticsHttpClient) -> None:
        self._client = client

    async def gnn_cluster(
        self,
        embedding_ids: Sequence[str],
        model_id: Optional[str] = None,
        options: Optional[GNNClusteringOptions] = None,
        gnn_config: Optional[Mapping[str, Any]] = None,
    ) -> ClusteringResult:
        options = options or GNNClusteringOptions()
        body = {"embedding_ids": list(embedding_ids), "model_id": model_id}
        body.update(options.to_payload())
        if gnn_config:
            body["gnn_config"] = dict(gnn_config)

        response = await self._client.request("POST", "/v1/cluster/gnn", json=body)
        try:
            return ClusteringResult.from_dict(response)
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteServiceError("Malformed GNN clustering response", details=e) from e

    async def train_gnn_model(self, training_data: GNNTrainingData) -> GNNModelMetadata:
        response = await self._client.request(
            "POST",
            "/v1/cluster/gnn/train",
            json={
                "embeddings": list(training_data.embeddings),
                "labels": list(training_data.labels),
                "validation_split": training_data.validation_split,
            },
        )
        try:
            metadata = GNNModelMetadata.from_dict(response.get("metadata") or {})
            # the top-level model_id is authoritative
            metadata.model_id = str(response["model_id"])
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise RemoteServiceError("Malformed GNN training response", details=e) from e
        logger.info("Trained GNN model %s (accuracy=%.3f)", metadata.model_id, metadata.accuracy)
        return metadata

    async def project_2d(self, embedding_ids: Sequence[str], method: str = "umap") -> List[ProjectedPoint]:
        response = await self._client.request(
            "POST",
            "/v1/cluster/visualize",
            json={"embedding_ids": list(embedding_ids), "method": method},
        )
        try:
            return [
                ProjectedPoint(
                    id=str(p["id"]),
                    x=float(p["x"]),
                    y=float(p["y"]),
                    importance=p.get("importance"),
                )
                for p in response["projections"]
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteServiceError("Malformed projection response", details=e) from e

    async def extract_theme(self, texts: Sequence[str], cluster_size: int) -> ThemeExtraction:
        response = await self._client.request(
            "POST",
            "/v1/rag/extract-theme",
            json={"texts": list(texts), "cluster_size": cluster_size},
        )
        try:
            return ThemeExtraction(
                name=str(response["theme"]),
                confidence=float(response.get("confidence", 0.0)),
                keywords=[str(k) for k in response.get("keywords", [])],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteServiceError("Malformed theme response", details=e) from e

    async def analyze_cluster(self, cluster_id: str) -> ClusterAnalysis:
        response = await self._client.request("GET", f"/v1/cluster/{cluster_id}/analyze")
        try:
            return ClusterAnalysis.from_dict(response)
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteServiceError("Malformed cluster analysis response", details=e) from e

    async def close(self) -> None:
        await self._client.close()
