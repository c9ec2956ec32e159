"""
HTTP implementation of the embedding store.

Endpoints:
    POST /v1/vector/batch-get          embeddings by id
    POST /v1/vector/query-by-metadata  embedding ids by document
    GET  /v1/vector/list               embedding ids by namespace
"""

from typing import List, Sequence

from ..exceptions import RemoteServiceError
from ..models import Embedding
from .base_store import BaseEmbeddingStore
from .http_client import AnalyticsHttpClient


class HttpEmbeddingStore(BaseEmbeddingStore):
    """``BaseEmbeddingStore`` backed by the vector service HTTP API."""

    def __init__(self, client: AnalyticsHttpClient) -> None:
        self._client = client

    async def get_embeddings(self, embedding_ids: Sequence[str]) -> List[Embedding]:
        response = await self._client.request(
            "POST", "/v1/vector/batch-get", json={"ids": list(embedding_ids)}
        )
        try:
            by_id = {
                e.id: e for e in (Embedding.from_dict(raw) for raw in response["embeddings"])
            }
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteServiceError("Malformed batch-get response", details=e) from e
        return [by_id[i] for i in embedding_ids if i in by_id]

    async def get_ids_by_documents(self, document_ids: Sequence[str]) -> List[str]:
        response = await self._client.request(
            "POST",
            "/v1/vector/query-by-metadata",
            json={"filter": {"documentId": {"$in": list(document_ids)}}},
        )
        return self._embedding_ids(response)

    async def get_ids_by_namespace(self, namespace: str) -> List[str]:
        response = await self._client.request(
            "GET", "/v1/vector/list", params={"namespace": namespace}
        )
        return self._embedding_ids(response)

    @staticmethod
    def _embedding_ids(response) -> List[str]:
        try:
            return [str(i) for i in response["embedding_ids"]]
        except (KeyError, TypeError) as e:
            raise RemoteServiceError("Malformed embedding id list", details=e) from e

    async def close(self) -> None:
        await self._client.close()
