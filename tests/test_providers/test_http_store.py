"""
Tests for HttpEmbeddingStore against a mock transport.
"""

import json

import httpx
import pytest

from embedding_clustering.config import AnalyticsServiceConfig
from embedding_clustering.exceptions import RemoteServiceError
from embedding_clustering.providers.http_client import AnalyticsHttpClient
from embedding_clustering.providers.http_store import HttpEmbeddingStore


def _store(table):
    """Store whose transport answers ``(method, path)`` from *table* and records requests."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        seen.append((request.method, request.url.path, body, dict(request.url.params)))
        return httpx.Response(200, json=table[(request.method, request.url.path)])

    client = AnalyticsHttpClient(
        AnalyticsServiceConfig(retry_delay=0), transport=httpx.MockTransport(handler)
    )
    return HttpEmbeddingStore(client), seen


@pytest.mark.asyncio
async def test_get_embeddings_keeps_request_order_and_omits_unknown():
    store, seen = _store({
        ("POST", "/v1/vector/batch-get"): {
            "embeddings": [
                {"id": "b", "vector": [0, 1], "text": "bee", "metadata": {"documentId": "d1"}},
                {"id": "a", "vector": [1, 0]},
            ]
        }
    })

    embeddings = await store.get_embeddings(["a", "missing", "b"])

    assert [e.id for e in embeddings] == ["a", "b"]
    assert embeddings[0].vector == [1, 0]
    assert embeddings[1].document_id == "d1"
    assert embeddings[1].text == "bee"
    assert seen[0][:3] == ("POST", "/v1/vector/batch-get", {"ids": ["a", "missing", "b"]})


@pytest.mark.asyncio
async def test_get_ids_by_documents_sends_metadata_filter():
    store, seen = _store({("POST", "/v1/vector/query-by-metadata"): {"embedding_ids": ["a", 7]}})

    assert await store.get_ids_by_documents(["d1", "d2"]) == ["a", "7"]
    assert seen[0][2] == {"filter": {"documentId": {"$in": ["d1", "d2"]}}}


@pytest.mark.asyncio
async def test_get_ids_by_namespace_passes_query_param():
    store, seen = _store({("GET", "/v1/vector/list"): {"embedding_ids": ["c"]}})

    assert await store.get_ids_by_namespace("docs") == ["c"]
    assert seen[0][3] == {"namespace": "docs"}


@pytest.mark.asyncio
async def test_malformed_batch_get_is_remote_service_error():
    store, _ = _store({("POST", "/v1/vector/batch-get"): {"items": []}})
    with pytest.raises(RemoteServiceError):
        await store.get_embeddings(["a"])


@pytest.mark.asyncio
async def test_malformed_id_list_is_remote_service_error():
    store, _ = _store({
        ("GET", "/v1/vector/list"): {"ids": ["c"]},
        ("POST", "/v1/vector/query-by-metadata"): {"embedding_ids": None},
    })
    with pytest.raises(RemoteServiceError):
        await store.get_ids_by_namespace("docs")
    with pytest.raises(RemoteServiceError):
        await store.get_ids_by_documents(["d1"])
