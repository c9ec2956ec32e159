"""
In-memory embedding store.

Keeps embeddings in a dict, indexed by document and namespace. Useful for
tests, notebooks and small offline runs where the vectors are already in
hand.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from ..models import Embedding
from .base_store import BaseEmbeddingStore


class InMemoryEmbeddingStore(BaseEmbeddingStore):
    """Dict-backed ``BaseEmbeddingStore``."""

    def __init__(self, embeddings: Optional[Iterable[Embedding]] = None, namespace: str = "default"):
        self._embeddings: Dict[str, Embedding] = {}
        self._namespaces: Dict[str, List[str]] = defaultdict(list)
        self._default_namespace = namespace
        for embedding in embeddings or []:
            self.add(embedding)

    def add(self, embedding: Embedding, namespace: Optional[str] = None) -> None:
        """Insert or replace *embedding*, optionally under *namespace*."""
        namespace = namespace or embedding.metadata.get("namespace") or self._default_namespace
        if embedding.id not in self._embeddings:
            self._namespaces[namespace].append(embedding.id)
        self._embeddings[embedding.id] = embedding

    def __len__(self) -> int:
        return len(self._embeddings)

    async def get_embeddings(self, embedding_ids: Sequence[str]) -> List[Embedding]:
        return [self._embeddings[i] for i in embedding_ids if i in self._embeddings]

    async def get_ids_by_documents(self, document_ids: Sequence[str]) -> List[str]:
        wanted = set(document_ids)
        return [e.id for e in self._embeddings.values() if e.document_id in wanted]

    async def get_ids_by_namespace(self, namespace: str) -> List[str]:
        return list(self._namespaces.get(namespace, []))
