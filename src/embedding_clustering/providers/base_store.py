"""
Base class for embedding store abstraction.

The clustering facade never talks to a vector database directly; it goes
through this interface so the same code runs against the HTTP vector
service, an in-memory store in tests, or anything else that can hand back
vectors by id.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from ..models import Embedding


class BaseEmbeddingStore(ABC):
    """
    Abstract base class for embedding stores.

    Implementations resolve ids to ``Embedding`` objects and resolve
    documents or namespaces to embedding ids.
    """

    @abstractmethod
    async def get_embeddings(self, embedding_ids: Sequence[str]) -> List[Embedding]:
        """
        Batch-get embeddings by id.

        Args:
            embedding_ids: Ids to fetch.

        Returns:
            The embeddings that exist, in the order of *embedding_ids*.
            Unknown ids are omitted; the caller decides whether that is an
            error.
        """

    @abstractmethod
    async def get_ids_by_documents(self, document_ids: Sequence[str]) -> List[str]:
        """Return the ids of all embeddings that belong to *document_ids*."""

    @abstractmethod
    async def get_ids_by_namespace(self, namespace: str) -> List[str]:
        """Return the ids of all embeddings in *namespace*."""

    async def close(self) -> None:
        """Release any underlying resources. No-op by default."""

    # Context-manager support
    async def __aenter__(self) -> "BaseEmbeddingStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
