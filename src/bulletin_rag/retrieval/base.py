"""Abstract base class for vector-store backends.

The ingestion pipeline and the search service talk only to
:class:`VectorStoreBase`.  Adding a backend means subclassing it and
implementing the abstract methods; Chroma is the default
(:mod:`bulletin_rag.retrieval.chroma_store`).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from bulletin_rag.retrieval.models import CollectionHandle, QueryHit


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store gateway.

    Implementations must wrap backend failures in
    :class:`~bulletin_rag.errors.VectorStoreError` (``unreachable=True`` when
    the store cannot be contacted).  They never reinterpret distances.
    """

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def ensure_collection(
        self,
        name: str,
        distance_metric: str = "cosine",
        metadata: dict[str, Any] | None = None,
    ) -> CollectionHandle:
        """Return the collection *name*, creating it with *distance_metric* if absent.

        Idempotent: calling it twice yields handles to the same collection.
        *metadata* is only applied when the collection is created.
        """
        ...

    @abstractmethod
    def get_collection(self, name: str) -> CollectionHandle | None:
        """Return the existing collection *name*, or ``None`` if there is none.

        Read-only: never creates the collection.
        """
        ...

    @abstractmethod
    def delete_collection(self, name: str) -> None:
        """Drop the collection *name* (no-op if it does not exist)."""
        ...

    @abstractmethod
    def upsert(
        self,
        handle: CollectionHandle,
        id: str,
        embedding: list[float],
        text: str,
        metadata: dict[str, Any],
    ) -> None:
        """Insert or replace the record keyed by *id*."""
        ...

    @abstractmethod
    def query(
        self,
        handle: CollectionHandle,
        query: str | list[float],
        top_k: int = 5,
    ) -> list[QueryHit]:
        """Return up to *top_k* hits ordered by the store's distance.

        *query* is either raw text (the store embeds it) or a pre-computed
        embedding.  An empty collection yields ``[]``.
        """
        ...

    @abstractmethod
    def count(self, handle: CollectionHandle) -> int:
        """Number of records in the collection."""
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...

    # -- optional overrides ---------------------------------------------------

    def peek(self, handle: CollectionHandle, limit: int = 3) -> list[QueryHit]:
        """Return a few stored records for inspection.  Optional; raises by default."""
        raise NotImplementedError(f"{type(self).__name__} does not support peek")
