"""Semantic search over the ingested collection.

Queries are answered by an ordered list of :class:`QueryStrategy` objects.
Each is tried in turn; the first that succeeds wins and failures fall
through to the next.  The default order is:

1. :class:`EmbeddingQueryStrategy` — embed the query with the same model
   used at ingestion, then search by vector.  Dimensions always match.
2. :class:`TextQueryStrategy` — hand the raw text to the store and let it
   embed with its own function.

Usage::

    service = SearchService.from_settings(settings)
    for hit in service.search("introductory programming courses").hits:
        print(hit.distance, hit.metadata.get("course_code"))
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from bulletin_rag.errors import BulletinRagError, ConfigurationError, ValidationError
from bulletin_rag.retrieval.models import CollectionHandle, QueryHit, SearchOutcome

if TYPE_CHECKING:
    from bulletin_rag.config import Settings
    from bulletin_rag.ingestion.worker import Embedder
    from bulletin_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


class QueryStrategy(ABC):
    """One way of turning a text query into ranked hits."""

    name: str = ""

    @abstractmethod
    def run(
        self,
        store: VectorStoreBase,
        handle: CollectionHandle,
        query: str,
        k: int,
    ) -> list[QueryHit]:
        ...


class EmbeddingQueryStrategy(QueryStrategy):
    """Embed the query client-side, then search by vector."""

    name = "embedding"

    def __init__(self, embedder: Embedder) -> None:
        self.embedder = embedder

    def run(self, store, handle, query, k):
        return store.query(handle, self.embedder.embed(query), top_k=k)


class TextQueryStrategy(QueryStrategy):
    """Let the store embed the query text itself."""

    name = "text"

    def run(self, store, handle, query, k):
        return store.query(handle, query, top_k=k)


class SearchService:
    """Validate a query and run it through the strategy chain.

    Parameters
    ----------
    store:
        Vector-store gateway.
    handle_provider:
        Returns the collection handle, or ``None`` when the collection does
        not exist yet.  Called per search so a collection created or reset
        after start-up is picked up.
    strategies:
        Ordered fallback chain.
    default_k:
        Number of results when the caller does not say.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        handle_provider: Callable[[], CollectionHandle | None],
        strategies: list[QueryStrategy],
        *,
        default_k: int = 5,
    ) -> None:
        if not strategies:
            raise ValueError("SearchService needs at least one query strategy")
        self.store = store
        self._handle_provider = handle_provider
        self.strategies = strategies
        self.default_k = default_k

    @classmethod
    def from_settings(cls, settings: Settings) -> SearchService:
        """Wire Chroma and the HTTP embedding client from *settings*."""
        from bulletin_rag.ingestion.embedder import EmbeddingClient
        from bulletin_rag.retrieval.chroma_store import ChromaVectorStore

        store = ChromaVectorStore(settings)
        embedder = EmbeddingClient(settings)

        def handle_provider() -> CollectionHandle | None:
            return store.get_collection(settings.chroma_collection)

        return cls(
            store,
            handle_provider,
            [EmbeddingQueryStrategy(embedder), TextQueryStrategy()],
            default_k=settings.search_top_k,
        )

    def search(self, query: str | None, *, k: int | None = None) -> SearchOutcome:
        """Return up to *k* hits for *query*.

        Raises
        ------
        ValidationError
            If *query* is missing or blank, or *k* is not positive.
        BulletinRagError
            The last strategy's error when every strategy fails.
        """
        if query is None or not query.strip():
            raise ValidationError("Query is required")
        k = self.default_k if k is None else k
        if k < 1:
            raise ValidationError(f"k must be positive, got {k}")

        query = query.strip()
        handle = self._handle_provider()
        if handle is None:
            logger.info("Collection does not exist yet; no results for %r", query)
            return SearchOutcome(query=query)
        return self.search_handle(handle, query, k)

    def search_handle(self, handle: CollectionHandle, query: str, k: int) -> SearchOutcome:
        """Try each strategy against *handle* until one succeeds."""
        last_error: BulletinRagError | None = None
        for strategy in self.strategies:
            try:
                hits = strategy.run(self.store, handle, query, k)
            except ValidationError:
                raise
            except BulletinRagError as exc:
                logger.warning("Query strategy %r failed, trying next: %s", strategy.name, exc)
                last_error = exc
                continue
            logger.info("Strategy %r returned %d results for %r", strategy.name, len(hits), query)
            return SearchOutcome(
                query=query,
                hits=hits,
                distance_metric=handle.distance_metric,
                strategy=strategy.name,
            )

        if last_error is None:
            raise ConfigurationError("SearchService has no query strategies")
        raise last_error
