"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from bulletin_rag.errors import VectorStoreError
from bulletin_rag.retrieval.base import VectorStoreBase
from bulletin_rag.retrieval.models import CollectionHandle, QueryHit

if TYPE_CHECKING:
    from bulletin_rag.config import Settings

logger = logging.getLogger(__name__)

_CONNECTIVITY_HINTS = ("connect", "refused", "timed out", "timeout", "unreachable", "name or service")


def _is_connectivity_error(exc: BaseException) -> bool:
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return True
    text = f"{type(exc).__name__} {exc}".lower()
    return any(hint in text for hint in _CONNECTIVITY_HINTS)


def _flatten_metadata(metadata: dict[str, Any]) -> dict[str, str | int | float | bool]:
    """Chroma metadata values must be flat str / int / float / bool."""
    return {k: v for k, v in metadata.items() if isinstance(v, (str, int, float, bool))}


def _first(results: Any, key: str) -> list[Any]:
    """Unwrap the single-query row of a Chroma ``QueryResult`` field."""
    rows = results.get(key) or [[]]
    return list(rows[0] or [])


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store.

    Parameters
    ----------
    settings:
        Supplies ``chroma_host`` / ``chroma_port``.
    client:
        Pre-built Chroma client (tests inject a mock).  When ``None`` a
        ``chromadb.HttpClient`` is created.
    """

    def __init__(self, settings: Settings, *, client: Any = None) -> None:
        self._host = settings.chroma_host
        self._port = settings.chroma_port
        if client is None:
            import chromadb

            try:
                client = chromadb.HttpClient(host=self._host, port=self._port)
            except Exception as exc:
                raise VectorStoreError(
                    f"Cannot connect to Chroma at {self._host}:{self._port}: {exc}",
                    unreachable=True,
                    original_error=exc,
                ) from exc
        self._client = client

    @property
    def address(self) -> str:
        return f"{self._host}:{self._port}"

    # -- VectorStoreBase overrides --------------------------------------------

    def ensure_collection(
        self,
        name: str,
        distance_metric: str = "cosine",
        metadata: dict[str, Any] | None = None,
    ) -> CollectionHandle:
        try:
            self._client.heartbeat()
        except Exception as exc:
            raise VectorStoreError(
                f"Cannot connect to Chroma at {self.address}. Make sure the server is running "
                f"and accessible.",
                unreachable=True,
                original_error=exc,
            ) from exc

        created = False
        try:
            collection = self._client.get_collection(name=name)
            logger.info("Using collection: %s", name)
        except Exception:
            logger.info("Collection %s not found; creating it (hnsw:space=%s)", name, distance_metric)
            try:
                collection = self._client.create_collection(
                    name=name,
                    metadata={"hnsw:space": distance_metric, **(metadata or {})},
                )
            except Exception as exc:
                raise VectorStoreError(
                    f"Could not create collection {name!r}: {exc}",
                    unreachable=_is_connectivity_error(exc),
                    original_error=exc,
                ) from exc
            created = True

        collection_meta = dict(getattr(collection, "metadata", None) or {})
        handle = CollectionHandle(
            name=name,
            distance_metric=collection_meta.get("hnsw:space", distance_metric),
            metadata=collection_meta,
            created=created,
            backend=collection,
        )
        if not created:
            handle.dimension = self._existing_dimension(collection)
        return handle

    def get_collection(self, name: str) -> CollectionHandle | None:
        try:
            collection = self._client.get_collection(name=name)
        except Exception as exc:
            if _is_connectivity_error(exc):
                raise VectorStoreError(
                    f"Cannot connect to Chroma at {self.address}: {exc}",
                    unreachable=True,
                    original_error=exc,
                ) from exc
            logger.info("Collection %s does not exist", name)
            return None

        collection_meta = dict(getattr(collection, "metadata", None) or {})
        return CollectionHandle(
            name=name,
            distance_metric=collection_meta.get("hnsw:space", "l2"),
            metadata=collection_meta,
            backend=collection,
        )

    def delete_collection(self, name: str) -> None:
        try:
            self._client.delete_collection(name=name)
            logger.info("Deleted collection: %s", name)
        except Exception as exc:
            if _is_connectivity_error(exc):
                raise VectorStoreError(
                    f"Could not delete collection {name!r}: {exc}",
                    unreachable=True,
                    original_error=exc,
                ) from exc
            logger.info("Collection %s did not exist; nothing to delete", name)

    def upsert(
        self,
        handle: CollectionHandle,
        id: str,
        embedding: list[float],
        text: str,
        metadata: dict[str, Any],
    ) -> None:
        try:
            handle.backend.upsert(
                ids=[id],
                embeddings=[embedding],
                documents=[text],
                metadatas=[_flatten_metadata(metadata)],
            )
        except Exception as exc:
            raise VectorStoreError(
                f"Upsert of {id!r} into {handle.name!r} failed: {exc}",
                unreachable=_is_connectivity_error(exc),
                original_error=exc,
            ) from exc

    def query(
        self,
        handle: CollectionHandle,
        query: str | list[float],
        top_k: int = 5,
    ) -> list[QueryHit]:
        if self.count(handle) == 0:
            return []

        kwargs: dict[str, Any] = {
            "n_results": top_k,
            "include": ["documents", "metadatas", "distances"],
        }
        if isinstance(query, str):
            kwargs["query_texts"] = [query]
        else:
            kwargs["query_embeddings"] = [query]

        try:
            results = handle.backend.query(**kwargs)
        except Exception as exc:
            raise VectorStoreError(
                f"Query against {handle.name!r} failed: {exc}",
                unreachable=_is_connectivity_error(exc),
                original_error=exc,
            ) from exc

        ids = _first(results, "ids")
        docs = _first(results, "documents")
        metas = _first(results, "metadatas")
        distances = _first(results, "distances")

        hits: list[QueryHit] = []
        for i, doc_id in enumerate(ids):
            hits.append(
                QueryHit(
                    id=doc_id,
                    text=(docs[i] if i < len(docs) else None) or "",
                    metadata=(metas[i] if i < len(metas) else None) or {},
                    distance=distances[i] if i < len(distances) else None,
                )
            )
        return hits

    def count(self, handle: CollectionHandle) -> int:
        try:
            return int(handle.backend.count())
        except Exception as exc:
            raise VectorStoreError(
                f"Could not count {handle.name!r}: {exc}",
                unreachable=_is_connectivity_error(exc),
                original_error=exc,
            ) from exc

    def peek(self, handle: CollectionHandle, limit: int = 3) -> list[QueryHit]:
        try:
            results = handle.backend.get(limit=limit, include=["documents", "metadatas"])
        except Exception as exc:
            raise VectorStoreError(
                f"Could not read samples from {handle.name!r}: {exc}",
                unreachable=_is_connectivity_error(exc),
                original_error=exc,
            ) from exc

        ids = list(results.get("ids") or [])
        docs = list(results.get("documents") or [])
        metas = list(results.get("metadatas") or [])
        return [
            QueryHit(
                id=doc_id,
                text=(docs[i] if i < len(docs) else None) or "",
                metadata=(metas[i] if i < len(metas) else None) or {},
            )
            for i, doc_id in enumerate(ids)
        ]

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False

    # -- internals ------------------------------------------------------------

    @staticmethod
    def _existing_dimension(collection: Any) -> int | None:
        """Learn the embedding length from one stored record, if any."""
        try:
            sample = collection.peek(limit=1)
        except Exception:
            logger.debug("Could not peek collection to learn its dimension", exc_info=True)
            return None
        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return None
        return len(embeddings[0])
