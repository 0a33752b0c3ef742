"""
Retrieval — vector-store gateway and semantic search.

Public surface
--------------
- :class:`VectorStoreBase` — abstract backend.
- :class:`ChromaVectorStore` — default Chroma backend.
- :class:`CollectionHandle`, :class:`QueryHit`, :class:`SearchOutcome` — data models.
- :class:`SearchService` — query validation and strategy fallback.
"""

from bulletin_rag.retrieval.base import VectorStoreBase
from bulletin_rag.retrieval.models import CollectionHandle, QueryHit, SearchOutcome
from bulletin_rag.retrieval.search import (
    EmbeddingQueryStrategy,
    QueryStrategy,
    SearchService,
    TextQueryStrategy,
)

__all__ = [
    "ChromaVectorStore",
    "CollectionHandle",
    "EmbeddingQueryStrategy",
    "QueryHit",
    "QueryStrategy",
    "SearchOutcome",
    "SearchService",
    "TextQueryStrategy",
    "VectorStoreBase",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from bulletin_rag.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
