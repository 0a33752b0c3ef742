"""Domain models for vector-store collections and query results."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from bulletin_rag.errors import ConfigurationError


class QueryHit(BaseModel):
    """One ranked result returned by the vector store.

    ``distance`` is whatever the store reports (lower = more similar for
    cosine and l2).  It is passed through untouched; any conversion to a
    relevance score is a presentation concern.
    """

    id: str
    text: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    distance: float | None = None

    def __str__(self) -> str:  # noqa: D105
        source = self.metadata.get("source", "unknown")
        return f"[{source}§{self.id}] {self.text[:120]}…"


class SearchOutcome(BaseModel):
    """Hits for one query, with the context needed to present them."""

    query: str
    hits: list[QueryHit] = Field(default_factory=list)
    distance_metric: str = "cosine"
    strategy: str = ""


@dataclass
class CollectionHandle:
    """A named collection plus what is known about its contents.

    Attributes
    ----------
    name:
        Collection name in the store.
    distance_metric:
        Metric the collection was created with (``cosine`` | ``l2`` | ``ip``).
    metadata:
        Collection-level metadata (e.g. ``chunking_strategy``).
    dimension:
        Embedding length of the collection, learned from existing data or
        from the first upsert.  ``None`` until known.
    created:
        ``True`` when :meth:`ensure_collection` had to create it.
    backend:
        Store-specific collection object.
    """

    name: str
    distance_metric: str = "cosine"
    metadata: dict[str, Any] = field(default_factory=dict)
    dimension: int | None = None
    created: bool = False
    backend: Any = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def check_dimension(self, vector: list[float]) -> None:
        """Pin the collection's dimension on first use; reject any other length.

        Raises
        ------
        ConfigurationError
            If *vector* does not match the established dimension.
        """
        with self._lock:
            if self.dimension is None:
                self.dimension = len(vector)
                return
            if len(vector) != self.dimension:
                raise ConfigurationError(
                    f"Embedding dimension {len(vector)} does not match collection "
                    f"{self.name!r} dimension {self.dimension}",
                    details={"collection": self.name, "expected": self.dimension, "got": len(vector)},
                )
