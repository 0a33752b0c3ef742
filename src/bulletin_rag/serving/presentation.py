"""Presentation helpers for search results.

Distances come back from the store unchanged; turning them into something
a person reads is decided here, not in the gateway.
"""

from __future__ import annotations

from typing import Any

from bulletin_rag.retrieval.models import QueryHit


def relevance_percent(distance: float | None, metric: str) -> float | None:
    """Convert a store distance into a 0–100 relevance score.

    Precondition: *metric* is ``cosine`` and the store reports cosine
    distance normalised to ``[0, 1]``.  Under any other metric the formula
    ``(1 - distance) * 100`` silently mis-scales, so ``None`` is returned
    instead.
    """
    if distance is None or metric != "cosine":
        return None
    score = (1.0 - distance) * 100.0
    return round(min(100.0, max(0.0, score)), 1)


def hit_to_result(hit: QueryHit, metric: str) -> dict[str, Any]:
    """Shape one hit as the search endpoint's ``results[]`` entry."""
    return {
        "id": hit.id,
        "document": hit.text,
        "metadata": hit.metadata,
        "distance": hit.distance,
        "relevance": relevance_percent(hit.distance, metric),
    }
