"""FastAPI application exposing bulletin search as a REST API."""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from bulletin_rag import __version__
from bulletin_rag.config import settings
from bulletin_rag.errors import (
    BulletinRagError,
    EmbeddingServiceError,
    ValidationError,
    VectorStoreError,
)
from bulletin_rag.retrieval.search import SearchService
from bulletin_rag.serving.presentation import hit_to_result

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Bulletin Search API",
    version=__version__,
    description="Semantic search over ingested course-bulletin chunks.",
)


# ── Request / Response schemas ────────────────────────────────────────
class SearchRequest(BaseModel):
    """Incoming search query."""

    query: str | None = None
    k: int | None = None


class SearchResult(BaseModel):
    id: str
    document: str
    metadata: dict
    distance: float | None = None
    relevance: float | None = None


class SearchResponse(BaseModel):
    """Ranked results; ``relevance`` is only set for cosine collections."""

    results: list[SearchResult] = []


# ── Dependencies ──────────────────────────────────────────────────────
@lru_cache(maxsize=1)
def get_search_service() -> SearchService:
    return SearchService.from_settings(settings)


@lru_cache(maxsize=1)
def get_probes() -> dict[str, Callable[[], bool]]:
    """Readiness checks keyed by dependency name."""
    from bulletin_rag.ingestion.embedder import EmbeddingClient
    from bulletin_rag.retrieval.chroma_store import ChromaVectorStore

    def chroma_ok() -> bool:
        try:
            return ChromaVectorStore(settings).health_check()
        except VectorStoreError:
            return False

    return {
        "vector_store": chroma_ok,
        "embedding_service": EmbeddingClient(settings).health_check,
    }


# ── Error mapping ─────────────────────────────────────────────────────
def status_for(exc: Exception) -> int:
    """HTTP status for an exception raised while serving a request."""
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, VectorStoreError) and exc.unreachable:
        return 503
    if isinstance(exc, EmbeddingServiceError) and exc.connectivity:
        return 503
    return 500


@app.exception_handler(BulletinRagError)
async def _bulletin_error(request: Request, exc: BulletinRagError) -> JSONResponse:
    status = status_for(exc)
    logger.error("%s %s failed (%d): %s", request.method, request.url.path, status, exc)
    message = exc.message if status != 500 else f"Failed to perform search: {exc.message}"
    return JSONResponse(status_code=status, content={"error": message})


@app.exception_handler(RequestValidationError)
async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


@app.exception_handler(Exception)
async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.get("/ready")
def ready(probes: dict[str, Callable[[], bool]] = Depends(get_probes)) -> JSONResponse:
    """Readiness probe: 200 only when every downstream service answers."""
    checks = {name: probe() for name, probe in probes.items()}
    status = 200 if all(checks.values()) else 503
    return JSONResponse(
        status_code=status,
        content={"status": "ok" if status == 200 else "degraded", "checks": checks},
    )


@app.post("/search", response_model=SearchResponse)
def search(
    request: SearchRequest,
    service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    """Run a semantic search and return ranked bulletin chunks."""
    outcome = service.search(request.query, k=request.k)
    return SearchResponse(
        results=[SearchResult(**hit_to_result(h, outcome.distance_metric)) for h in outcome.hits]
    )
