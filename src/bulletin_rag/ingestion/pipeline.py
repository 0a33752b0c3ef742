"""End-to-end ingestion run: load → ensure collection → chunk / embed / upsert.

Usage::

    from bulletin_rag.config import Settings
    from bulletin_rag.ingestion.pipeline import run_ingestion

    summary = run_ingestion(Settings(source_dir="public/bulletin"))
    print(summary)

Setup failures (unreachable store, missing source directory, chunking
strategy mismatch) raise before any chunk is attempted.  Per-chunk failures
only show up in the returned :class:`RunSummary`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bulletin_rag.errors import BulletinRagError, ConfigurationError, VectorStoreError
from bulletin_rag.ingestion.cancellation import CancellationToken
from bulletin_rag.ingestion.chunker import get_chunker
from bulletin_rag.ingestion.embedder import EmbeddingClient
from bulletin_rag.ingestion.loader import load_documents
from bulletin_rag.ingestion.models import RunStatistics, RunSummary
from bulletin_rag.ingestion.scheduler import BatchScheduler, ProgressCallback
from bulletin_rag.ingestion.worker import Embedder, IngestionWorker

if TYPE_CHECKING:
    from bulletin_rag.config import Settings
    from bulletin_rag.retrieval.base import VectorStoreBase
    from bulletin_rag.retrieval.models import CollectionHandle

logger = logging.getLogger(__name__)

VERIFY_QUERY = "course information"


def prepare_collection(
    store: VectorStoreBase,
    settings: Settings,
    *,
    reset: bool = False,
) -> CollectionHandle:
    """Get or create the target collection and check it matches the chunking strategy.

    Fixed-stride and semantic chunk ids differ for the same source, so mixing
    strategies in one collection would leave stale chunks behind.  The
    strategy is recorded in the collection metadata; a mismatch is fatal
    unless *reset* is given, which drops and recreates the collection.
    """
    metadata = {"chunking_strategy": settings.chunk_strategy}
    if reset:
        logger.info("Resetting collection %s", settings.chroma_collection)
        store.delete_collection(settings.chroma_collection)

    handle = store.ensure_collection(
        settings.chroma_collection,
        distance_metric=settings.distance_metric,
        metadata=metadata,
    )

    existing = handle.metadata.get("chunking_strategy")
    if existing is not None and existing != settings.chunk_strategy:
        raise ConfigurationError(
            f"Collection {handle.name!r} was built with chunking strategy {existing!r}, "
            f"not {settings.chunk_strategy!r}. Re-run with --reset to rebuild it.",
            details={"collection": handle.name, "existing": existing},
        )
    return handle


def verify_collection(store: VectorStoreBase, handle: CollectionHandle, embedder: Embedder) -> None:
    """Run one sample query and log the metadata of the hits."""
    logger.info("Running query to check metadata extraction quality...")
    try:
        hits = store.query(handle, embedder.embed(VERIFY_QUERY), top_k=5)
    except BulletinRagError as exc:
        logger.error("Error running sample query: %s", exc)
        return
    for i, hit in enumerate(hits, 1):
        logger.info("Document %d: %s", i, ", ".join(f"{k}={v}" for k, v in hit.metadata.items()))


def run_ingestion(
    settings: Settings,
    *,
    store: VectorStoreBase | None = None,
    embedder: Embedder | None = None,
    token: CancellationToken | None = None,
    reset: bool = False,
    verify: bool = False,
    progress: ProgressCallback | None = None,
) -> RunSummary:
    """Ingest every source document configured in *settings*.

    Parameters
    ----------
    settings:
        Run configuration.
    store / embedder:
        Injected collaborators; default to Chroma and the HTTP embedding
        client built from *settings*.
    token:
        Cancellation token; by default one honouring ``settings.run_timeout``.
    reset:
        Drop and recreate the collection first.
    verify:
        Run a sample query after ingestion and log hit metadata.
    progress:
        Called with a :class:`RunSummary` after each document group.
    """
    documents = load_documents(settings.source_dir, settings.source_glob)

    if store is None:
        from bulletin_rag.retrieval.chroma_store import ChromaVectorStore

        store = ChromaVectorStore(settings)
    embedder = embedder or EmbeddingClient(settings)
    token = token or CancellationToken(settings.run_timeout)

    try:
        handle = prepare_collection(store, settings, reset=reset)
    except VectorStoreError:
        logger.error("Run setup failed: vector store unavailable")
        raise

    stats = RunStatistics()
    worker = IngestionWorker(
        embedder,
        store,
        stats,
        delay_seconds=settings.delay_seconds,
        token=token,
    )
    scheduler = BatchScheduler(
        get_chunker(settings),
        worker,
        concurrency=settings.concurrency,
        progress=progress,
    )
    summary = scheduler.run(documents, handle)

    if verify:
        verify_collection(store, handle, embedder)
    return summary
