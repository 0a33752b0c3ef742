"""Per-chunk ingestion: embed → upsert, with best-effort error handling.

A single chunk's failure never aborts its document or the run: it is
counted, logged with a truncated message, and the worker moves on after a
(longer) pause.  Only :class:`~bulletin_rag.errors.ConfigurationError`
escapes, because nothing written after it would be usable.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from bulletin_rag.errors import ConfigurationError, EmbeddingServiceError, VectorStoreError
from bulletin_rag.ingestion.cancellation import CancellationToken
from bulletin_rag.ingestion.models import Chunk, ChunkOutcome, DocumentStats, RunStatistics

if TYPE_CHECKING:
    from bulletin_rag.retrieval.base import VectorStoreBase
    from bulletin_rag.retrieval.models import CollectionHandle

logger = logging.getLogger(__name__)

ERROR_PREVIEW_CHARS = 100
PROGRESS_EVERY = 20


class Embedder(Protocol):
    """Anything that can embed one string (see :class:`EmbeddingClient`)."""

    default_timeout: float

    def embed(self, text: str, *, timeout: float | None = None) -> list[float]: ...


class IngestionWorker:
    """Drive embed → upsert for the chunks of one document at a time.

    Parameters
    ----------
    embedder:
        Embedding client.
    store:
        Vector-store gateway.
    stats:
        Shared run statistics; updated after every attempt.
    delay_seconds:
        Pause after each attempt to respect the embedding service's rate
        limits.  Doubled after a failed attempt.
    token:
        Run-wide cancellation token; caps network timeouts and interrupts
        the pause.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStoreBase,
        stats: RunStatistics,
        *,
        delay_seconds: float = 0.15,
        token: CancellationToken | None = None,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.stats = stats
        self.delay_seconds = delay_seconds
        self.token = token or CancellationToken()

    def ingest(self, chunk: Chunk, handle: CollectionHandle) -> ChunkOutcome:
        """Embed and upsert one chunk; record and return the outcome.

        Raises
        ------
        ConfigurationError
            If the embedding's length does not match the collection.
        """
        source = str(chunk.metadata["source"])
        try:
            embedding = self.embedder.embed(
                chunk.text, timeout=self.token.timeout(self.embedder.default_timeout)
            )
            handle.check_dimension(embedding)
            self.store.upsert(handle, chunk.id, embedding, chunk.text, chunk.metadata)
        except ConfigurationError:
            self.stats.record_failure(source)
            raise
        except (EmbeddingServiceError, VectorStoreError) as exc:
            message = str(exc)[:ERROR_PREVIEW_CHARS]
            logger.warning("Chunk %s failed: %s", chunk.id, message)
            self.stats.record_failure(source)
            return ChunkOutcome(chunk_id=chunk.id, success=False, error=message)
        except Exception as exc:
            # Unexpected errors are still chunk-local.
            message = f"{type(exc).__name__}: {exc}"[:ERROR_PREVIEW_CHARS]
            logger.exception("Chunk %s failed unexpectedly", chunk.id)
            self.stats.record_failure(source)
            return ChunkOutcome(chunk_id=chunk.id, success=False, error=message)

        self.stats.record_success(source)
        return ChunkOutcome(chunk_id=chunk.id, success=True)

    def ingest_document(
        self,
        source: str,
        chunks: list[Chunk],
        handle: CollectionHandle,
    ) -> DocumentStats:
        """Ingest *chunks* strictly in order, pausing between attempts.

        Stops early (recording the rest as skipped) once the token is
        cancelled; an attempt already in flight is allowed to finish.
        """
        self.stats.start_document(source, len(chunks))
        for position, chunk in enumerate(chunks):
            if self.token.cancelled:
                remaining = len(chunks) - position
                logger.warning("Run cancelled; skipping %d remaining chunks of %s", remaining, source)
                self.stats.record_skipped(source, remaining)
                break

            outcome = self.ingest(chunk, handle)

            if (position + 1) % PROGRESS_EVERY == 0:
                logger.info("  %s: %d/%d chunks attempted", source, position + 1, len(chunks))

            delay = self.delay_seconds if outcome.success else self.delay_seconds * 2
            self.token.wait(delay)

        result = self.stats.document(source)
        logger.info("File %s: %d/%d chunks added", source, result.succeeded, result.total)
        return result
