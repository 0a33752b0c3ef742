"""Bounded-concurrency fan-out over source documents.

Documents are processed in successive groups of ``concurrency``.  Members
of a group run concurrently on a thread pool; the next group starts only
after the whole group has finished, so at most ``concurrency`` embedding
requests are in flight at any time.  Within one document, chunks are
ingested strictly in order by :class:`~bulletin_rag.ingestion.worker.IngestionWorker`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from bulletin_rag.errors import ConfigurationError, ValidationError
from bulletin_rag.ingestion.sanitize import sanitize

if TYPE_CHECKING:
    from bulletin_rag.ingestion.chunker import ChunkerBase
    from bulletin_rag.ingestion.models import DocumentStats, RunSummary, SourceDocument
    from bulletin_rag.ingestion.worker import IngestionWorker
    from bulletin_rag.retrieval.models import CollectionHandle

logger = logging.getLogger(__name__)

ProgressCallback = Callable[["RunSummary"], None]


def partition(items: Sequence, size: int) -> list[list]:
    """Split *items* into consecutive groups of at most *size*, keeping order."""
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class BatchScheduler:
    """Run chunking and ingestion for many documents with a concurrency cap.

    Parameters
    ----------
    chunker:
        Strategy used to split each sanitised document.
    worker:
        Shared ingestion worker; its ``stats`` and ``token`` are the run's.
    concurrency:
        Group size, i.e. the maximum number of documents processed at once.
    progress:
        Optional callback receiving a :class:`RunSummary` after each group.
    """

    def __init__(
        self,
        chunker: ChunkerBase,
        worker: IngestionWorker,
        *,
        concurrency: int = 3,
        progress: ProgressCallback | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValidationError(f"concurrency must be at least 1, got {concurrency}")
        self.chunker = chunker
        self.worker = worker
        self.concurrency = concurrency
        self.progress = progress

    @property
    def stats(self):
        return self.worker.stats

    def run(self, documents: Sequence[SourceDocument], handle: CollectionHandle) -> RunSummary:
        """Ingest every document and return the final statistics.

        Raises
        ------
        ValidationError
            If *documents* is empty.
        ConfigurationError
            Propagated from any document; the run is cancelled first.
        """
        if not documents:
            raise ValidationError("No source documents to ingest")

        groups = partition(documents, self.concurrency)
        total_docs = len(documents)
        done_docs = 0
        logger.info(
            "Ingesting %d documents in %d groups (concurrency=%d)",
            total_docs,
            len(groups),
            self.concurrency,
        )

        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="ingest") as pool:
            for number, group in enumerate(groups, 1):
                logger.info("Processing batch %d/%d", number, len(groups))
                futures = [pool.submit(self._process, doc, handle) for doc in group]

                fatal: ConfigurationError | None = None
                for doc, future in zip(group, futures):
                    try:
                        future.result()
                    except ConfigurationError as exc:
                        self.worker.token.cancel()
                        fatal = fatal or exc
                    except KeyboardInterrupt:
                        # Let in-flight chunks finish, then stop every task.
                        self.worker.token.cancel()
                        raise
                    except Exception as exc:
                        logger.error("Error with file %s: %s", doc.source, exc, exc_info=True)
                        self.stats.record_document_error(doc.source, str(exc)[:200])

                self.stats.complete_group()
                done_docs += len(group)
                summary = self.stats.snapshot()
                logger.info(
                    "Overall: %d/%d chunks successful (%d%% files complete)",
                    summary.succeeded,
                    summary.total_chunks,
                    round(done_docs / total_docs * 100),
                )
                if self.progress is not None:
                    self.progress(summary)

                if fatal is not None:
                    raise fatal
                if self.worker.token.cancelled:
                    logger.warning("Run cancelled after batch %d/%d", number, len(groups))
                    break

        for doc in documents[done_docs:]:
            self.stats.start_document(doc.source, 0)
            self.stats.record_document_error(doc.source, "cancelled before start")

        summary = self.stats.snapshot()
        logger.info("Vectorization complete: %s", summary)
        return summary

    def _process(self, document: SourceDocument, handle: CollectionHandle) -> DocumentStats:
        """Sanitise, chunk and ingest one document inside a pool thread."""
        try:
            chunks = self.chunker.split(sanitize(document.text), document.source)
        except Exception as exc:
            # A malformed document must not take down its group.
            logger.error("Error with file %s: %s", document.source, exc, exc_info=True)
            self.stats.start_document(document.source, 0)
            self.stats.record_document_error(document.source, str(exc)[:200])
            return self.stats.document(document.source)

        logger.info("Processing %s: %d chunks", document.source, len(chunks))
        return self.worker.ingest_document(document.source, chunks, handle)
