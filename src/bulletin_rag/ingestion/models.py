"""Domain models for source documents, chunks, and run statistics."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

MetadataValue = Union[str, int, float, bool]


class SourceDocument(BaseModel):
    """A raw text document read once from the source directory.

    Attributes
    ----------
    source:
        Filename without extension; becomes the chunk-id prefix and the
        ``source`` metadata field.
    text:
        Raw (unsanitised) file content.
    """

    model_config = ConfigDict(frozen=True)

    source: str
    text: str


class Chunk(BaseModel):
    """A bounded unit of a document's text, carried through embedding and storage.

    The ``id`` is derived from the source name and the chunk's sequence
    index, so re-ingesting the same document upserts rather than duplicates.
    """

    id: str
    text: str = Field(min_length=1)
    index: int = Field(ge=0)
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)

    @field_validator("metadata")
    @classmethod
    def _require_source(cls, value: dict[str, MetadataValue]) -> dict[str, MetadataValue]:
        if "source" not in value:
            raise ValueError("chunk metadata must include 'source'")
        return value


class ChunkOutcome(BaseModel):
    """Result of one embed → upsert attempt."""

    chunk_id: str
    success: bool
    error: str | None = None


@dataclass
class DocumentStats:
    """Per-document counters.

    ``skipped`` counts chunks never attempted because the run was cancelled;
    ``error`` is set when the document failed as a whole (e.g. unreadable).
    """

    source: str
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    error: str | None = None


class RunSummary(BaseModel):
    """Read-only view of :class:`RunStatistics` at a point in time."""

    documents: int
    total_chunks: int
    succeeded: int
    failed: int
    skipped: int
    groups_completed: int
    per_document: dict[str, DocumentStats]

    def __str__(self) -> str:  # noqa: D105
        return (
            f"{self.succeeded}/{self.total_chunks} chunks added, {self.failed} failed, "
            f"{self.skipped} skipped across {self.documents} documents"
        )


@dataclass
class RunStatistics:
    """Success / failure counts per document and in aggregate.

    Mutated concurrently by document tasks; every update goes through a
    single lock.  Aggregates are sums of per-document counters, so they do
    not depend on the order in which tasks complete.
    """

    _per_document: dict[str, DocumentStats] = field(default_factory=dict)
    _groups_completed: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _doc(self, source: str) -> DocumentStats:
        stats = self._per_document.get(source)
        if stats is None:
            stats = self._per_document[source] = DocumentStats(source=source)
        return stats

    def start_document(self, source: str, total: int) -> None:
        with self._lock:
            self._doc(source).total = total

    def record_success(self, source: str) -> None:
        with self._lock:
            self._doc(source).succeeded += 1

    def record_failure(self, source: str) -> None:
        with self._lock:
            self._doc(source).failed += 1

    def record_skipped(self, source: str, count: int) -> None:
        with self._lock:
            self._doc(source).skipped += count

    def record_document_error(self, source: str, error: str) -> None:
        with self._lock:
            self._doc(source).error = error

    def complete_group(self) -> None:
        with self._lock:
            self._groups_completed += 1

    def document(self, source: str) -> DocumentStats:
        """Return a copy of one document's counters."""
        with self._lock:
            stats = self._doc(source)
            return DocumentStats(**vars(stats))

    def snapshot(self) -> RunSummary:
        with self._lock:
            per_document = {k: DocumentStats(**vars(v)) for k, v in self._per_document.items()}
            groups = self._groups_completed
        return RunSummary(
            documents=len(per_document),
            total_chunks=sum(d.total for d in per_document.values()),
            succeeded=sum(d.succeeded for d in per_document.values()),
            failed=sum(d.failed for d in per_document.values()),
            skipped=sum(d.skipped for d in per_document.values()),
            groups_completed=groups,
            per_document=per_document,
        )
