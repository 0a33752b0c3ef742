"""Exception hierarchy for bulletin-rag.

Error categories
----------------
- :class:`ValidationError` — bad input (empty query, empty document set).
  Rejected before any network call.
- :class:`EmbeddingServiceError` — non-2xx or transport failure from the
  embedding service.  Chunk-local during ingestion.
- :class:`VectorStoreError` — collection create / upsert / query failure.
  Chunk-local during upsert, fatal during run setup.
- :class:`ConfigurationError` — e.g. embedding-dimension mismatch against an
  existing collection.  Always fatal.
"""

from __future__ import annotations

from typing import Any


class BulletinRagError(Exception):
    """Base exception for all bulletin-rag errors.

    Attributes
    ----------
    message:
        Human-readable error description.
    details:
        Additional context about the error.
    original_error:
        The underlying exception that caused this error, if any.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        base = self.message
        if self.details:
            base += f" | Details: {self.details}"
        return base


class ValidationError(BulletinRagError):
    """Missing or empty input, rejected before any network call."""


class ConfigurationError(BulletinRagError):
    """Fatal misconfiguration, e.g. mixing embedding dimensions in one collection."""


class EmbeddingServiceError(BulletinRagError):
    """The embedding service returned a non-2xx response or could not be reached.

    ``connectivity`` is ``True`` for transport failures (timeout, refused
    connection, DNS); ``status_code`` / ``body`` are set for HTTP failures.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
        connectivity: bool = False,
        original_error: Exception | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if body:
            details["body"] = body[:200]
        if connectivity:
            details["connectivity"] = True
        super().__init__(message, details=details, original_error=original_error)
        self.status_code = status_code
        self.body = body
        self.connectivity = connectivity


class VectorStoreError(BulletinRagError):
    """A vector-store operation failed.

    ``unreachable`` marks failures where the store itself could not be
    contacted, as opposed to a rejected request.
    """

    def __init__(
        self,
        message: str,
        *,
        unreachable: bool = False,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, details=details, original_error=original_error)
        self.unreachable = unreachable
