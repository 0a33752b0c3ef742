"""HTTP client for the external (Ollama-compatible) embedding service.

Wire contract::

    POST {embedding_base_url}{embedding_path}
    {"model": "<model>", "prompt": "<text>"}
    → 200 {"embedding": [0.01, -0.2, ...]}

No retries happen here; the ingestion worker owns the retry / backoff policy.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import requests

from bulletin_rag.errors import EmbeddingServiceError

if TYPE_CHECKING:
    from bulletin_rag.config import Settings

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """Turn one chunk of text into one embedding vector.

    Parameters
    ----------
    settings:
        Supplies the service URL, model identifier, truncation length and
        default request timeout.
    """

    def __init__(self, settings: Settings) -> None:
        self.url = settings.embedding_url
        self.base_url = settings.embedding_base_url.rstrip("/")
        self.model = settings.embedding_model
        self.max_chars = settings.embedding_max_chars
        self.default_timeout = settings.embedding_timeout

    def embed(self, text: str, *, timeout: float | None = None) -> list[float]:
        """Return the embedding for *text*.

        Text longer than ``max_chars`` is truncated before the request.

        Raises
        ------
        EmbeddingServiceError
            On a non-2xx response, a malformed body, or a transport failure
            (the latter with ``connectivity=True``).
        """
        prompt = text[: self.max_chars]
        try:
            resp = requests.post(
                self.url,
                json={"model": self.model, "prompt": prompt},
                timeout=timeout or self.default_timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise EmbeddingServiceError(
                f"Cannot reach embedding service at {self.url}: {exc}",
                connectivity=True,
                original_error=exc,
            ) from exc
        except requests.RequestException as exc:
            raise EmbeddingServiceError(
                f"Embedding request failed: {exc}", original_error=exc
            ) from exc

        if not resp.ok:
            raise EmbeddingServiceError(
                f"Embedding service returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise EmbeddingServiceError(
                "Embedding service returned invalid JSON",
                status_code=resp.status_code,
                body=resp.text,
                original_error=exc,
            ) from exc

        embedding = payload.get("embedding") if isinstance(payload, dict) else None
        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingServiceError(
                "Embedding service response has no 'embedding' vector",
                status_code=resp.status_code,
                body=resp.text,
            )
        if not all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in embedding):
            raise EmbeddingServiceError(
                "Embedding service returned a non-numeric 'embedding' vector",
                status_code=resp.status_code,
                body=resp.text,
            )
        return [float(x) for x in embedding]

    def health_check(self) -> bool:
        """Return ``True`` when the service answers ``GET /api/tags``."""
        try:
            resp = requests.get(f"{self.base_url}/api/tags", timeout=self.default_timeout)
            resp.raise_for_status()
            return True
        except requests.RequestException:
            logger.warning("Embedding service health-check failed", exc_info=True)
            return False

    def available_models(self) -> list[str]:
        """Model names reported by the service (empty if it is unreachable)."""
        try:
            resp = requests.get(f"{self.base_url}/api/tags", timeout=self.default_timeout)
            resp.raise_for_status()
            return [m.get("name", "") for m in resp.json().get("models", [])]
        except (requests.RequestException, ValueError):
            logger.warning("Could not list embedding models", exc_info=True)
            return []
