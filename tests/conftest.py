"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import threading
from typing import Any

import pytest

from bulletin_rag.config import Settings
from bulletin_rag.errors import EmbeddingServiceError, VectorStoreError
from bulletin_rag.retrieval.base import VectorStoreBase
from bulletin_rag.retrieval.models import CollectionHandle, QueryHit


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes ──────────────────────────────────────────────────────────────


class FakeEmbeddingClient:
    """Deterministic embedder; texts containing any ``fail_on`` marker raise."""

    default_timeout = 5.0

    def __init__(self, dim: int = 4, fail_on: tuple[str, ...] = ()) -> None:
        self.dim = dim
        self.fail_on = fail_on
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def embed(self, text: str, *, timeout: float | None = None) -> list[float]:
        with self._lock:
            self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise EmbeddingServiceError("Embedding service returned HTTP 500", status_code=500)
        base = float(len(text) % 97)
        return [base + i for i in range(self.dim)]


class FakeVectorStore(VectorStoreBase):
    """In-memory store keyed by collection name, then record id."""

    def __init__(self, *, fail_upsert_ids: tuple[str, ...] = (), reachable: bool = True) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.collection_meta: dict[str, dict[str, Any]] = {}
        self.fail_upsert_ids = fail_upsert_ids
        self.reachable = reachable
        self.queries: list[str | list[float]] = []
        self._lock = threading.Lock()

    def ensure_collection(self, name, distance_metric="cosine", metadata=None):
        if not self.reachable:
            raise VectorStoreError("Cannot connect to Chroma", unreachable=True)
        created = name not in self.collections
        if created:
            self.collections[name] = {}
            self.collection_meta[name] = {"hnsw:space": distance_metric, **(metadata or {})}
        meta = self.collection_meta[name]
        records = self.collections[name]
        dimension = len(next(iter(records.values()))["embedding"]) if records else None
        return CollectionHandle(
            name=name,
            distance_metric=meta["hnsw:space"],
            metadata=dict(meta),
            dimension=dimension,
            created=created,
            backend=records,
        )

    def get_collection(self, name):
        if not self.reachable:
            raise VectorStoreError("Cannot connect to Chroma", unreachable=True)
        if name not in self.collections:
            return None
        meta = self.collection_meta[name]
        return CollectionHandle(
            name=name,
            distance_metric=meta["hnsw:space"],
            metadata=dict(meta),
            backend=self.collections[name],
        )

    def delete_collection(self, name):
        self.collections.pop(name, None)
        self.collection_meta.pop(name, None)

    def upsert(self, handle, id, embedding, text, metadata):
        if id in self.fail_upsert_ids:
            raise VectorStoreError(f"Upsert of {id!r} failed")
        with self._lock:
            handle.backend[id] = {"embedding": embedding, "text": text, "metadata": dict(metadata)}

    def query(self, handle, query, top_k=5):
        if not self.reachable:
            raise VectorStoreError("Cannot connect to Chroma", unreachable=True)
        self.queries.append(query)
        hits = [
            QueryHit(id=rid, text=rec["text"], metadata=rec["metadata"], distance=0.1 * i)
            for i, (rid, rec) in enumerate(sorted(handle.backend.items()))
        ]
        return hits[:top_k]

    def count(self, handle):
        return len(handle.backend)

    def peek(self, handle, limit=3):
        return self.query(handle, "", top_k=limit)

    def health_check(self):
        return self.reachable


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        source_dir=str(tmp_path / "bulletin"),
        chroma_collection="test_bulletins",
        delay_seconds=0,
        concurrency=3,
        min_chunk_size=20,
        max_chunk_size=200,
        min_gap=10,
        _env_file=None,
    )


@pytest.fixture()
def fake_store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture()
def fake_embedder() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture()
def handle(fake_store: FakeVectorStore) -> CollectionHandle:
    return fake_store.ensure_collection("test_bulletins")


@pytest.fixture()
def embedder_cls() -> type[FakeEmbeddingClient]:
    """The fake embedder class, for tests that need custom failure markers."""
    return FakeEmbeddingClient


@pytest.fixture()
def store_cls() -> type[FakeVectorStore]:
    """The fake store class, for tests that need custom failure behaviour."""
    return FakeVectorStore
