"""Unit tests for the per-chunk ingestion worker."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from bulletin_rag.errors import ConfigurationError, EmbeddingServiceError
from bulletin_rag.ingestion.cancellation import CancellationToken
from bulletin_rag.ingestion.models import Chunk, RunStatistics
from bulletin_rag.ingestion.worker import IngestionWorker


def _chunks(source: str, texts: list[str]) -> list[Chunk]:
    return [
        Chunk(id=f"{source}_{i}", text=t, index=i, metadata={"source": source, "chunk_index": i})
        for i, t in enumerate(texts)
    ]


def _worker(store, embedder, **kwargs) -> IngestionWorker:
    kwargs.setdefault("delay_seconds", 0)
    return IngestionWorker(embedder, store, RunStatistics(), **kwargs)


class TestIngest:
    def test_success_upserts_record(self, fake_store, embedder_cls, handle) -> None:
        worker = _worker(fake_store, embedder_cls(dim=3))
        chunk = _chunks("eng", ["CSCI 10. Intro."])[0]

        outcome = worker.ingest(chunk, handle)

        assert outcome.success is True
        stored = fake_store.collections["test_bulletins"]["eng_0"]
        assert stored["text"] == "CSCI 10. Intro."
        assert stored["metadata"]["source"] == "eng"
        assert len(stored["embedding"]) == 3
        assert worker.stats.document("eng").succeeded == 1

    def test_embedding_failure_is_recorded_not_raised(self, fake_store, embedder_cls, handle) -> None:
        worker = _worker(fake_store, embedder_cls(fail_on=("BOOM",)))
        outcome = worker.ingest(_chunks("eng", ["BOOM"])[0], handle)

        assert outcome.success is False
        assert "HTTP 500" in outcome.error
        assert "eng_0" not in fake_store.collections["test_bulletins"]
        assert worker.stats.document("eng").failed == 1

    def test_upsert_failure_is_recorded(self, store_cls, fake_embedder) -> None:
        store = store_cls(fail_upsert_ids=("eng_0",))
        handle = store.ensure_collection("test_bulletins")
        worker = _worker(store, fake_embedder)

        outcome = worker.ingest(_chunks("eng", ["text"])[0], handle)

        assert outcome.success is False
        assert worker.stats.document("eng").failed == 1

    def test_error_message_is_truncated(self, fake_store, embedder_cls, handle) -> None:
        class Verbose(embedder_cls):
            def embed(self, text, *, timeout=None):
                raise EmbeddingServiceError("x" * 500)

        worker = _worker(fake_store, Verbose())
        outcome = worker.ingest(_chunks("eng", ["a"])[0], handle)
        assert len(outcome.error) == 100

    def test_unexpected_error_is_chunk_local(self, fake_store, embedder_cls, handle) -> None:
        class Broken(embedder_cls):
            def embed(self, text, *, timeout=None):
                if text == "bad":
                    raise TypeError("unsupported operand")
                return super().embed(text, timeout=timeout)

        worker = _worker(fake_store, Broken())
        result = worker.ingest_document("eng", _chunks("eng", ["ok", "bad", "ok too"]), handle)

        assert (result.succeeded, result.failed) == (2, 1)
        assert sorted(fake_store.collections["test_bulletins"]) == ["eng_0", "eng_2"]

    def test_dimension_mismatch_is_fatal(self, fake_store, embedder_cls, handle) -> None:
        handle.dimension = 8
        worker = _worker(fake_store, embedder_cls(dim=4))

        with pytest.raises(ConfigurationError, match="dimension"):
            worker.ingest(_chunks("eng", ["a"])[0], handle)
        assert fake_store.collections["test_bulletins"] == {}
        assert worker.stats.document("eng").failed == 1

    def test_timeout_capped_by_token(self, fake_store, embedder_cls, handle) -> None:
        seen: list[float | None] = []

        class Recording(embedder_cls):
            def embed(self, text, *, timeout=None):
                seen.append(timeout)
                return super().embed(text, timeout=timeout)

        worker = _worker(fake_store, Recording(), token=CancellationToken(deadline_seconds=1.0))
        worker.ingest(_chunks("eng", ["a"])[0], handle)
        assert seen[0] is not None and seen[0] <= 1.0


class TestIngestDocument:
    def test_failure_does_not_stop_later_chunks(self, fake_store, embedder_cls, handle) -> None:
        embedder = embedder_cls(fail_on=("BAD",))
        worker = _worker(fake_store, embedder)

        result = worker.ingest_document("eng", _chunks("eng", ["one", "BAD two", "three"]), handle)

        assert (result.total, result.succeeded, result.failed) == (3, 2, 1)
        assert sorted(fake_store.collections["test_bulletins"]) == ["eng_0", "eng_2"]
        assert embedder.calls == ["one", "BAD two", "three"]

    def test_delay_doubles_after_failure(self, fake_store, embedder_cls, handle) -> None:
        worker = _worker(fake_store, embedder_cls(fail_on=("BAD",)), delay_seconds=0.2)
        with patch.object(CancellationToken, "wait", return_value=False) as wait:
            worker.ingest_document("eng", _chunks("eng", ["ok", "BAD", "ok again"]), handle)

        assert [c.args[0] for c in wait.call_args_list] == [0.2, 0.4, 0.2]

    def test_cancelled_token_skips_remaining(self, fake_store, fake_embedder, handle) -> None:
        token = CancellationToken()
        token.cancel()
        worker = _worker(fake_store, fake_embedder, token=token)

        result = worker.ingest_document("eng", _chunks("eng", ["a", "b", "c"]), handle)

        assert result.skipped == 3
        assert result.succeeded == 0
        assert fake_store.collections["test_bulletins"] == {}
        assert fake_embedder.calls == []

    def test_reingest_is_idempotent(self, fake_store, fake_embedder, handle) -> None:
        worker = _worker(fake_store, fake_embedder)
        chunks = _chunks("eng", ["a", "b"])
        worker.ingest_document("eng", chunks, handle)
        worker.ingest_document("eng", chunks, handle)

        assert sorted(fake_store.collections["test_bulletins"]) == ["eng_0", "eng_1"]
