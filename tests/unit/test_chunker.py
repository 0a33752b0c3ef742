"""Unit tests for the chunker module."""

from __future__ import annotations

import pytest

from bulletin_rag.config import Settings
from bulletin_rag.ingestion.chunker import (
    FixedStrideChunker,
    SemanticChunker,
    get_chunker,
)
from bulletin_rag.ingestion.sanitize import sanitize


def _squash(text: str) -> str:
    """Drop all whitespace so coverage can be compared independent of separators."""
    return "".join(text.split())


COURSES = " ".join(
    f"CSCI {n}. Course Number {n}. Covers topic {n} in depth with labs and projects. "
    f"(4 units). Prerequisite: CSCI {n - 1}."
    for n in range(10, 30)
)


# ── Fixed stride ───────────────────────────────────────────────────────


class TestFixedStride:
    def test_1300_chars_with_stride_500(self) -> None:
        chunks = FixedStrideChunker(chunk_size=500).split("x" * 1300, "doc")
        assert [len(c.text) for c in chunks] == [500, 500, 300]

    def test_ids_are_deterministic_and_ordered(self) -> None:
        chunker = FixedStrideChunker(chunk_size=10)
        first = chunker.split("abcdefghij" * 3, "catalog")
        second = chunker.split("abcdefghij" * 3, "catalog")
        assert [c.id for c in first] == ["catalog_chunk_0", "catalog_chunk_1", "catalog_chunk_2"]
        assert [c.id for c in first] == [c.id for c in second]
        assert [c.index for c in first] == [0, 1, 2]

    def test_whitespace_only_windows_dropped(self) -> None:
        text = "a" * 5 + " " * 10 + "b" * 5
        chunks = FixedStrideChunker(chunk_size=5).split(text, "d")
        assert [c.text for c in chunks] == ["aaaaa", "bbbbb"]
        assert [c.id for c in chunks] == ["d_chunk_0", "d_chunk_1"]

    def test_empty_text_yields_no_chunks(self) -> None:
        assert FixedStrideChunker().split("", "empty") == []

    def test_metadata_attached(self) -> None:
        chunks = FixedStrideChunker(chunk_size=200).split(
            sanitize("CSCI 10. Intro to CS (4 units)."), "eng"
        )
        meta = chunks[0].metadata
        assert meta["source"] == "eng"
        assert meta["chunk_index"] == 0
        assert meta["chunking_strategy"] == "fixed"
        assert meta["course_code"] == "CSCI 10"

    def test_invalid_size(self) -> None:
        with pytest.raises(ValueError):
            FixedStrideChunker(chunk_size=0)


# ── Semantic ───────────────────────────────────────────────────────────


class TestSemantic:
    @pytest.fixture()
    def chunker(self) -> SemanticChunker:
        return SemanticChunker(min_chunk_size=100, max_chunk_size=400, min_gap=50)

    def test_chunks_within_bounds(self, chunker: SemanticChunker) -> None:
        chunks = chunker.split(COURSES, "eng")
        assert len(chunks) > 1
        assert all(len(c.text) <= 400 for c in chunks)
        assert all(len(c.text) >= 100 for c in chunks[:-1])

    def test_covers_all_text_in_order(self, chunker: SemanticChunker) -> None:
        chunks = chunker.split(COURSES, "eng")
        assert _squash("".join(c.text for c in chunks)) == _squash(COURSES)

    def test_course_entries_start_chunks(self, chunker: SemanticChunker) -> None:
        chunks = chunker.split(COURSES, "eng")
        assert all(c.text.startswith("CSCI ") for c in chunks)

    def test_ids_use_source_and_index(self, chunker: SemanticChunker) -> None:
        chunks = chunker.split(COURSES, "eng")
        assert [c.id for c in chunks] == [f"eng_{i}" for i in range(len(chunks))]
        assert all(c.metadata["chunking_strategy"] == "semantic" for c in chunks)

    def test_short_document_emits_single_chunk(self, chunker: SemanticChunker) -> None:
        chunks = chunker.split("Tiny note.", "tiny")
        assert [c.text for c in chunks] == ["Tiny note."]

    def test_empty_document(self, chunker: SemanticChunker) -> None:
        assert chunker.split("", "none") == []

    def test_long_unbroken_text_is_cut_to_max(self, chunker: SemanticChunker) -> None:
        text = " ".join(["lorem"] * 300)  # ~1800 chars, no markers
        chunks = chunker.split(text, "lorem")
        assert all(len(c.text) <= 400 for c in chunks)
        assert all(len(c.text) >= 100 for c in chunks[:-1])
        assert _squash(" ".join(c.text for c in chunks)) == _squash(text)

    def test_single_huge_token_is_hard_cut(self, chunker: SemanticChunker) -> None:
        chunks = chunker.split("z" * 1000, "blob")
        assert [len(c.text) for c in chunks] == [400, 400, 200]

    def test_short_run_before_long_token_is_folded(self, chunker: SemanticChunker) -> None:
        text = "aaa " + "z" * 1000
        chunks = chunker.split(text, "blob")
        assert all(len(c.text) <= 400 for c in chunks)
        assert all(len(c.text) >= 100 for c in chunks[:-1])
        assert _squash("".join(c.text for c in chunks)) == _squash(text)

    def test_long_text_is_cut_at_word_boundaries(self, chunker: SemanticChunker) -> None:
        words = " ".join(f"word{i:03d}" for i in range(200))
        chunks = chunker.split(words, "words")
        for chunk in chunks:
            assert all(token.startswith("word") and len(token) == 7 for token in chunk.text.split(" "))

    def test_markers_closer_than_min_gap_do_not_split(self) -> None:
        chunker = SemanticChunker(min_chunk_size=10, max_chunk_size=1000, min_gap=50)
        segments = chunker.propose_segments("- Alpha - Beta - Gamma")
        assert segments == ["- Alpha - Beta - Gamma"]

    def test_small_trailing_segment_merges_into_previous(self) -> None:
        chunker = SemanticChunker(min_chunk_size=10, max_chunk_size=100)
        merged = chunker.merge_segments(["a" * 30, "b" * 30, "tail"])
        assert merged[-1].endswith("tail")
        assert all(len(m) >= 10 for m in merged)

    def test_max_must_be_twice_min(self) -> None:
        with pytest.raises(ValueError):
            SemanticChunker(min_chunk_size=300, max_chunk_size=400)


# ── Factory ────────────────────────────────────────────────────────────


def test_get_chunker_respects_settings() -> None:
    assert isinstance(get_chunker(Settings(chunk_strategy="fixed", _env_file=None)), FixedStrideChunker)
    semantic = get_chunker(
        Settings(chunk_strategy="semantic", min_chunk_size=50, max_chunk_size=500, _env_file=None)
    )
    assert isinstance(semantic, SemanticChunker)
    assert semantic.min_chunk_size == 50
    assert semantic.max_chunk_size == 500
