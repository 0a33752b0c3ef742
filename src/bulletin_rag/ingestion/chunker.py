"""Text chunking strategies.

Both strategies consume *sanitised* text and a source name and return
:class:`~bulletin_rag.ingestion.models.Chunk` objects with deterministic ids
and extracted metadata.

- :class:`FixedStrideChunker` — consecutive, non-overlapping character
  windows.  Simple and predictable, but severs records mid-sentence.
- :class:`SemanticChunker` — splits at course entries, section headings and
  list items, then merges neighbouring segments into bounded chunks so one
  course description stays in one chunk.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from langchain_text_splitters import CharacterTextSplitter, RecursiveCharacterTextSplitter

from bulletin_rag.ingestion.boundaries import DEFAULT_RULES, BoundaryRule, find_next_boundary
from bulletin_rag.ingestion.metadata import extract_metadata
from bulletin_rag.ingestion.models import Chunk

if TYPE_CHECKING:
    from bulletin_rag.config import Settings

logger = logging.getLogger(__name__)


class ChunkerBase(ABC):
    """Strategy interface: sanitised text in, ordered chunks out."""

    strategy: str = ""

    @abstractmethod
    def split(self, text: str, source: str) -> list[Chunk]:
        """Split *text* from *source* into chunks (empty list for empty text)."""
        ...

    def _make_chunk(self, chunk_id: str, text: str, source: str, index: int) -> Chunk:
        metadata = extract_metadata(
            text,
            source,
            chunk_index=index,
            chunking_strategy=self.strategy,
        )
        return Chunk(id=chunk_id, text=text, index=index, metadata=metadata)


class FixedStrideChunker(ChunkerBase):
    """Split text into consecutive windows of at most ``chunk_size`` characters.

    Windows that are empty after stripping are dropped; the *i*-th emitted
    chunk always comes from an earlier window than the *i+1*-th.
    """

    strategy = "fixed"

    def __init__(self, chunk_size: int = 500) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        # An empty separator windows the text character by character.
        self._splitter = CharacterTextSplitter(separator="", chunk_size=chunk_size, chunk_overlap=0)

    def split(self, text: str, source: str) -> list[Chunk]:
        return [
            self._make_chunk(f"{source}_chunk_{index}", piece, source, index)
            for index, piece in enumerate(self._splitter.split_text(text))
        ]


class SemanticChunker(ChunkerBase):
    """Boundary-aware chunking with greedy size-bounded merging.

    Parameters
    ----------
    min_chunk_size:
        Every emitted chunk except possibly the last reaches this length.
    max_chunk_size:
        No emitted chunk exceeds this length.  Must be at least twice
        ``min_chunk_size``.
    min_gap:
        A boundary is only used as a split point if it lies at least this
        many characters past the previous split.
    rules:
        Boundary rules consulted in order; see
        :mod:`bulletin_rag.ingestion.boundaries`.
    """

    strategy = "semantic"

    def __init__(
        self,
        min_chunk_size: int = 100,
        max_chunk_size: int = 2000,
        min_gap: int = 50,
        rules: tuple[BoundaryRule, ...] = DEFAULT_RULES,
    ) -> None:
        if min_chunk_size < 1:
            raise ValueError(f"min_chunk_size must be positive, got {min_chunk_size}")
        if min_chunk_size * 2 > max_chunk_size:
            raise ValueError(
                f"max_chunk_size ({max_chunk_size}) must be at least twice "
                f"min_chunk_size ({min_chunk_size})"
            )
        self.min_chunk_size = min_chunk_size
        self.max_chunk_size = max_chunk_size
        self.min_gap = min_gap
        self.rules = rules
        self._splitter = RecursiveCharacterTextSplitter(
            separators=[" ", ""],
            chunk_size=max_chunk_size,
            chunk_overlap=0,
            length_function=len,
        )

    # -- public API -----------------------------------------------------------

    def split(self, text: str, source: str) -> list[Chunk]:
        segments = self.propose_segments(text)
        merged = self.merge_segments(segments)
        return [
            self._make_chunk(f"{source}_{index}", piece, source, index)
            for index, piece in enumerate(merged)
        ]

    def propose_segments(self, text: str) -> list[str]:
        """Cut *text* at boundary markers that are far enough apart.

        Markers closer than ``min_gap`` to the last split are ignored, and
        their text stays in the current segment.
        """
        segments: list[str] = []
        last_split = 0
        cursor = 0
        while cursor < len(text):
            found = find_next_boundary(self.rules, text, cursor)
            if found is None:
                break
            if found.start - last_split >= self.min_gap:
                segment = text[last_split : found.start].strip()
                if segment:
                    segments.append(segment)
                last_split = found.start
            cursor = found.end

        tail = text[last_split:].strip()
        if tail:
            segments.append(tail)
        return segments

    def merge_segments(self, segments: list[str]) -> list[str]:
        """Greedily join segments into chunks within ``[min, max]`` characters."""
        chunks: list[str] = []
        current = ""
        for segment in segments:
            if not current:
                pending = segment
            elif len(current) >= self.min_chunk_size:
                chunks.append(current)
                pending = segment
            else:
                pending = f"{current} {segment}"

            pieces = self._cut(pending)
            chunks.extend(pieces[:-1])
            current = pieces[-1]

        if current:
            if len(current) >= self.min_chunk_size or not chunks:
                chunks.append(current)
            elif len(chunks[-1]) + 1 + len(current) <= self.max_chunk_size:
                chunks[-1] = f"{chunks[-1]} {current}"
            else:
                chunks.append(current)
        return chunks

    # -- internals ------------------------------------------------------------

    def _cut(self, text: str) -> list[str]:
        """Split *text* into pieces of at most ``max_chunk_size``.

        Word-aligned windows come from the splitter, which falls back to a
        character cut for tokens longer than the window.  A short piece left
        in front of such a token is folded into the next one, so every piece
        but the last reaches ``min_chunk_size``.
        """
        if len(text) <= self.max_chunk_size:
            return [text]

        pieces: list[str] = []
        carry = ""
        for piece in self._splitter.split_text(text):
            if carry:
                piece = f"{carry} {piece}"
                carry = ""
                if len(piece) > self.max_chunk_size:
                    pieces.append(piece[: self.max_chunk_size].rstrip())
                    piece = piece[self.max_chunk_size :].lstrip()
            if len(piece) < self.min_chunk_size:
                carry = piece
            else:
                pieces.append(piece)
        if carry or not pieces:
            pieces.append(carry)
        return pieces


def get_chunker(settings: Settings) -> ChunkerBase:
    """Return the chunker selected by ``settings.chunk_strategy``."""
    if settings.chunk_strategy == "fixed":
        return FixedStrideChunker(chunk_size=settings.chunk_size)
    if settings.chunk_strategy == "semantic":
        return SemanticChunker(
            min_chunk_size=settings.min_chunk_size,
            max_chunk_size=settings.max_chunk_size,
            min_gap=settings.min_gap,
        )
    raise ValueError(f"Unsupported chunk_strategy={settings.chunk_strategy!r}")
