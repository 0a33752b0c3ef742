"""Source-document loading — thin wrapper around LangChain's directory loader."""

from __future__ import annotations

import logging
from pathlib import Path

from langchain_community.document_loaders import DirectoryLoader, TextLoader
from langchain_core.documents import Document

from bulletin_rag.errors import ValidationError
from bulletin_rag.ingestion.models import SourceDocument

logger = logging.getLogger(__name__)


def _to_source_document(doc: Document) -> SourceDocument:
    """Name a loaded file by its stem, e.g. ``engineering.txt`` becomes ``engineering``."""
    return SourceDocument(source=Path(doc.metadata["source"]).stem, text=doc.page_content)


def load_documents(path: str | Path, glob: str = "*.txt") -> list[SourceDocument]:
    """Load every plain-text file under *path* matching *glob*.

    Parameters
    ----------
    path:
        Directory containing source documents.
    glob:
        File-matching pattern forwarded to ``DirectoryLoader``.

    Returns
    -------
    list[SourceDocument]
        One document per file, sorted by source name so runs are
        reproducible.  ``source`` is the filename without its extension.

    Raises
    ------
    ValidationError
        If *path* is not a directory or holds no matching files.
    """
    root = Path(path)
    if not root.is_dir():
        raise ValidationError(f"Source directory not found: {root}")

    loader = DirectoryLoader(
        str(root),
        glob=glob,
        loader_cls=TextLoader,  # type: ignore[arg-type]
        loader_kwargs={"encoding": "utf-8", "autodetect_encoding": True},
        use_multithreading=True,
    )
    lc_docs = loader.load()
    if not lc_docs:
        raise ValidationError(f"No files matching {glob!r} in {root}")

    documents = [_to_source_document(doc) for doc in lc_docs]
    documents.sort(key=lambda d: d.source)
    logger.info("Found %d files to process in %s", len(documents), root)
    return documents
