"""Lightweight structured metadata extracted from a chunk's text.

Extraction is best-effort: a field that cannot be found is simply omitted,
and :func:`extract_metadata` never raises.
"""

from __future__ import annotations

import logging
import re

from bulletin_rag.ingestion.models import MetadataValue

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 100

_COURSE_CODE = re.compile(r"\b([A-Z]{2,4})\s+(\d{1,3}[A-Z]?)\b")
_LEADING_COURSE_CODE = re.compile(r"^\s*[A-Z]{2,4}\s+\d{1,3}[A-Z]?\b\.?")
_TITLE = re.compile(r"(?::|^)\s*(.*?)\s*(?:\(|$)")
_CREDITS = re.compile(r"\((\d+(?:\.\d+)?)\s*(?:units|credits)\)", re.IGNORECASE)


def _course_fields(text: str) -> dict[str, MetadataValue]:
    match = _COURSE_CODE.search(text)
    if match is None:
        return {}
    return {
        "course_code": match.group(0),
        "department_code": match.group(1),
        "course_number": match.group(2),
    }


def _title(text: str) -> str | None:
    remainder = _LEADING_COURSE_CODE.sub("", text, count=1)
    match = _TITLE.search(remainder)
    if match is None:
        return None
    candidate = match.group(1).strip().rstrip(".").strip()
    if 0 < len(candidate) < TITLE_MAX_CHARS:
        return candidate
    return None


def _credits(text: str) -> float | None:
    match = _CREDITS.search(text)
    return float(match.group(1)) if match else None


def extract_metadata(text: str, source: str, **extra: MetadataValue) -> dict[str, MetadataValue]:
    """Build the metadata mapping stored alongside a chunk.

    Parameters
    ----------
    text:
        Sanitised chunk text.
    source:
        Source document name (always present in the result).
    extra:
        Additional scalar fields, e.g. ``chunk_index`` or
        ``chunking_strategy``.

    Returns
    -------
    dict
        ``source``, ``chunk_type`` and ``extra``, plus any of ``course_code``,
        ``department_code``, ``course_number``, ``title``, ``credits`` and
        ``has_prerequisites`` that could be found.
    """
    metadata: dict[str, MetadataValue] = {"source": source, "chunk_type": "general"}
    metadata.update(extra)

    extractors = (
        ("course", _course_fields),
        ("title", _title),
        ("credits", _credits),
    )
    for name, extractor in extractors:
        try:
            value = extractor(text)
        except (re.error, ValueError, TypeError):
            logger.debug("metadata extractor %s failed for %s", name, source, exc_info=True)
            continue
        if value is None or value == {}:
            continue
        if isinstance(value, dict):
            metadata.update(value)
            metadata["chunk_type"] = "course"
        else:
            metadata[name] = value

    if "prerequisite" in text.lower():
        metadata["has_prerequisites"] = True

    return metadata
