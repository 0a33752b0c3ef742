"""Text normalisation applied before chunking and embedding."""

from __future__ import annotations

import re

_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\r\n\t]")
_WHITESPACE = re.compile(r"\s+")


def sanitize(text: str | None) -> str:
    """Replace non-printable characters with spaces, collapse whitespace, strip.

    Anything outside printable ASCII (plus ``\\r``, ``\\n``, ``\\t``) becomes a
    single space.  Idempotent and total: ``sanitize(sanitize(t)) == sanitize(t)``.
    """
    if not text:
        return ""
    text = _NON_PRINTABLE.sub(" ", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()
