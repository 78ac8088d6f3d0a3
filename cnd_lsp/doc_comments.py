"""Extract and format `///` doc comments from source lines."""

from __future__ import annotations

from typing import Optional

DOC_MARKER = '///'


def is_doc_comment(trimmed: str) -> bool:
    """Check whether an already-stripped line is a doc comment."""
    return trimmed.startswith(DOC_MARKER)


def clean_doc_line(trimmed: str) -> str:
    """Strip the `///` marker and surrounding whitespace.

    '///  Sync word.' -> 'Sync word.'
    """
    return trimmed[len(DOC_MARKER):].strip()


def join_doc(buffer: list[str]) -> Optional[str]:
    """Join pending doc lines, or None when nothing is pending."""
    if not buffer:
        return None
    return '\n'.join(buffer)
