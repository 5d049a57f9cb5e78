"""
Query helpers layered over the store: filtering, snippets, highlighting.
"""

import re
from typing import Iterable, Optional

import typer

from .types import Record, RejectedAlternative

SNIPPET_BEFORE = 50
SNIPPET_AFTER = 100
SNIPPET_MAX_LEN = 150
ELLIPSIS = "..."

_NEWLINE_RE = re.compile(r"\r\n|\r|\n")


def filter_records(
    records: Iterable[Record],
    file_filter: Optional[str] = None,
    agent_filter: Optional[str] = None,
) -> list[Record]:
    """Keep records whose target_file / agent_id contain the given substrings."""
    result = list(records)
    if file_filter:
        result = [r for r in result if file_filter in r.target_file]
    if agent_filter:
        result = [r for r in result if agent_filter in r.agent_id]
    return result


def apply_limit(records: list[Record], limit: Optional[int]) -> list[Record]:
    if limit is None:
        return records
    return records[:max(limit, 0)]


def matching_rejected(record: Record, query: str) -> list[RejectedAlternative]:
    """Rejected alternatives whose name contains the query (case-insensitive)."""
    needle = query.casefold()
    return [alt for alt in record.rejected_alternatives if needle in alt.name.casefold()]


def _flatten(text: str) -> str:
    return _NEWLINE_RE.sub(" ", text)


def create_snippet(text: str, query: str, max_len: int = SNIPPET_MAX_LEN) -> str:
    """
    Excerpt of `text` around the first case-insensitive match of `query`.

    Takes up to 50 characters before and 100 after the match, collapses
    line breaks, and marks truncated ends with '...'. Without a match the
    excerpt is the start of the text. Never longer than max_len plus the
    trailing ellipsis.
    """
    match = re.search(re.escape(query), text, re.IGNORECASE)
    if match is None:
        snippet = _flatten(text[:max_len]).strip()
        if len(text) > max_len:
            snippet += ELLIPSIS
        return snippet

    start = max(match.start() - SNIPPET_BEFORE, 0)
    end = min(match.end() + SNIPPET_AFTER, len(text))

    snippet = _flatten(text[start:end]).strip()
    if start > 0:
        snippet = ELLIPSIS + snippet
    if end < len(text):
        snippet = snippet + ELLIPSIS

    if len(snippet) > max_len:
        snippet = snippet[:max_len] + ELLIPSIS
    return snippet


def highlight_query(text: str, query: str) -> str:
    """Style every case-insensitive occurrence of `query` for the terminal."""
    if not query:
        return text
    return re.sub(
        re.escape(query),
        lambda m: typer.style(m.group(0), fg=typer.colors.YELLOW, bold=True),
        text,
        flags=re.IGNORECASE,
    )
