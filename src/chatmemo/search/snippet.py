"""Snippet extraction with keyword highlighting."""

import re
from collections import Counter
from typing import Sequence

ELLIPSIS = "..."

# How far a window edge may move to land on a word boundary
WORD_BOUNDARY_TOLERANCE = 20

DEFAULT_HIGHLIGHT = ("<mark>", "</mark>")


def _find_earliest_match(content: str, keywords: Sequence[str]) -> tuple[int, str]:
    """Return (index, keyword) of the earliest case-insensitive match, or (-1, "")."""
    lower_content = content.lower()
    first_index = -1
    matched_keyword = ""
    for keyword in keywords:
        if not keyword:
            continue
        index = lower_content.find(keyword.lower())
        if index != -1 and (first_index == -1 or index < first_index):
            first_index = index
            matched_keyword = keyword
    return first_index, matched_keyword


def highlight_keywords(
    text: str,
    keywords: Sequence[str],
    highlight: tuple[str, str] = DEFAULT_HIGHLIGHT,
) -> str:
    """Wrap every case-insensitive occurrence of every keyword in markers.

    Match spans are collected from the unmodified text, one scan per
    keyword, so a marker is never matched by a later keyword. Overlapping
    keywords are each marked, which can nest markers.
    """
    terms = {k.lower(): k for k in keywords if k}.values()
    opens: Counter[int] = Counter()
    closes: Counter[int] = Counter()
    for term in terms:
        for match in re.finditer(re.escape(term), text, re.IGNORECASE):
            opens[match.start()] += 1
            closes[match.end()] += 1

    if not opens:
        return text

    open_mark, close_mark = highlight
    parts: list[str] = []
    previous = 0
    for boundary in sorted(opens.keys() | closes.keys()):
        parts.append(text[previous:boundary])
        # Close before opening so adjacent matches stay well-formed
        parts.append(close_mark * closes[boundary] + open_mark * opens[boundary])
        previous = boundary
    parts.append(text[previous:])
    return "".join(parts)


def generate_snippet(
    content: str,
    keywords: Sequence[str],
    max_length: int = 150,
    highlight: tuple[str, str] = DEFAULT_HIGHLIGHT,
) -> str:
    """Extract an excerpt of content around the first keyword match.

    The window is max_length characters wide, centered on the earliest
    match. Each edge moves to an adjacent space when one is within
    WORD_BOUNDARY_TOLERANCE characters. Truncated ends get an ellipsis.

    Args:
        content: Full message text
        keywords: Search tokens to locate and highlight
        max_length: Target snippet length before markers and ellipses
        highlight: (open, close) markers placed around each keyword

    Returns:
        Highlighted excerpt; the leading text when nothing matches
    """
    if not content:
        return ""

    first_index, matched_keyword = _find_earliest_match(content, keywords)

    if first_index == -1:
        suffix = ELLIPSIS if len(content) > max_length else ""
        return content[:max_length] + suffix

    half_length = max_length // 2
    start = max(0, first_index - half_length)
    end = min(len(content), first_index + len(matched_keyword) + half_length)

    # Avoid cutting words at either edge
    if start > 0:
        space_index = content.rfind(" ", 0, start + 1)
        if space_index > 0 and start - space_index < WORD_BOUNDARY_TOLERANCE:
            start = space_index + 1

    if end < len(content):
        space_index = content.find(" ", end)
        if space_index > 0 and space_index - end < WORD_BOUNDARY_TOLERANCE:
            end = space_index

    snippet = highlight_keywords(content[start:end], keywords, highlight)

    if start > 0:
        snippet = ELLIPSIS + snippet
    if end < len(content):
        snippet = snippet + ELLIPSIS

    return snippet
