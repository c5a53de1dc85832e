"""Tokenizer contract and the default word tokenizer.

The store treats the tokenizer as a black box: any callable taking text and
returning a space-separated token string can be injected. An empty or
falsy result means the text has no searchable terms.
"""

from __future__ import annotations

import re
from typing import Callable, Final

Tokenizer = Callable[[str], str]

# Ideographs, kana and hangul have no spaces between words, so each
# character becomes its own token.
_CJK_RANGES: Final[str] = (
    "\u3040-\u30ff"  # hiragana, katakana
    "\u3400-\u4dbf"  # CJK extension A
    "\u4e00-\u9fff"  # CJK unified ideographs
    "\uac00-\ud7af"  # hangul syllables
    "\uf900-\ufaff"  # CJK compatibility ideographs
)

TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"[{_CJK_RANGES}]|[^\W_{_CJK_RANGES}]+"
)


def simple_tokenize(text: str) -> str:
    """Split text into lowercase word tokens.

    Args:
        text: Text to tokenize

    Returns:
        Space-separated tokens, or an empty string when text has none
    """
    if not text:
        return ""
    return " ".join(match.lower() for match in TOKEN_PATTERN.findall(text))


def split_tokens(tokens: str | None) -> list[str]:
    """Turn a tokenizer result into a list, dropping empty entries."""
    if not tokens:
        return []
    return [token for token in tokens.split() if token]
