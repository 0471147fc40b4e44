from __future__ import annotations

from typing import Iterator

import regex

from .errors import EncodeError

_GRAPHEME_RE = regex.compile(r"\X")


def iter_graphemes(text: str) -> Iterator[str]:
    """Yield the extended grapheme clusters of text, in order."""
    for match in _GRAPHEME_RE.finditer(text):
        yield match.group()


def grapheme_length(text: str) -> int:
    return sum(1 for _ in iter_graphemes(text))


def truncate_graphemes(text: str, limit: int) -> str:
    """
    Return the longest prefix of text holding at most `limit` grapheme clusters.

    A cluster is never split, so the result is always a valid prefix of text.
    """
    if limit < 0:
        raise ValueError("limit must be >= 0")

    end = 0
    for count, match in enumerate(_GRAPHEME_RE.finditer(text)):
        if count >= limit:
            return text[:end]
        end = match.end()
    return text


def ensure_encodable(text: str, *, field: str) -> str:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodeError(f"{field} is not valid Unicode: {e}") from e
    return text
