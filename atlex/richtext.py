from __future__ import annotations

from typing import ClassVar

from pydantic import Field, model_validator

from .lexicon import LexiconModel, lexicon_union


class ByteSlice(LexiconModel):
    """
    A range of the UTF-8 encoded text: inclusive start, exclusive end.

    Offsets count bytes, not characters, so they stay stable across languages.
    """

    byte_start: int = Field(ge=0)
    byte_end: int = Field(ge=0)

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "ByteSlice":
        if self.byte_end < self.byte_start:
            raise ValueError("byteEnd must be >= byteStart")
        return self

    def slice_of(self, text: str) -> str:
        return text.encode("utf-8")[self.byte_start : self.byte_end].decode(
            "utf-8", errors="replace"
        )


class Mention(LexiconModel):
    lexicon_type: ClassVar[str | None] = "app.bsky.richtext.facet#mention"

    did: str


class Link(LexiconModel):
    lexicon_type: ClassVar[str | None] = "app.bsky.richtext.facet#link"

    uri: str


class Tag(LexiconModel):
    lexicon_type: ClassVar[str | None] = "app.bsky.richtext.facet#tag"

    tag: str


FacetFeature = lexicon_union(Mention, Link, Tag)


class Facet(LexiconModel):
    """An annotation over a byte range of post text."""

    lexicon_type: ClassVar[str | None] = "app.bsky.richtext.facet"

    index: ByteSlice
    features: list[FacetFeature]


def byte_slice_for(text: str, substring: str, *, start: int = 0) -> ByteSlice | None:
    """Locate substring in text (searching from character `start`) as a byte range."""
    pos = text.find(substring, start)
    if pos < 0:
        return None
    byte_start = len(text[:pos].encode("utf-8"))
    return ByteSlice(
        byte_start=byte_start,
        byte_end=byte_start + len(substring.encode("utf-8")),
    )
