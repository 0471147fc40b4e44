from __future__ import annotations

from typing import ClassVar

from pydantic import Field

from .lexicon import Blob, LexiconModel, lexicon_union
from .repo import StrongReference


class AspectRatio(LexiconModel):
    width: int = Field(ge=1)
    height: int = Field(ge=1)


class Image(LexiconModel):
    image: Blob
    alt: str = ""
    aspect_ratio: AspectRatio | None = None


class Images(LexiconModel):
    """A set of up to four images attached to a post."""

    lexicon_type: ClassVar[str | None] = "app.bsky.embed.images"

    images: list[Image]


class Caption(LexiconModel):
    lang: str
    file: Blob


class Video(LexiconModel):
    lexicon_type: ClassVar[str | None] = "app.bsky.embed.video"

    video: Blob
    captions: list[Caption] | None = None
    alt: str | None = None
    aspect_ratio: AspectRatio | None = None


class External(LexiconModel):
    uri: str
    title: str = ""
    description: str = ""
    thumb: Blob | None = None


class EmbedExternal(LexiconModel):
    """A link card."""

    lexicon_type: ClassVar[str | None] = "app.bsky.embed.external"

    external: External


class EmbedRecord(LexiconModel):
    """A quoted record, usually another post."""

    lexicon_type: ClassVar[str | None] = "app.bsky.embed.record"

    record: StrongReference


RecordMedia = lexicon_union(Images, Video, EmbedExternal)


class RecordWithMedia(LexiconModel):
    lexicon_type: ClassVar[str | None] = "app.bsky.embed.recordWithMedia"

    record: EmbedRecord
    media: RecordMedia


PostEmbed = lexicon_union(Images, Video, EmbedExternal, EmbedRecord, RecordWithMedia)
