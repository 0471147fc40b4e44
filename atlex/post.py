from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Mapping, Sequence

from pydantic import TypeAdapter, ValidationError

from .embeds import PostEmbed
from .errors import DecodeError, EncodeError
from .graphemes import ensure_encodable, truncate_graphemes
from .labels import PostSelfLabels
from .lexicon import TYPE_KEY, LexiconModel, format_validation_error
from .repo import StrongReference
from .richtext import Facet
from .timestamps import format_datetime, parse_datetime, to_wire_precision, utc_now

POST_COLLECTION = "app.bsky.feed.post"

MAX_TEXT_GRAPHEMES = 300
MAX_LANGUAGES = 3
MAX_TAGS = 8
MAX_TAG_GRAPHEMES = 64


class ReplyReference(LexiconModel):
    """
    The thread position of a reply.

    If root and parent are the same record, the post replies directly to the
    first post of the thread.
    """

    root: StrongReference
    parent: StrongReference

    @property
    def is_direct_reply_to_root(self) -> bool:
        return self.root == self.parent


_FACETS = TypeAdapter(list[Facet])
_REPLY = TypeAdapter(ReplyReference)
_EMBED = TypeAdapter(PostEmbed)
_LABELS = TypeAdapter(PostSelfLabels)


@dataclass
class PostRecord:
    """
    One `app.bsky.feed.post` record.

    Values may exceed the wire limits while in memory; encode_post_record()
    truncates them. `text` and `created_at` are fixed once the record exists.
    `created_at` is held as UTC with millisecond precision, as on the wire.
    """

    _FIXED: ClassVar[frozenset[str]] = frozenset({"text", "created_at"})

    text: str
    facets: list[Facet] | None = None
    reply: ReplyReference | None = None
    embed: PostEmbed | None = None
    languages: list[str] | None = None
    labels: PostSelfLabels | None = None
    tags: list[str] | None = None
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "created_at", to_wire_precision(self.created_at))

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self._FIXED and name in self.__dict__:
            raise AttributeError(f"PostRecord.{name} cannot be reassigned")
        super().__setattr__(name, value)


def _dump(adapter: TypeAdapter[Any], value: Any) -> Any:
    return adapter.dump_python(value, mode="json", by_alias=True, exclude_none=True)


def _truncated_tags(tags: Sequence[str]) -> list[str]:
    return [
        truncate_graphemes(ensure_encodable(tag, field="tags"), MAX_TAG_GRAPHEMES)
        for tag in list(tags)[:MAX_TAGS]
    ]


def encode_post_record(record: PostRecord) -> dict[str, Any]:
    """
    Encode a post into its wire object.

    Oversized text, languages and tags are truncated here rather than rejected.
    Fields that are None are omitted.
    """
    text = ensure_encodable(record.text, field="text")

    out: dict[str, Any] = {
        TYPE_KEY: POST_COLLECTION,
        "text": truncate_graphemes(text, MAX_TEXT_GRAPHEMES),
    }

    try:
        if record.facets is not None:
            out["facets"] = _dump(_FACETS, record.facets)
        if record.reply is not None:
            out["reply"] = _dump(_REPLY, record.reply)
        if record.embed is not None:
            out["embed"] = _dump(_EMBED, record.embed)
    except (ValueError, TypeError) as e:
        raise EncodeError(f"Cannot encode post record: {e}") from e

    if record.languages is not None:
        langs = [ensure_encodable(lang, field="langs") for lang in record.languages]
        out["langs"] = langs[:MAX_LANGUAGES]

    if record.labels is not None:
        try:
            out["labels"] = _dump(_LABELS, record.labels)
        except (ValueError, TypeError) as e:
            raise EncodeError(f"Cannot encode post labels: {e}") from e

    if record.tags is not None:
        out["tags"] = _truncated_tags(record.tags)

    out["createdAt"] = format_datetime(record.created_at)
    return out


def encode_post_record_json(record: PostRecord) -> str:
    return json.dumps(
        encode_post_record(record),
        ensure_ascii=False,
        separators=(",", ":"),
    )


def _validate(adapter: TypeAdapter[Any], value: Any, name: str) -> Any:
    try:
        return adapter.validate_python(value)
    except ValidationError as e:
        raise DecodeError(format_validation_error(e, name)) from e


def _decode_str_list(value: Any, name: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise DecodeError(f"{name} must be an array of strings")
    return list(value)


def decode_post_record(data: Mapping[str, Any]) -> PostRecord:
    """
    Decode a wire object into a PostRecord.

    Length limits are not re-checked; data from the server is taken as valid.
    """
    if not isinstance(data, Mapping):
        raise DecodeError("post record must be a JSON object")

    text = data.get("text")
    if not isinstance(text, str):
        raise DecodeError("post record is missing a string 'text'")

    if "createdAt" not in data:
        raise DecodeError("post record is missing 'createdAt'")
    created_at = parse_datetime(data["createdAt"], field="createdAt")

    facets = data.get("facets")
    reply = data.get("reply")
    embed = data.get("embed")
    langs = data.get("langs")
    labels = data.get("labels")
    tags = data.get("tags")

    return PostRecord(
        text=text,
        facets=None if facets is None else _validate(_FACETS, facets, "facets"),
        reply=None if reply is None else _validate(_REPLY, reply, "reply"),
        embed=None if embed is None else _validate(_EMBED, embed, "embed"),
        languages=None if langs is None else _decode_str_list(langs, "langs"),
        labels=None if labels is None else _validate(_LABELS, labels, "labels"),
        tags=None if tags is None else _decode_str_list(tags, "tags"),
        created_at=created_at,
    )


def decode_post_record_json(text: str | bytes) -> PostRecord:
    try:
        data = json.loads(text)
    except ValueError as e:
        raise DecodeError(f"post record is not valid JSON: {e}") from e
    return decode_post_record(data)
