from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, ClassVar, Mapping, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    SerializationInfo,
    ValidationError,
    model_serializer,
)
from pydantic.alias_generators import to_camel

from .errors import DecodeError
from .timestamps import format_datetime, parse_iso8601

TYPE_KEY = "$type"


def _validate_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    return parse_iso8601(value)


Timestamp = Annotated[
    datetime,
    BeforeValidator(_validate_timestamp),
    PlainSerializer(format_datetime, return_type=str, when_used="json"),
]


class LexiconModel(BaseModel):
    """
    Base for every object defined by a lexicon.

    Python attributes are snake_case; wire keys are the lexicon's camelCase names.
    Members of a union set `lexicon_type` and carry it as `$type` on the wire.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    lexicon_type: ClassVar[str | None] = None

    @model_serializer(mode="wrap")
    def _serialize_lexicon(self, handler: Any) -> Any:
        data = handler(self)
        type_id = type(self).lexicon_type
        if type_id and isinstance(data, dict):
            return {TYPE_KEY: type_id, **data}
        return data

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_wire(cls, data: Any) -> Any:
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise DecodeError(format_validation_error(e, cls.__name__)) from e


class UnknownVariant(LexiconModel):
    """A union member whose `$type` this library does not know; kept verbatim."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)

    @model_serializer(mode="wrap")
    def _serialize_lexicon(self, handler: Any) -> Any:
        return {TYPE_KEY: self.type, **{k: v for k, v in self.data.items() if k != TYPE_KEY}}


def decode_union(value: Any, variants: Mapping[str, type[LexiconModel]]) -> Any:
    if isinstance(value, LexiconModel):
        return value
    if not isinstance(value, Mapping):
        raise ValueError("union value must be an object")

    type_id = value.get(TYPE_KEY)
    if not isinstance(type_id, str) or not type_id.strip():
        raise ValueError(f"union value is missing {TYPE_KEY}")

    model = variants.get(type_id)
    if model is None:
        return UnknownVariant(type=type_id, data=dict(value))
    return model.model_validate({k: v for k, v in value.items() if k != TYPE_KEY})


def _serialize_variant(value: Any, info: SerializationInfo) -> Any:
    # Each member serializes itself so its own $type is always the one emitted.
    if isinstance(value, BaseModel):
        return value.model_dump(
            mode=info.mode,
            by_alias=bool(info.by_alias),
            exclude_none=info.exclude_none,
        )
    return value


def lexicon_union(*variants: type[LexiconModel]) -> Any:
    """
    Build an annotated union type over lexicon variants.

    Wire objects are dispatched on `$type`; unrecognized types decode to UnknownVariant.
    """
    registry: dict[str, type[LexiconModel]] = {}
    for variant in variants:
        if not variant.lexicon_type:
            raise TypeError(f"{variant.__name__} has no lexicon_type")
        registry[variant.lexicon_type] = variant

    def _decode(value: Any) -> Any:
        return decode_union(value, registry)

    members = tuple(variants) + (UnknownVariant,)
    return Annotated[
        Union[members],
        BeforeValidator(_decode),
        PlainSerializer(_serialize_variant),
    ]


def format_validation_error(err: ValidationError, name: str) -> str:
    lines: list[str] = [f"Invalid {name}:"]
    for item in err.errors():
        loc = ".".join(str(part) for part in item.get("loc", [])) or "<root>"
        msg = item.get("msg", "invalid value")
        lines.append(f"- {loc}: {msg}")
    return "\n".join(lines)


class BlobRef(LexiconModel):
    link: str = Field(alias="$link")


class Blob(LexiconModel):
    """A reference to uploaded binary data (image, video, caption file)."""

    lexicon_type: ClassVar[str | None] = "blob"

    ref: BlobRef
    mime_type: str
    size: int = Field(ge=0)
