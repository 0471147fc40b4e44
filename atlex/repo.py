from __future__ import annotations

from typing import Any, ClassVar

from pydantic import Field

from .lexicon import LexiconModel


class StrongReference(LexiconModel):
    """A pointer to one exact version of a record: its AT URI plus its content CID."""

    lexicon_type: ClassVar[str | None] = "com.atproto.repo.strongRef"

    uri: str
    cid: str


class CommitMeta(LexiconModel):
    cid: str
    rev: str


class CreateRecordOutput(LexiconModel):
    uri: str
    cid: str
    commit: CommitMeta | None = None
    validation_status: str | None = None


class GetRecordOutput(LexiconModel):
    uri: str
    cid: str | None = None
    value: dict[str, Any] = Field(default_factory=dict)
