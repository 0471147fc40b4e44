from __future__ import annotations

from typing import ClassVar

from .lexicon import LexiconModel, lexicon_union


class SelfLabel(LexiconModel):
    val: str


class SelfLabels(LexiconModel):
    """Content warnings the author applies to their own record."""

    lexicon_type: ClassVar[str | None] = "com.atproto.label.defs#selfLabels"

    values: list[SelfLabel]

    @classmethod
    def of(cls, *values: str) -> "SelfLabels":
        return cls(values=[SelfLabel(val=v) for v in values])


PostSelfLabels = lexicon_union(SelfLabels)
