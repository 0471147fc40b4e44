from __future__ import annotations

from pydantic import Field

from .actor import Label, ProfileView
from .lexicon import LexiconModel, Timestamp
from .richtext import Facet


class GeneratorViewerState(LexiconModel):
    like: str | None = None


class GeneratorView(LexiconModel):
    """A feed generator as served by the app view."""

    uri: str
    cid: str
    did: str
    creator: ProfileView
    display_name: str
    description: str | None = None
    description_facets: list[Facet] | None = None
    avatar: str | None = None
    like_count: int | None = Field(default=None, ge=0)
    accepts_interactions: bool | None = None
    labels: list[Label] | None = None
    viewer: GeneratorViewerState | None = None
    indexed_at: Timestamp


class GetPopularFeedGeneratorsOutput(LexiconModel):
    feeds: list[GeneratorView]
    cursor: str | None = None
