from __future__ import annotations

from typing import Any

from .lexicon import LexiconModel, Timestamp


class Label(LexiconModel):
    """A moderation label attached to an account or record by a labeler."""

    src: str
    uri: str
    val: str
    cid: str | None = None
    neg: bool | None = None
    cts: Timestamp | None = None
    exp: Timestamp | None = None


class ViewerState(LexiconModel):
    muted: bool | None = None
    blocked_by: bool | None = None
    blocking: str | None = None
    following: str | None = None
    followed_by: str | None = None


class ProfileView(LexiconModel):
    did: str
    handle: str
    display_name: str | None = None
    description: str | None = None
    avatar: str | None = None
    associated: dict[str, Any] | None = None
    indexed_at: Timestamp | None = None
    created_at: Timestamp | None = None
    viewer: ViewerState | None = None
    labels: list[Label] | None = None


class SearchActorsOutput(LexiconModel):
    actors: list[ProfileView]
    cursor: str | None = None
