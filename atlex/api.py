from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .actor import SearchActorsOutput
from .errors import DecodeError
from .feed import GetPopularFeedGeneratorsOutput
from .post import POST_COLLECTION, PostRecord, decode_post_record, encode_post_record
from .repo import CreateRecordOutput, GetRecordOutput
from .session import Session, session_from_create_session
from .xrpc import XRPCClient, clamp_limit

CREATE_SESSION = "com.atproto.server.createSession"
CREATE_RECORD = "com.atproto.repo.createRecord"
GET_RECORD = "com.atproto.repo.getRecord"
SEARCH_ACTORS = "app.bsky.actor.searchActors"
GET_POPULAR_FEED_GENERATORS = "app.bsky.unspecced.getPopularFeedGenerators"

DEFAULT_SEARCH_LIMIT = 25


@dataclass(frozen=True)
class PostView:
    """A post record fetched from a repository, with its address and CID."""

    uri: str
    cid: str | None
    record: PostRecord


def create_session(
    client: XRPCClient,
    identifier: str,
    password: str,
    *,
    auth_factor_token: str | None = None,
) -> Session:
    """
    Log in with a handle/DID and an app password.

    The returned Session is not stored anywhere; pass it on with
    `client.with_session(session)`.
    """
    body: dict[str, Any] = {"identifier": identifier, "password": password}
    if auth_factor_token is not None:
        body["authFactorToken"] = auth_factor_token

    data = client.procedure(CREATE_SESSION, body=body, should_authenticate=False)
    return session_from_create_session(
        data,
        default_endpoint=client.resolve_base_url(should_authenticate=False),
    )


def search_actors(
    client: XRPCClient,
    query: str,
    *,
    limit: int | None = DEFAULT_SEARCH_LIMIT,
    cursor: str | None = None,
    should_authenticate: bool = True,
) -> SearchActorsOutput:
    """
    Find accounts whose handle, display name or description match `query`.

    `limit` is clamped into [1, 100]; None means the default of 25.
    """
    final_limit = clamp_limit(DEFAULT_SEARCH_LIMIT if limit is None else limit)
    params = [
        ("q", query),
        ("limit", final_limit),
        ("cursor", cursor),
    ]
    return client.query(
        SEARCH_ACTORS,
        params=params,
        output=SearchActorsOutput,
        should_authenticate=should_authenticate,
    )


def get_popular_feed_generators(
    client: XRPCClient,
    query: str | None = None,
    *,
    limit: int | None = 50,
    cursor: str | None = None,
    should_authenticate: bool = True,
) -> GetPopularFeedGeneratorsOutput:
    # Unspecced upstream; the method may change or disappear without notice.
    params = [
        ("limit", None if limit is None else clamp_limit(limit)),
        ("cursor", cursor),
        ("query", query),
    ]
    return client.query(
        GET_POPULAR_FEED_GENERATORS,
        params=params,
        output=GetPopularFeedGeneratorsOutput,
        should_authenticate=should_authenticate,
    )


def create_post(
    client: XRPCClient,
    record: PostRecord,
    *,
    rkey: str | None = None,
    validate: bool | None = None,
    swap_commit: str | None = None,
) -> CreateRecordOutput:
    """Write a post to the session account's repository."""
    session = client.require_session()

    body: dict[str, Any] = {
        "repo": session.did,
        "collection": POST_COLLECTION,
        "record": encode_post_record(record),
    }
    if rkey is not None:
        body["rkey"] = rkey
    if validate is not None:
        body["validate"] = validate
    if swap_commit is not None:
        body["swapCommit"] = swap_commit

    return client.procedure(
        CREATE_RECORD,
        body=body,
        output=CreateRecordOutput,
        require_auth=True,
    )


def get_post(
    client: XRPCClient,
    repo: str,
    rkey: str,
    *,
    cid: str | None = None,
    should_authenticate: bool = True,
) -> PostView:
    out: GetRecordOutput = client.query(
        GET_RECORD,
        params=[
            ("repo", repo),
            ("collection", POST_COLLECTION),
            ("rkey", rkey),
            ("cid", cid),
        ],
        output=GetRecordOutput,
        should_authenticate=should_authenticate,
    )

    value_type = out.value.get("$type")
    if value_type is not None and value_type != POST_COLLECTION:
        raise DecodeError(f"{out.uri} is a {value_type!r} record, not a post")

    return PostView(uri=out.uri, cid=out.cid, record=decode_post_record(out.value))
