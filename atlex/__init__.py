from __future__ import annotations

from .api import (
    PostView,
    create_post,
    create_session,
    get_popular_feed_generators,
    get_post,
    search_actors,
)
from .config import Credentials, load_config, resolve_credentials
from .config_schema import ClientConfig
from .errors import (
    ATProtoError,
    ConfigError,
    DecodeError,
    EncodeError,
    MissingSessionError,
    RequestPrepareError,
    TransportError,
    XRPCError,
)
from .post import (
    PostRecord,
    ReplyReference,
    decode_post_record,
    decode_post_record_json,
    encode_post_record,
    encode_post_record_json,
)
from .session import Session
from .xrpc import XRPCClient

__all__ = [
    "ATProtoError",
    "ClientConfig",
    "ConfigError",
    "Credentials",
    "DecodeError",
    "EncodeError",
    "MissingSessionError",
    "PostRecord",
    "PostView",
    "ReplyReference",
    "RequestPrepareError",
    "Session",
    "TransportError",
    "XRPCClient",
    "XRPCError",
    "create_post",
    "create_session",
    "decode_post_record",
    "decode_post_record_json",
    "encode_post_record",
    "encode_post_record_json",
    "get_popular_feed_generators",
    "get_post",
    "load_config",
    "resolve_credentials",
    "search_actors",
]
