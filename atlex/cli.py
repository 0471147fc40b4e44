from __future__ import annotations

import argparse
import json
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

from .api import create_post, create_session, get_popular_feed_generators, search_actors
from .config import load_config, resolve_credentials
from .config_schema import ClientConfig
from .errors import ATProtoError, ConfigError
from .post import PostRecord, encode_post_record
from .request_log import RequestLog
from .timestamps import parse_datetime, utc_now
from .xrpc import XRPCClient


def _add_post_fields(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--text", required=True, help="Post text.")
    parser.add_argument(
        "--lang",
        action="append",
        dest="langs",
        default=None,
        help="Language tag of the text (repeatable).",
    )
    parser.add_argument(
        "--tag",
        action="append",
        dest="tags",
        default=None,
        help="Extra hashtag without '#' (repeatable).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="atlex")

    subparsers = parser.add_subparsers(dest="command", required=True)

    enc = subparsers.add_parser(
        "encode-post",
        help="Print the wire JSON of a post record without sending it.",
    )
    _add_post_fields(enc)
    enc.add_argument(
        "--created-at",
        default=None,
        help="ISO-8601 creation time (defaults to now).",
    )
    enc.set_defaults(_handler=_cmd_encode_post)

    search = subparsers.add_parser("search-actors", help="Search for accounts.")
    search.add_argument("--config", required=True, help="Path to YAML config file.")
    search.add_argument("--query", required=True, help="Search terms.")
    search.add_argument("--limit", type=int, default=None, help="Page size (1-100).")
    search.add_argument("--cursor", default=None, help="Pagination cursor.")
    search.set_defaults(_handler=_cmd_search_actors)

    feeds = subparsers.add_parser("popular-feeds", help="List popular feed generators.")
    feeds.add_argument("--config", required=True, help="Path to YAML config file.")
    feeds.add_argument("--query", default=None, help="Optional search terms.")
    feeds.add_argument("--limit", type=int, default=50, help="Page size (1-100).")
    feeds.add_argument("--cursor", default=None, help="Pagination cursor.")
    feeds.set_defaults(_handler=_cmd_popular_feeds)

    post = subparsers.add_parser(
        "post",
        help="Log in with the configured credentials and publish a post.",
    )
    post.add_argument("--config", required=True, help="Path to YAML config file.")
    _add_post_fields(post)
    post.set_defaults(_handler=_cmd_post)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


@contextmanager
def _client_for(cfg: ClientConfig, command: str) -> Iterator[XRPCClient]:
    log_path = cfg.logging.request_log
    if not log_path:
        yield XRPCClient(cfg)
        return

    with RequestLog.open(log_path) as log:
        log.write("INFO", f"{command}_command_started", pds_url=cfg.service.pds_url)
        try:
            yield XRPCClient(cfg, log=log)
        except Exception as e:
            log.exception(f"{command}_command_failed", exc=e)
            raise
        log.write("INFO", f"{command}_command_finished")


def _record_from_args(args: argparse.Namespace) -> PostRecord:
    created_raw = getattr(args, "created_at", None)
    if created_raw is None:
        created_at = utc_now()
    else:
        created_at = parse_datetime(created_raw, field="--created-at")
    return PostRecord(
        text=args.text,
        languages=args.langs,
        tags=args.tags,
        created_at=created_at,
    )


def _cmd_encode_post(args: argparse.Namespace) -> int:
    _print_json(encode_post_record(_record_from_args(args)))
    return 0


def _cmd_search_actors(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    with _client_for(cfg, "search_actors") as client:
        result = search_actors(client, args.query, limit=args.limit, cursor=args.cursor)
    _print_json(result.to_wire())
    return 0


def _cmd_popular_feeds(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    with _client_for(cfg, "popular_feeds") as client:
        result = get_popular_feed_generators(
            client, args.query, limit=args.limit, cursor=args.cursor
        )
    _print_json(result.to_wire())
    return 0


def _cmd_post(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    creds = resolve_credentials(cfg)
    record = _record_from_args(args)

    with _client_for(cfg, "post") as client:
        session = create_session(client, creds.identifier, creds.password)
        result = create_post(client.with_session(session), record)

    print(f"uri={result.uri}")
    print(f"cid={result.cid}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        handler = getattr(args, "_handler")
        return int(handler(args))
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except ATProtoError as e:
        _eprint(str(e))
        return 3
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
