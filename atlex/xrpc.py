from __future__ import annotations

import json
import re
import time
from typing import Any, Iterable, Mapping, TypeVar
from urllib.parse import urlsplit

import requests

from .config_schema import ClientConfig
from .errors import (
    ConfigError,
    DecodeError,
    MissingSessionError,
    RequestPrepareError,
    TransportError,
    XRPCError,
)
from .lexicon import LexiconModel
from .request_log import RequestLog
from .session import Session

T = TypeVar("T", bound=LexiconModel)

NSID_RE = re.compile(
    r"^[a-zA-Z](?:[a-zA-Z0-9-]{0,62})"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,62}))+"
    r"\.[a-zA-Z][a-zA-Z0-9]{0,62}$"
)


def clamp_limit(limit: int, *, lower: int = 1, upper: int = 100) -> int:
    return max(lower, min(int(limit), upper))


def build_request_url(base_url: str, method_id: str) -> str:
    """Join a service host and an NSID into `<host>/xrpc/<nsid>`."""
    base = (base_url or "").strip().rstrip("/")
    parts = urlsplit(base)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise RequestPrepareError(f"Cannot build a request URL from host {base_url!r}")
    if parts.query or parts.fragment:
        raise RequestPrepareError(f"Service host must not carry a query or fragment: {base_url!r}")
    if not NSID_RE.fullmatch(method_id or ""):
        raise RequestPrepareError(f"Not a valid XRPC method id: {method_id!r}")
    return f"{base}/xrpc/{method_id}"


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, str)):
        return str(value)
    raise RequestPrepareError(f"Unsupported query parameter value: {value!r}")


def build_query_items(
    params: Mapping[str, Any] | Iterable[tuple[str, Any]],
) -> list[tuple[str, str]]:
    """
    Flatten parameters into ordered string pairs.

    None values are dropped, lists repeat their key, bools become true/false.
    """
    pairs = params.items() if isinstance(params, Mapping) else params

    items: list[tuple[str, str]] = []
    for key, value in pairs:
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            items.extend((key, _query_value(v)) for v in value if v is not None)
        else:
            items.append((key, _query_value(value)))
    return items


def _error_body(response: Any) -> tuple[str | None, str | None]:
    try:
        data = response.json()
    except ValueError:
        return None, None
    if not isinstance(data, Mapping):
        return None, None
    error = data.get("error")
    message = data.get("message")
    return (
        error if isinstance(error, str) else None,
        message if isinstance(message, str) else None,
    )


class XRPCClient:
    """
    Issues XRPC queries and procedures against a PDS or app view.

    The client carries its configuration and optional session explicitly; there
    is no process-wide session. Every call sends exactly one HTTP request and
    never retries.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        session: Session | None = None,
        http: requests.Session | None = None,
        log: RequestLog | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._session = session
        self._http = http if http is not None else requests.Session()
        self._log = log

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def session(self) -> Session | None:
        return self._session

    def with_session(self, session: Session | None) -> "XRPCClient":
        return XRPCClient(self._config, session=session, http=self._http, log=self._log)

    def require_session(self) -> Session:
        if self._session is None:
            raise MissingSessionError("This call requires an active session; log in first")
        return self._session

    def resolve_base_url(self, *, should_authenticate: bool = True) -> str:
        """
        Pick the host for a call.

        With an active session and authentication requested this is the
        session's service endpoint, otherwise the configured host.
        """
        host = (self._config.service.pds_url or "").strip()
        if not host:
            raise ConfigError("No service host configured (service.pds_url is empty)")

        if should_authenticate and self._session is not None:
            endpoint = (self._session.service_endpoint or "").strip()
            if not endpoint:
                raise MissingSessionError("Active session has no service endpoint")
            return endpoint.rstrip("/")

        return host.rstrip("/")

    def authorization_value(self, *, should_authenticate: bool = True) -> str | None:
        if not should_authenticate or self._session is None:
            return None
        return f"Bearer {self._session.access_jwt}"

    def query(
        self,
        method_id: str,
        *,
        params: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
        output: type[T] | None = None,
        should_authenticate: bool = True,
    ) -> Any:
        return self._send(
            "GET",
            method_id,
            params=params,
            body=None,
            output=output,
            should_authenticate=should_authenticate,
        )

    def procedure(
        self,
        method_id: str,
        *,
        body: Mapping[str, Any] | None = None,
        output: type[T] | None = None,
        should_authenticate: bool = True,
        require_auth: bool = False,
    ) -> Any:
        if require_auth:
            self.require_session()
        return self._send(
            "POST",
            method_id,
            params=None,
            body=body,
            output=output,
            should_authenticate=should_authenticate or require_auth,
        )

    def _headers(self, *, should_authenticate: bool, has_body: bool) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        user_agent = (self._config.http.user_agent or "").strip()
        if user_agent:
            headers["User-Agent"] = user_agent
        if has_body:
            headers["Content-Type"] = "application/json"
        authorization = self.authorization_value(should_authenticate=should_authenticate)
        if authorization:
            headers["Authorization"] = authorization
        return headers

    def _send(
        self,
        http_method: str,
        method_id: str,
        *,
        params: Mapping[str, Any] | Iterable[tuple[str, Any]] | None,
        body: Mapping[str, Any] | None,
        output: type[T] | None,
        should_authenticate: bool,
    ) -> Any:
        url = build_request_url(
            self.resolve_base_url(should_authenticate=should_authenticate),
            method_id,
        )
        headers = self._headers(
            should_authenticate=should_authenticate,
            has_body=body is not None,
        )

        kwargs: dict[str, Any] = {}
        items = build_query_items(params or ())
        if items:
            kwargs["params"] = items
        if body is not None:
            kwargs["data"] = json.dumps(
                body, ensure_ascii=False, separators=(",", ":")
            ).encode("utf-8")
        timeout = self._config.http.timeout_seconds
        if timeout is not None:
            kwargs["timeout"] = timeout

        if self._log is not None:
            self._log.request_started(method_id, url=url, http_method=http_method)

        started = time.monotonic()
        try:
            response = self._http.request(http_method, url, headers=headers, **kwargs)
        except requests.RequestException as e:
            self._log_failure(method_id, url, e, started)
            raise TransportError(f"{http_method} {method_id} failed: {e}") from e

        status = int(response.status_code)
        if not 200 <= status < 300:
            error, message = _error_body(response)
            err = XRPCError(status, error=error, message=message, method_id=method_id)
            self._log_failure(method_id, url, err, started)
            raise err

        if self._log is not None:
            self._log.request_completed(
                method_id,
                url=url,
                status=status,
                elapsed_ms=(time.monotonic() - started) * 1000.0,
            )

        return decode_response(response, output, method_id=method_id)

    def _log_failure(
        self, method_id: str, url: str, exc: BaseException, started: float
    ) -> None:
        if self._log is None:
            return
        self._log.request_failed(
            method_id,
            url=url,
            exc=exc,
            elapsed_ms=(time.monotonic() - started) * 1000.0,
        )


def decode_response(response: Any, output: type[T] | None, *, method_id: str) -> Any:
    """
    Parse a successful response body.

    Returns an `output` instance when given, else the raw JSON value (None for
    an empty body).
    """
    content = getattr(response, "content", b"")
    if not content:
        if output is None:
            return None
        raise DecodeError(f"{method_id} returned an empty body")

    try:
        data = response.json()
    except ValueError as e:
        raise DecodeError(f"{method_id} returned a body that is not JSON: {e}") from e

    if output is None:
        return data
    return output.from_wire(data)
