from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .errors import DecodeError

_PDS_SERVICE_ID = "#atproto_pds"
_PDS_SERVICE_TYPE = "AtprotoPersonalDataServer"


@dataclass(frozen=True)
class Session:
    """
    An authenticated account on a given service endpoint.

    Handed explicitly to every client that should act as this account.
    """

    did: str
    handle: str
    access_jwt: str
    refresh_jwt: str
    service_endpoint: str
    email: str | None = None
    active: bool | None = None

    def __repr__(self) -> str:
        return (
            f"Session(did={self.did!r}, handle={self.handle!r}, "
            f"service_endpoint={self.service_endpoint!r})"
        )


def pds_endpoint_from_did_doc(did_doc: Any) -> str | None:
    """Return the #atproto_pds service endpoint of a DID document, if any."""
    if not isinstance(did_doc, Mapping):
        return None

    services = did_doc.get("service")
    if not isinstance(services, list):
        return None

    for svc in services:
        if not isinstance(svc, Mapping):
            continue
        svc_id = svc.get("id")
        if not isinstance(svc_id, str) or not svc_id.endswith(_PDS_SERVICE_ID):
            continue
        if svc.get("type") not in (None, _PDS_SERVICE_TYPE):
            continue
        endpoint = svc.get("serviceEndpoint")
        if isinstance(endpoint, str) and endpoint.strip():
            return endpoint.strip().rstrip("/")
    return None


def _required_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise DecodeError(f"createSession response is missing '{key}'")
    return value


def session_from_create_session(data: Any, *, default_endpoint: str) -> Session:
    """
    Build a Session from a com.atproto.server.createSession response body.

    The service endpoint comes from the returned DID document and falls back to
    the host the session was created on.
    """
    if not isinstance(data, Mapping):
        raise DecodeError("createSession response must be a JSON object")

    email = data.get("email")
    active = data.get("active")

    return Session(
        did=_required_str(data, "did"),
        handle=_required_str(data, "handle"),
        access_jwt=_required_str(data, "accessJwt"),
        refresh_jwt=_required_str(data, "refreshJwt"),
        service_endpoint=pds_endpoint_from_did_doc(data.get("didDoc"))
        or default_endpoint.rstrip("/"),
        email=email if isinstance(email, str) else None,
        active=active if isinstance(active, bool) else None,
    )
