from __future__ import annotations

import re
from typing import Annotated
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

DEFAULT_PDS_URL = "https://bsky.social"


def _validate_env_var_name(value: str) -> str:
    name = (value or "").strip()
    if not _ENV_NAME_RE.fullmatch(name):
        raise ValueError("must be a valid environment variable name")
    return name


PositiveFloat = Annotated[float, Field(gt=0)]


class ServiceConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    # An empty value is accepted here and rejected when a request is built.
    pds_url: str = DEFAULT_PDS_URL

    @field_validator("pds_url")
    @classmethod
    def _pds_url_must_be_http(cls, v: str) -> str:
        url = (v or "").strip().rstrip("/")
        if not url:
            return ""
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError("must be an http(s) URL")
        return url


class HttpConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    timeout_seconds: PositiveFloat | None = None  # None keeps the transport default
    user_agent: str = "atlex"


class AuthConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    identifier_env: str = "BSKY_IDENTIFIER"
    password_env: str = "BSKY_APP_PASSWORD"

    @field_validator("identifier_env", "password_env")
    @classmethod
    def _env_must_be_valid(cls, v: str) -> str:
        return _validate_env_var_name(v)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    request_log: str | None = None


class ClientConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
