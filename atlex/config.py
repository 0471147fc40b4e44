from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml
from pydantic import ValidationError

from .config_schema import ClientConfig
from .errors import ConfigError


@dataclass(frozen=True)
class Credentials:
    identifier: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(identifier={self.identifier!r}, password='***')"


def load_config(path: str | Path) -> ClientConfig:
    """
    Load a YAML config file and validate it into a typed ClientConfig.

    Raises ConfigError with a readable validation message on failure.
    """
    p = Path(path)

    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")

    try:
        raw_text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {p}") from e

    try:
        data = yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {p}: {e}") from e

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ConfigError(f"Top-level YAML in {p} must be a mapping/object")

    try:
        return ClientConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(_format_pydantic_errors(e, p)) from e


def resolve_credentials(
    config: ClientConfig, *, environ: Mapping[str, str] | None = None
) -> Credentials:
    """
    Read the account identifier and app password from the environment.

    Both variables must be present and non-empty.
    """
    env = os.environ if environ is None else environ

    identifier_env = config.auth.identifier_env
    password_env = config.auth.password_env

    missing: list[str] = []
    if not (env.get(identifier_env) or "").strip():
        missing.append(identifier_env)
    if not (env.get(password_env) or "").strip():
        missing.append(password_env)

    if missing:
        joined = ", ".join(missing)
        raise ConfigError(f"Missing required environment variables: {joined}")

    return Credentials(
        identifier=env[identifier_env].strip(),
        password=env[password_env].strip(),
    )


def _format_pydantic_errors(err: ValidationError, path: Path) -> str:
    lines: list[str] = [f"Invalid configuration in {path}:"]
    for item in err.errors():
        loc = ".".join(str(part) for part in item.get("loc", [])) or "<root>"
        msg = item.get("msg", "invalid value")
        lines.append(f"- {loc}: {msg}")
    return "\n".join(lines)
