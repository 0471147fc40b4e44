from __future__ import annotations

import re
from datetime import datetime, timezone

from .errors import DecodeError

_ISO_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})[Tt ]"
    r"(?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<tz>[Zz]|[+-]\d{2}:?\d{2})?$"
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_wire_precision(value: datetime) -> datetime:
    """
    Return `value` as an aware UTC datetime cut to whole milliseconds.

    This is exactly what survives format_datetime() and parse_iso8601().
    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def format_datetime(value: datetime) -> str:
    """
    Render a datetime in the protocol's timestamp format.

    Output is always UTC with millisecond precision, e.g. 2024-05-19T12:34:56.789Z.
    """
    value = to_wire_precision(value)
    millis = value.microsecond // 1000
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{millis:03d}Z"


def parse_iso8601(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    Fractions longer than microseconds are cut to six digits. A missing offset
    is read as UTC. Raises ValueError on anything else.
    """
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")

    m = _ISO_RE.match(value.strip())
    if m is None:
        raise ValueError(f"not an ISO-8601 timestamp: {value!r}")

    fraction = (m.group("fraction") or "")[:6].ljust(6, "0")
    tz = m.group("tz") or "Z"
    if tz in ("Z", "z"):
        tz = "+00:00"
    elif ":" not in tz:
        tz = f"{tz[:3]}:{tz[3:]}"

    text = f"{m.group('date')}T{m.group('time')}.{fraction}{tz}"
    parsed = datetime.fromisoformat(text)
    return parsed.astimezone(timezone.utc)


def parse_datetime(value: str, *, field: str = "timestamp") -> datetime:
    try:
        return parse_iso8601(value)
    except ValueError as e:
        raise DecodeError(f"{field} is not a valid ISO-8601 timestamp: {e}") from e
