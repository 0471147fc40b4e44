from __future__ import annotations

import json
import traceback
import uuid
from pathlib import Path
from threading import Lock
from typing import Any, TextIO

from .timestamps import format_datetime, utc_now


def _clip(text: str, *, limit: int) -> str:
    s = str(text or "")
    if len(s) <= limit:
        return s
    return s[: max(0, limit - 1)] + "…"


def _error_payload(exc: BaseException) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": type(exc).__name__,
        "message": _clip(str(exc), limit=2000),
    }
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        payload["status"] = status
    cause = exc.__cause__
    if cause is not None:
        payload["cause"] = f"{type(cause).__name__}: {_clip(str(cause), limit=500)}"
    return payload


class RequestLog:
    """
    Append-only JSONL log of XRPC traffic.

    One JSON object per line with ts, level, event, log_id and optional url/data.
    Authorization headers and request bodies are never written.
    """

    def __init__(self, path: str | Path, *, overwrite: bool = False) -> None:
        self._path = Path(path)
        self._mode = "w" if overwrite else "a"
        self._log_id = uuid.uuid4().hex
        self._fp: TextIO | None = None
        self._lock = Lock()

    @classmethod
    def open(cls, path: str | Path, *, overwrite: bool = False) -> "RequestLog":
        log = cls(path, overwrite=overwrite)
        log._ensure_open()
        return log

    @property
    def path(self) -> Path:
        return self._path

    def close(self) -> None:
        with self._lock:
            if self._fp is None:
                return
            try:
                self._fp.flush()
            finally:
                self._fp.close()
                self._fp = None

    def __enter__(self) -> "RequestLog":
        self._ensure_open()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def request_started(self, method_id: str, *, url: str, http_method: str) -> None:
        self.write("INFO", "xrpc_request_started", url=url, method=method_id, http=http_method)

    def request_completed(
        self, method_id: str, *, url: str, status: int, elapsed_ms: float
    ) -> None:
        self.write(
            "INFO",
            "xrpc_request_completed",
            url=url,
            method=method_id,
            status=int(status),
            elapsed_ms=round(float(elapsed_ms), 1),
        )

    def request_failed(
        self, method_id: str, *, url: str, exc: BaseException, elapsed_ms: float
    ) -> None:
        self.write(
            "ERROR",
            "xrpc_request_failed",
            url=url,
            method=method_id,
            elapsed_ms=round(float(elapsed_ms), 1),
            error=_error_payload(exc),
        )

    def exception(self, event: str, *, exc: BaseException, **data: Any) -> None:
        err = _error_payload(exc)
        err["traceback"] = _clip(
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            limit=12000,
        )
        self.write("ERROR", event, error=err, **data)

    def write(self, level: str, event: str, *, url: str | None = None, **data: Any) -> None:
        record: dict[str, Any] = {
            "ts": format_datetime(utc_now()),
            "level": (level or "").strip().upper() or "INFO",
            "event": (event or "").strip() or "event",
            "log_id": self._log_id,
        }
        if url:
            record["url"] = url
        if data:
            record["data"] = data

        line = json.dumps(
            record,
            ensure_ascii=False,
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )

        self._ensure_open()
        with self._lock:
            if self._fp is None:
                return
            self._fp.write(line + "\n")
            self._fp.flush()

    def _ensure_open(self) -> None:
        with self._lock:
            if self._fp is not None:
                return
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fp = self._path.open(self._mode, encoding="utf-8", newline="\n")
            # Reopening after close() must not wipe earlier lines.
            self._mode = "a"
