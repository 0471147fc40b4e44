from __future__ import annotations


class ATProtoError(RuntimeError):
    """Base class for every error raised by this library."""


class ConfigError(ATProtoError):
    """Raised when configuration is missing or invalid."""


class MissingSessionError(ConfigError):
    """Raised when a call needs an active session and none is set."""


class RequestPrepareError(ATProtoError):
    """Raised when a request URL cannot be built from the host and method."""


class TransportError(ATProtoError):
    """Raised when the HTTP request itself fails."""


class XRPCError(TransportError):
    """Raised when the server answers an XRPC call with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        *,
        error: str | None = None,
        message: str | None = None,
        method_id: str | None = None,
    ) -> None:
        self.status_code = int(status_code)
        self.error = error
        self.message = message
        self.method_id = method_id

        parts = [f"HTTP {self.status_code}"]
        if method_id:
            parts.append(method_id)
        if error:
            parts.append(error)
        text = " ".join(parts)
        if message:
            text = f"{text}: {message}"
        super().__init__(text)


class DecodeError(ATProtoError):
    """Raised when a wire value does not match its expected schema."""


class EncodeError(ATProtoError):
    """Raised when a value cannot be represented in the wire format."""
