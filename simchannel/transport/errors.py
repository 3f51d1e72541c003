"""Transport exception hierarchy."""

from __future__ import annotations

from typing import Optional


class TransportError(RuntimeError):
    """Base class for all transport-layer errors."""


class HandshakeRejected(TransportError):
    """The service answered the upgrade request with a non-101 HTTP status."""

    def __init__(self, status: int, reason: str = "") -> None:
        super().__init__(f"{status} {reason}".strip())
        self.status = status
        self.reason = reason


class HandshakeError(TransportError):
    """The connection could not be established and will not be retried."""

    def __init__(self, url: str, detail: str, *, status: Optional[int] = None, reason: Optional[str] = None) -> None:
        super().__init__(f"Error connecting to {url}: {detail}")
        self.url = url
        self.status = status
        self.reason = reason


class RetryExhaustedError(TransportError):
    """Every delay of the retry schedule was used up."""

    def __init__(self, url: str, attempts: int) -> None:
        super().__init__(f"Failed to connect to {url} after {attempts} attempt(s). Giving up.")
        self.url = url
        self.attempts = attempts


class TransportStateError(TransportError):
    """Operation not valid in the transport's current state."""


class TransportClosedError(TransportError):
    """The transport was closed while a connect() was still pending."""


class UnsupportedFrameError(TransportError):
    """A frame type outside the supported protocol (binary) was received."""

    def __init__(self, size: int) -> None:
        super().__init__(f"Unsupported binary frame ({size} bytes)")
        self.size = size


__all__ = [
    "TransportError",
    "HandshakeRejected",
    "HandshakeError",
    "RetryExhaustedError",
    "TransportStateError",
    "TransportClosedError",
    "UnsupportedFrameError",
]
