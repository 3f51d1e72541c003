"""Classification of failed upgrade handshakes."""

from __future__ import annotations

import enum
from typing import Optional

from websockets.exceptions import InvalidStatus

from simchannel.transport.errors import HandshakeRejected

REQUEST_TIMEOUT = 408
SERVICE_UNAVAILABLE = 503
CF_ORIGIN_TIMEOUT = 524

RETRYABLE_STATUSES = frozenset({REQUEST_TIMEOUT, SERVICE_UNAVAILABLE, CF_ORIGIN_TIMEOUT})


class HandshakeVerdict(str, enum.Enum):
    RETRYABLE = "retryable"
    FATAL = "fatal"


def classify_status(status: Optional[int]) -> HandshakeVerdict:
    """Map an HTTP upgrade rejection status to a retry decision.

    Only statuses that mean the origin or an intermediary was briefly
    overloaded are retried; anything else (auth, protocol, missing status)
    is fatal.
    """

    if status in RETRYABLE_STATUSES:
        return HandshakeVerdict.RETRYABLE
    return HandshakeVerdict.FATAL


def status_of(exc: BaseException) -> tuple[Optional[int], Optional[str]]:
    """Extract ``(status, reason)`` from an HTTP rejection, ``(None, None)`` otherwise."""

    if isinstance(exc, HandshakeRejected):
        return exc.status, exc.reason
    if isinstance(exc, InvalidStatus):
        response = exc.response
        return response.status_code, response.reason_phrase
    return None, None


def classify_failure(exc: BaseException) -> HandshakeVerdict:
    """DNS, refused connection, TLS and other non-HTTP errors are always fatal."""

    status, _ = status_of(exc)
    return classify_status(status)
