"""Transport implementations for the simulation channel."""

from .base import BaseTransport, TransportState
from .errors import (
    HandshakeError,
    HandshakeRejected,
    RetryExhaustedError,
    TransportClosedError,
    TransportError,
    TransportStateError,
    UnsupportedFrameError,
)
from .factory import build_transport
from .handshake import HandshakeVerdict, classify_failure, classify_status
from .memory import MemoryTransport
from .retry import ConnectionAttempt, RetrySchedule
from .websocket import WebSocketTransport

__all__ = [
    "BaseTransport",
    "TransportState",
    "TransportError",
    "HandshakeRejected",
    "HandshakeError",
    "RetryExhaustedError",
    "TransportStateError",
    "TransportClosedError",
    "UnsupportedFrameError",
    "HandshakeVerdict",
    "classify_status",
    "classify_failure",
    "ConnectionAttempt",
    "RetrySchedule",
    "MemoryTransport",
    "WebSocketTransport",
    "build_transport",
]
