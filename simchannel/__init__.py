"""Resilient message channel between a client and a remote simulation service."""

__version__ = "0.1.0"

from simchannel.config import ClientSettings, get_settings
from simchannel.transport import BaseTransport, MemoryTransport, WebSocketTransport, build_transport

__all__ = [
    "__version__",
    "ClientSettings",
    "get_settings",
    "BaseTransport",
    "MemoryTransport",
    "WebSocketTransport",
    "build_transport",
]
