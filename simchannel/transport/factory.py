"""Build the transport selected by the client settings."""

from __future__ import annotations

import logging
from typing import Any, Optional

from simchannel.config import ClientSettings, get_settings
from simchannel.transport.base import BaseTransport
from simchannel.transport.memory import MemoryTransport
from simchannel.transport.websocket import WebSocketTransport

LOGGER = logging.getLogger(__name__)


def build_transport(settings: Optional[ClientSettings] = None, **kwargs: Any) -> BaseTransport:
    """Return a new, unconnected transport.

    For ``transport="memory"`` the client end of a fresh pair is returned; the
    in-process service attaches to ``transport.peer``. Keyword arguments are
    passed through to the transport constructor.
    """

    settings = settings or get_settings()
    if settings.transport == "memory":
        LOGGER.debug("Initialising in-process channel")
        client, _ = MemoryTransport.pair()
        for name in ("on_message", "on_close", "on_error"):
            handler = kwargs.pop(name, None)
            if handler:
                getattr(client, name)(handler)
        if kwargs:
            raise TypeError(f"Unexpected arguments for memory transport: {', '.join(sorted(kwargs))}")
        return client
    LOGGER.debug("Initialising WebSocket transport to %s", settings.server_url)
    return WebSocketTransport(settings=settings, **kwargs)
