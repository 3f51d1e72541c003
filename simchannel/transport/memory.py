"""In-process channel transport for client and service sharing one event loop."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Optional

from simchannel.transport.base import BaseTransport, CloseHandler, ErrorHandler, MessageHandler, TransportState
from simchannel.transport.errors import TransportStateError

LOGGER = logging.getLogger(__name__)


class MemoryTransport(BaseTransport):
    """One end of a linked pair; messages are handed over as-is.

    There is no handshake, no serialization and no retry. Messages sent
    before the peer connects wait in the peer's inbox and are delivered, in
    order, once it does. ``close()`` on either end unlinks both and discards
    anything still queued; neither end gets a close notification.
    """

    def __init__(
        self,
        *,
        on_message: Optional[MessageHandler] = None,
        on_close: Optional[CloseHandler] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        super().__init__(on_message=on_message, on_close=on_close, on_error=on_error)
        self._peer: Optional[MemoryTransport] = None
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        self._pump_task: Optional[asyncio.Task[None]] = None

    @classmethod
    def pair(cls) -> tuple[MemoryTransport, MemoryTransport]:
        left, right = cls(), cls()
        left._peer = right
        right._peer = left
        return left, right

    @property
    def peer(self) -> Optional[MemoryTransport]:
        return self._peer

    async def connect(self) -> None:
        if self._state is TransportState.OPEN:
            return
        if self._state is TransportState.CLOSED or self._peer is None:
            raise TransportStateError("In-process channel is closed or was never linked")
        self._state = TransportState.OPEN
        self._pump_task = asyncio.create_task(self._pump(), name="simchannel-memory-pump")
        LOGGER.debug("Memory transport connect()")

    async def send(self, message: Any) -> None:
        peer = self._peer
        if self._state is not TransportState.OPEN or peer is None:
            raise TransportStateError(f"Cannot send while transport is {self._state.value}")
        LOGGER.debug("Memory transport send(): %s", message)
        peer._inbox.put_nowait(message)

    async def close(self) -> None:
        peer = self._peer
        self._peer = None
        if peer is not None:
            peer._peer = None
            await peer._shutdown()
        await self._shutdown()

    async def _shutdown(self) -> None:
        if self._state is TransportState.CLOSED:
            return
        LOGGER.debug("Memory transport close()")
        self._state = TransportState.CLOSED
        task, self._pump_task = self._pump_task, None
        while not self._inbox.empty():
            self._inbox.get_nowait()
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _pump(self) -> None:
        while self._state is TransportState.OPEN:
            message = await self._inbox.get()
            await self._emit_message(message)
