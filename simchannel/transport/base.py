"""Transport contract shared by every channel implementation."""

from __future__ import annotations

import enum
import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union

LOGGER = logging.getLogger(__name__)

MessageHandler = Callable[[Any], Union[None, Awaitable[None]]]
CloseHandler = Callable[[int, Optional[str]], Union[None, Awaitable[None]]]
ErrorHandler = Callable[[Exception], Union[None, Awaitable[None]]]
Unsubscribe = Callable[[], None]


class TransportState(str, enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    RETRY_WAIT = "retry_wait"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class BaseTransport(ABC):
    """Abstract bidirectional message channel.

    Observers are registered either at construction or through
    :meth:`on_message`, :meth:`on_close` and :meth:`on_error`, each of which
    returns a callable that removes the registration again. Handlers may be
    plain functions or coroutine functions; a coroutine is awaited before the
    next notification is delivered, so messages reach handlers in arrival
    order.

    ``on_close`` observers only hear about *unexpected* terminations. A
    caller-initiated :meth:`close` is never reported.
    """

    def __init__(
        self,
        *,
        on_message: Optional[MessageHandler] = None,
        on_close: Optional[CloseHandler] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        self._message_handlers: list[MessageHandler] = []
        self._close_handlers: list[CloseHandler] = []
        self._error_handlers: list[ErrorHandler] = []
        self._state = TransportState.IDLE
        if on_message:
            self.on_message(on_message)
        if on_close:
            self.on_close(on_close)
        if on_error:
            self.on_error(on_error)

    @property
    def state(self) -> TransportState:
        return self._state

    def on_message(self, handler: MessageHandler) -> Unsubscribe:
        return self._subscribe(self._message_handlers, handler)

    def on_close(self, handler: CloseHandler) -> Unsubscribe:
        return self._subscribe(self._close_handlers, handler)

    def on_error(self, handler: ErrorHandler) -> Unsubscribe:
        return self._subscribe(self._error_handlers, handler)

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def send(self, message: Any) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    async def __aenter__(self) -> BaseTransport:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @staticmethod
    def _subscribe(handlers: list, handler: Callable[..., Any]) -> Unsubscribe:
        handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    async def _emit_message(self, message: Any) -> None:
        await self._notify("message", tuple(self._message_handlers), message)

    async def _emit_close(self, code: int, reason: Optional[str]) -> None:
        await self._notify("close", tuple(self._close_handlers), code, reason)

    async def _emit_error(self, error: Exception) -> None:
        handlers = tuple(self._error_handlers)
        if not handlers:
            LOGGER.error("Unhandled transport error: %s", error)
            return
        await self._notify("error", handlers, error)

    async def _notify(self, kind: str, handlers: tuple[Callable[..., Any], ...], *args: Any) -> None:
        for handler in handlers:
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:  # noqa: BLE001
                LOGGER.warning("Suppress transport %s handler error", kind, exc_info=True)
