"""WebSocket transport with a fixed retry schedule for transient handshake failures."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol, Union

from websockets.asyncio.client import ClientConnection, connect as ws_connect
from websockets.exceptions import ConnectionClosed, InvalidStatus
from websockets.protocol import State

from simchannel.config import ClientSettings, get_settings
from simchannel.messages import decode_message, encode_message
from simchannel.transport.base import BaseTransport, CloseHandler, ErrorHandler, MessageHandler, TransportState
from simchannel.transport.errors import (
    HandshakeError,
    HandshakeRejected,
    RetryExhaustedError,
    TransportClosedError,
    TransportStateError,
    UnsupportedFrameError,
)
from simchannel.transport.handshake import HandshakeVerdict, classify_failure, status_of
from simchannel.transport.retry import ConnectionAttempt, RetrySchedule
from simchannel.version import VersionInfo, read_version, user_agent

LOGGER = logging.getLogger(__name__)

ABNORMAL_CLOSURE = 1006


class ClientSocket(Protocol):
    """The slice of ``websockets`` ``ClientConnection`` the transport relies on."""

    state: State
    close_code: Optional[int]
    close_reason: Optional[str]
    transport: asyncio.BaseTransport

    def __aiter__(self) -> AsyncIterator[Union[str, bytes]]:
        ...

    async def send(self, message: str) -> None:
        ...

    async def close(self, code: int = 1000, reason: str = "") -> None:
        ...


Connector = Callable[[ConnectionAttempt], Awaitable[ClientSocket]]


class WebSocketTransport(BaseTransport):
    """Single logical channel to the simulation service over one WebSocket at a time.

    ``connect()`` keeps trying while the service answers the upgrade with a
    transient status (see :mod:`simchannel.transport.handshake`), waiting the
    next delay of the :class:`RetrySchedule` between tries. Every try builds a
    fresh socket and re-reads the version metadata for the ``User-Agent``.

    Closures initiated by the transport are tracked per connection id, so a
    close notification is only ever suppressed for the exact socket the
    transport itself shut down.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        server_url: Optional[str] = None,
        *,
        settings: Optional[ClientSettings] = None,
        schedule: Optional[RetrySchedule] = None,
        connector: Optional[Connector] = None,
        version_provider: Optional[Callable[[], VersionInfo]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        decoder: Callable[[str], Any] = decode_message,
        encoder: Callable[[Any], str] = encode_message,
        on_message: Optional[MessageHandler] = None,
        on_close: Optional[CloseHandler] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        super().__init__(on_message=on_message, on_close=on_close, on_error=on_error)
        self._settings = settings or get_settings()
        self._url = str(server_url or self._settings.server_url)
        self._token = token if token is not None else self._settings.token
        self._schedule = schedule or RetrySchedule.from_settings(self._settings)
        self._connector: Connector = connector or self._open_websocket
        self._version_provider = version_provider or read_version
        self._sleep = sleep or asyncio.sleep
        self._decoder = decoder
        self._encoder = encoder
        self._persist_attempts = self._settings.persist_retry_attempts
        self._attempt_index = 0
        self._connection_ids = itertools.count(1)
        self._socket: Optional[ClientSocket] = None
        self._socket_id: Optional[int] = None
        self._reader_task: Optional[asyncio.Task[None]] = None
        self._expected_closes: set[int] = set()

    @property
    def url(self) -> str:
        return self._url

    async def connect(self) -> None:
        if self._state not in (TransportState.IDLE, TransportState.CLOSED):
            raise TransportStateError(f"connect() not allowed while transport is {self._state.value}")

        start = self._attempt_index if self._persist_attempts else 0
        index = start
        self._state = TransportState.CONNECTING
        try:
            while True:
                attempt = self._new_attempt(index)
                LOGGER.info("Connecting to %s", self._url)
                try:
                    socket = await self._connector(attempt)
                except Exception as exc:  # noqa: BLE001
                    self._raise_if_closed(exc)
                    delay = self._retry_delay(exc, index, start)
                    self._state = TransportState.RETRY_WAIT
                    LOGGER.info("Will retry in %.1fs...", delay)
                    await self._sleep(delay)
                    index += 1
                    self._raise_if_closed()
                    LOGGER.info("Retrying connection to %s...", self._url)
                    self._state = TransportState.CONNECTING
                    continue

                if self._state is TransportState.CLOSED:
                    await self._discard(socket, attempt.connection_id)
                    self._raise_if_closed()
                self._attach(socket, attempt.connection_id)
                LOGGER.info("Connected to %s after %s attempt(s)", self._url, index - start + 1)
                return
        finally:
            if self._persist_attempts:
                self._attempt_index = index
            if self._state in (TransportState.CONNECTING, TransportState.RETRY_WAIT):
                self._state = TransportState.CLOSED

    async def send(self, message: Any) -> None:
        socket = self._socket
        if self._state is not TransportState.OPEN or socket is None:
            raise TransportStateError(f"Cannot send while transport is {self._state.value}")
        payload = self._encoder(message)
        LOGGER.debug("WebSocket send: %s", payload)
        try:
            await socket.send(payload)
        except ConnectionClosed as exc:
            # The reader reports the termination through on_close.
            LOGGER.debug("Dropped send on closed connection to %s: %s", self._url, exc)

    async def close(self) -> None:
        if self._state in (TransportState.CONNECTING, TransportState.RETRY_WAIT):
            LOGGER.info("Closing transport to %s while connecting", self._url)
            self._state = TransportState.CLOSED
            return
        if self._state is TransportState.IDLE:
            self._state = TransportState.CLOSED
            return
        if self._state is not TransportState.OPEN:
            return

        socket, connection_id, reader = self._socket, self._socket_id, self._reader_task
        assert socket is not None and connection_id is not None
        self._state = TransportState.CLOSING
        self._expected_closes.add(connection_id)
        LOGGER.info("Closing WebSocket transport to %s", self._url)
        try:
            if socket.state is State.OPEN:
                await socket.close()
            else:
                socket.transport.abort()
        finally:
            if reader is not None and reader is not asyncio.current_task():
                await reader
            self._detach(connection_id)
            self._state = TransportState.CLOSED

    def _new_attempt(self, index: int) -> ConnectionAttempt:
        info = self._version_provider()
        return ConnectionAttempt(
            url=self._url,
            token=self._token,
            user_agent=user_agent(self._settings.client_name, info),
            index=index,
            connection_id=next(self._connection_ids),
        )

    def _retry_delay(self, exc: Exception, index: int, start: int) -> float:
        """Return the wait before the next attempt, or raise if the failure is final."""

        status, reason = status_of(exc)
        if classify_failure(exc) is HandshakeVerdict.FATAL:
            self._state = TransportState.CLOSED
            if status is None:
                raise HandshakeError(self._url, str(exc) or type(exc).__name__) from exc
            detail = f"{status} {reason or ''}".strip()
            raise HandshakeError(self._url, detail, status=status, reason=reason) from exc

        delay = self._schedule.delay_for(index)
        if delay is None:
            self._state = TransportState.CLOSED
            raise RetryExhaustedError(self._url, index - start + 1) from exc
        LOGGER.warning("Connection to %s failed: %s (%s).", self._url, reason or "", status)
        return delay

    def _raise_if_closed(self, cause: Optional[BaseException] = None) -> None:
        if self._state is TransportState.CLOSED:
            raise TransportClosedError(f"Transport to {self._url} was closed while connecting") from cause

    def _attach(self, socket: ClientSocket, connection_id: int) -> None:
        self._socket = socket
        self._socket_id = connection_id
        self._state = TransportState.OPEN
        self._reader_task = asyncio.create_task(
            self._read_frames(socket, connection_id),
            name=f"simchannel-reader-{connection_id}",
        )

    def _detach(self, connection_id: int) -> None:
        if self._socket_id != connection_id:
            return
        self._socket = None
        self._socket_id = None
        self._reader_task = None

    async def _discard(self, socket: ClientSocket, connection_id: int) -> None:
        self._expected_closes.add(connection_id)
        try:
            await socket.close()
        except Exception:  # noqa: BLE001
            LOGGER.debug("Suppress close error for discarded connection %s", connection_id, exc_info=True)
        # No reader was ever attached, so nothing will consume the mark.
        self._expected_closes.discard(connection_id)

    async def _read_frames(self, socket: ClientSocket, connection_id: int) -> None:
        try:
            async for frame in socket:
                await self._dispatch_frame(frame)
        except ConnectionClosed:
            pass
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Reader for %s failed: %s", self._url, exc)
            # Nothing reads this socket any more; release it before reporting.
            socket.transport.abort()
            await self._emit_error(exc)
        await self._socket_closed(socket, connection_id)

    async def _dispatch_frame(self, frame: Union[str, bytes]) -> None:
        if not isinstance(frame, str):
            await self._emit_error(UnsupportedFrameError(len(frame)))
            return
        LOGGER.debug("WebSocket receive: %s", frame)
        try:
            message = self._decoder(frame)
        except Exception as exc:  # noqa: BLE001
            await self._emit_error(exc)
            return
        await self._emit_message(message)

    async def _socket_closed(self, socket: ClientSocket, connection_id: int) -> None:
        if connection_id in self._expected_closes:
            self._expected_closes.discard(connection_id)
            LOGGER.debug("Suppressed close notification for connection %s", connection_id)
            return
        if self._socket_id == connection_id:
            self._detach(connection_id)
            self._state = TransportState.CLOSED
        code = socket.close_code if socket.close_code is not None else ABNORMAL_CLOSURE
        reason = socket.close_reason
        LOGGER.warning("Connection to %s closed unexpectedly: code %s", self._url, code)
        await self._emit_close(code, reason)

    async def _open_websocket(self, attempt: ConnectionAttempt) -> ClientConnection:
        try:
            return await ws_connect(
                attempt.url,
                additional_headers=attempt.headers,
                user_agent_header=None,
                open_timeout=self._settings.open_timeout_seconds,
                close_timeout=self._settings.close_timeout_seconds,
            )
        except InvalidStatus as exc:
            response = exc.response
            raise HandshakeRejected(response.status_code, response.reason_phrase) from exc
