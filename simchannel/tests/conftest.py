import asyncio
from typing import Any, Iterable, Optional

import pytest
from websockets.protocol import State

from simchannel.config import ClientSettings
from simchannel.transport.errors import HandshakeRejected
from simchannel.transport.retry import ConnectionAttempt
from simchannel.transport.websocket import WebSocketTransport
from simchannel.version import VersionInfo

_EOF = object()

_REASONS = {
    408: "Request Timeout",
    503: "Service Unavailable",
    524: "A Timeout Occurred",
    401: "Unauthorized",
}


class _FakeRawTransport:
    def __init__(self, socket: "FakeSocket") -> None:
        self._socket = socket
        self.aborted = False

    def abort(self) -> None:
        self.aborted = True
        self._socket._finish(1006, "")


class FakeSocket:
    """In-memory stand-in for a websockets ClientConnection."""

    def __init__(self) -> None:
        self.state = State.OPEN
        self.close_code: Optional[int] = None
        self.close_reason: Optional[str] = None
        self.sent: list[str] = []
        self.close_calls = 0
        self.transport = _FakeRawTransport(self)
        self._frames: asyncio.Queue[Any] = asyncio.Queue()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        while True:
            frame = await self._frames.get()
            if frame is _EOF:
                return
            if isinstance(frame, BaseException):
                raise frame
            yield frame

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls += 1
        self._finish(code, reason)

    def feed(self, frame: Any) -> None:
        self._frames.put_nowait(frame)

    def fail(self, exc: BaseException) -> None:
        """Make the next read raise ``exc`` without closing the connection."""

        self._frames.put_nowait(exc)

    def drop(self, code: int = 1006, reason: str = "") -> None:
        """Simulate the peer or network ending the connection."""

        self._finish(code, reason)

    def _finish(self, code: int, reason: str) -> None:
        if self.state is State.CLOSED:
            return
        self.state = State.CLOSED
        self.close_code = code
        self.close_reason = reason
        self._frames.put_nowait(_EOF)


class ScriptedConnector:
    """Connector that plays back a list of outcomes, one per attempt.

    An ``int`` is an HTTP rejection status, an exception instance is raised
    as-is, anything else (or running out of outcomes) opens a FakeSocket.
    """

    def __init__(self, outcomes: Iterable[Any] = ()) -> None:
        self._outcomes = list(outcomes)
        self.attempts: list[ConnectionAttempt] = []
        self.sockets: list[FakeSocket] = []

    async def __call__(self, attempt: ConnectionAttempt) -> FakeSocket:
        self.attempts.append(attempt)
        outcome = self._outcomes.pop(0) if self._outcomes else "ok"
        if isinstance(outcome, int):
            raise HandshakeRejected(outcome, _REASONS.get(outcome, ""))
        if isinstance(outcome, BaseException):
            raise outcome
        socket = FakeSocket()
        self.sockets.append(socket)
        return socket


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(
        token="secret-token",
        server_url="wss://sim.test/api/ws/beta",
        client_name="wokwi-cli",
        retry_delays_seconds=[1.0, 2.0, 5.0, 10.0, 20.0],
    )


@pytest.fixture
def fake_socket():
    return FakeSocket


@pytest.fixture
def make_transport(settings):
    def _make(outcomes: Iterable[Any] = (), *, transport_settings: Optional[ClientSettings] = None, **kwargs: Any):
        connector = ScriptedConnector(outcomes)
        sleep = kwargs.pop("sleep", None) or RecordingSleep()
        kwargs.setdefault("version_provider", lambda: VersionInfo(version="1.2.3", build_id="abc123"))
        transport = WebSocketTransport(
            settings=transport_settings or settings,
            connector=connector,
            sleep=sleep,
            **kwargs,
        )
        return transport, connector, sleep

    return _make
