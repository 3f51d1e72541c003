import pytest
from websockets.datastructures import Headers
from websockets.exceptions import InvalidStatus
from websockets.http11 import Response

from simchannel.transport.errors import HandshakeRejected
from simchannel.transport.handshake import HandshakeVerdict, classify_failure, classify_status, status_of


@pytest.mark.parametrize("status", [408, 503, 524])
def test_transient_statuses_are_retryable(status):
    assert classify_status(status) is HandshakeVerdict.RETRYABLE


@pytest.mark.parametrize("status", [None, 200, 301, 400, 401, 403, 404, 426, 429, 500, 502, 504, 522])
def test_other_statuses_are_fatal(status):
    assert classify_status(status) is HandshakeVerdict.FATAL


def test_rejection_exceptions_expose_status():
    assert status_of(HandshakeRejected(503, "Service Unavailable")) == (503, "Service Unavailable")
    library_error = InvalidStatus(Response(524, "A Timeout Occurred", Headers()))
    assert status_of(library_error) == (524, "A Timeout Occurred")
    assert classify_failure(library_error) is HandshakeVerdict.RETRYABLE


@pytest.mark.parametrize(
    "exc",
    [
        ConnectionRefusedError("refused"),
        OSError("Name or service not known"),
        TimeoutError(),
        ValueError("bad uri"),
    ],
)
def test_non_http_failures_are_fatal(exc):
    assert status_of(exc) == (None, None)
    assert classify_failure(exc) is HandshakeVerdict.FATAL
