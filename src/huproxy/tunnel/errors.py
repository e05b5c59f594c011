"""
Error taxonomy for tunnel sessions.

Setup errors (TunnelSetupError) happen before any data is relayed and are
reported to the client through the HTTP response of the tunnel request.
Relay errors (RelayError) happen after the connection has been repurposed as
a tunnel; they can only be logged, and the tunnel closes.
"""


# =============================================================================
# Setup Errors
# =============================================================================


class TunnelSetupError(Exception):
    """
    Base class for errors raised while negotiating a tunnel session.

    Attributes:
        status_code: HTTP status reported when the request can still be rejected.
        close_code: WebSocket close code used when the server cannot send an
            HTTP denial response.
        committed: True once the WebSocket upgrade has been completed. A
            committed request can no longer be answered with a status code.
    """

    status_code: int = 500
    close_code: int = 1011

    def __init__(self, message: str, committed: bool = False):
        super().__init__(message)
        self.committed = committed


class MissingTarget(TunnelSetupError):
    """Host or port of the tunnel target is empty."""

    status_code = 400
    close_code = 1008


class UpgradeFailed(TunnelSetupError):
    """The WebSocket upgrade could not be completed."""

    status_code = 502


class DialFailed(TunnelSetupError):
    """The TCP connection to the target could not be established."""

    status_code = 503


# =============================================================================
# Relay Errors
# =============================================================================


class RelayError(Exception):
    """Base class for errors that end a running tunnel session."""


class ProtocolViolation(RelayError):
    """A non-binary message was received on the channel."""


class UnexpectedIOError(RelayError):
    """A read or write failed for a reason other than a clean close."""


class ChannelClosedError(RelayError):
    """The channel was closed, locally or by the peer."""


class DeadlineExceeded(TimeoutError):
    """A TCP read or write did not complete before the connection deadline."""
