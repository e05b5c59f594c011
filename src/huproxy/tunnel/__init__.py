"""
Tunnel core: one WebSocket channel relayed to one TCP connection.

This package negotiates tunnel sessions, relays data in both directions and
coordinates their teardown.
"""

from huproxy.tunnel.channel import ChannelMessage, WebSocketChannel
from huproxy.tunnel.closer import CloseCoordinator
from huproxy.tunnel.connection import TcpConnection
from huproxy.tunnel.errors import (
    ChannelClosedError,
    DeadlineExceeded,
    DialFailed,
    MissingTarget,
    ProtocolViolation,
    RelayError,
    TunnelSetupError,
    UnexpectedIOError,
    UpgradeFailed,
)
from huproxy.tunnel.negotiator import negotiate, validate_target
from huproxy.tunnel.relay import RelayEngine
from huproxy.tunnel.session import CancelSignal, Target, TunnelSession

__all__ = [
    "CancelSignal",
    "ChannelClosedError",
    "ChannelMessage",
    "CloseCoordinator",
    "DeadlineExceeded",
    "DialFailed",
    "MissingTarget",
    "ProtocolViolation",
    "RelayEngine",
    "RelayError",
    "Target",
    "TcpConnection",
    "TunnelSession",
    "TunnelSetupError",
    "UnexpectedIOError",
    "UpgradeFailed",
    "WebSocketChannel",
    "negotiate",
    "validate_target",
]
