"""
Tunnel negotiation.

Turns a tunnel request into a TunnelSession: validate the target, dial the
TCP connection and complete the WebSocket upgrade.

By default the dial happens before the upgrade. While the WebSocket is not yet
accepted the request can still be answered with an HTTP status, so a target
that cannot be reached is reported as 503 instead of as an accepted WebSocket
that closes at once. With ``dial_before_upgrade=False`` the upgrade happens
first, and a dial failure closes the channel without relaying anything.
"""

from starlette.websockets import WebSocket

from huproxy.tunnel.channel import CLOSE_INTERNAL_ERROR, WebSocketChannel
from huproxy.tunnel.connection import DEFAULT_READ_SIZE, TcpConnection
from huproxy.tunnel.errors import DialFailed, MissingTarget
from huproxy.tunnel.session import Target, TunnelSession
from huproxy.utils.logger import get_logger

logger = get_logger(__name__)


def validate_target(host: str, port: str) -> Target:
    """
    Build a Target from request values.

    Raises:
        MissingTarget: host or port is empty.
    """
    if not host or not port:
        raise MissingTarget(f"Missing host or port (host={host!r}, port={port!r})")
    return Target(host=host, port=port)


async def negotiate(
    websocket: WebSocket,
    host: str,
    port: str,
    dial_timeout: float = 10.0,
    handshake_timeout: float = 10.0,
    write_timeout: float = 10.0,
    dial_before_upgrade: bool = True,
    read_size: int = DEFAULT_READ_SIZE,
) -> TunnelSession:
    """
    Establish a tunnel session for one request.

    Args:
        websocket: The request's WebSocket, not yet accepted.
        host: Target host from the request.
        port: Target port from the request.
        dial_timeout: Seconds allowed for the TCP connect.
        handshake_timeout: Seconds allowed for the WebSocket upgrade.
        write_timeout: Seconds allowed for the final close frame.
        dial_before_upgrade: Dial the target before accepting the WebSocket.
        read_size: Maximum bytes per forwarded message.

    Returns:
        A session owning both connections.

    Raises:
        MissingTarget: Empty host or port; nothing was opened.
        UpgradeFailed: The upgrade failed; a dialed socket was closed.
        DialFailed: The dial failed; an accepted channel was closed and the
            error is marked committed.
    """
    target = validate_target(host, port)
    log_prefix = f"[Tunnel {target}]"

    if dial_before_upgrade:
        socket = await TcpConnection.dial(target.host, target.port, dial_timeout)
        logger.debug(f"{log_prefix} Dialed {socket.remote_address}")
        try:
            channel = await WebSocketChannel.upgrade(websocket, handshake_timeout)
        except BaseException:
            await socket.close()
            raise
    else:
        channel = await WebSocketChannel.upgrade(websocket, handshake_timeout)
        try:
            socket = await TcpConnection.dial(target.host, target.port, dial_timeout)
        except DialFailed as e:
            e.committed = True
            await channel.close(CLOSE_INTERNAL_ERROR)
            raise

    return TunnelSession(
        target=target,
        channel=channel,
        socket=socket,
        write_timeout=write_timeout,
        read_size=read_size,
    )
