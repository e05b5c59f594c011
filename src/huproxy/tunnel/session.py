"""
Tunnel session state.

A TunnelSession pairs one accepted WebSocket channel with one TCP connection
for the lifetime of a single tunnel request.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable

from huproxy.tunnel.channel import WebSocketChannel
from huproxy.tunnel.connection import DEFAULT_READ_SIZE, TcpConnection

# Forced deadline applied to the TCP connection on cancellation
CANCEL_DEADLINE_SECONDS = 0.001


@dataclass(frozen=True)
class Target:
    """Validated tunnel target."""

    host: str
    port: str

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


class CancelSignal:
    """
    Session-wide cancellation signal.

    Fires at most once; callbacks registered with ``on_cancel`` run on the
    first ``trigger`` only.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._callbacks: list[Callable[[], None]] = []
        self.reason: str | None = None

    def on_cancel(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)

    def trigger(self, reason: str = "") -> bool:
        """
        Fire the signal.

        Returns:
            True if this call fired it, False if it had already fired.
        """
        if self._event.is_set():
            return False
        self.reason = reason
        self._event.set()
        for callback in self._callbacks:
            callback()
        return True

    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class TunnelSession:
    """
    Live pairing of a WebSocket channel and a TCP connection.

    Attributes:
        target: The host and port the TCP connection was dialed to.
        channel: Upgraded WebSocket, owned by the session.
        socket: TCP connection to the target, owned by the session.
        write_timeout: Seconds allowed for sending the final close frame.
        read_size: Maximum bytes forwarded per binary message.
        cancel: Shared cancellation signal of both relay directions.
    """

    target: Target
    channel: WebSocketChannel
    socket: TcpConnection
    write_timeout: float = 10.0
    read_size: int = DEFAULT_READ_SIZE
    cancel: CancelSignal = field(default_factory=CancelSignal)

    def __post_init__(self):
        self.cancel.on_cancel(self.interrupt_socket)

    def interrupt_socket(self) -> None:
        """Force a near-immediate deadline on the TCP connection."""
        loop = asyncio.get_running_loop()
        self.socket.set_deadline(loop.time() + CANCEL_DEADLINE_SECONDS)

    def describe(self) -> str:
        return f"{self.channel.remote_address} -> {self.target}"
