"""
WebSocket message channel.

Adapts a Starlette/FastAPI WebSocket to the message-level operations the
relay needs: read one typed message, write one binary message, send a close
frame under a deadline, and close locally. A local close unblocks a pending
read, which the ASGI receive call does not do by itself.
"""

import asyncio
import contextlib
from dataclasses import dataclass

from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from huproxy.models.enums import MessageKind
from huproxy.tunnel.errors import ChannelClosedError, UpgradeFailed
from huproxy.utils.logger import get_logger

logger = get_logger(__name__)

# =============================================================================
# Close Codes
# =============================================================================

CLOSE_NORMAL_CLOSURE = 1000
CLOSE_ABNORMAL_CLOSURE = 1006
CLOSE_INTERNAL_ERROR = 1011

# Errors raised by Starlette or the ASGI server once the socket is gone
DISCONNECT_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)


@dataclass
class ChannelMessage:
    """A message read from the channel."""

    kind: MessageKind
    payload: bytes = b""
    code: int | None = None


def classify_message(message: dict) -> ChannelMessage:
    """
    Convert an ASGI WebSocket event into a ChannelMessage.

    Args:
        message: Event returned by ``WebSocket.receive()``.
    """
    match message.get("type"):
        case "websocket.receive":
            if message.get("bytes") is not None:
                return ChannelMessage(MessageKind.BINARY, message["bytes"])
            if message.get("text") is not None:
                return ChannelMessage(MessageKind.TEXT, message["text"].encode())
            return ChannelMessage(MessageKind.OTHER)
        case "websocket.disconnect":
            code = message.get("code", CLOSE_NORMAL_CLOSURE)
            if code == CLOSE_NORMAL_CLOSURE:
                kind = MessageKind.CLOSE_NORMAL
            elif code == CLOSE_ABNORMAL_CLOSURE:
                kind = MessageKind.CLOSE_ABNORMAL
            else:
                kind = MessageKind.OTHER
            return ChannelMessage(kind, code=code)
        case _:
            return ChannelMessage(MessageKind.OTHER)


class WebSocketChannel:
    """
    Message-framed duplex channel over an accepted WebSocket.

    Exactly one task reads and one task writes. ``close`` is idempotent and
    may be called from any task.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._closed = asyncio.Event()
        self._peer_closed = False

    @classmethod
    async def upgrade(cls, websocket: WebSocket, timeout: float) -> "WebSocketChannel":
        """
        Complete the WebSocket handshake.

        Args:
            websocket: The not yet accepted WebSocket of the request.
            timeout: Seconds allowed for the handshake.

        Raises:
            UpgradeFailed: The handshake failed or timed out.
        """
        try:
            await asyncio.wait_for(websocket.accept(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise UpgradeFailed(
                f"WebSocket handshake timed out after {timeout}s"
            ) from e
        except DISCONNECT_ERRORS as e:
            raise UpgradeFailed(f"Failed to upgrade to websockets: {e}") from e
        return cls(websocket)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def peer_closed(self) -> bool:
        return self._peer_closed

    @property
    def remote_address(self) -> str:
        client = self.websocket.client
        if not client:
            return "unknown"
        return f"{client.host}:{client.port}"

    async def read_message(self) -> ChannelMessage:
        """
        Read the next message.

        Returns:
            The message. Close kinds are returned, not raised.

        Raises:
            ChannelClosedError: The channel was closed locally, or the peer's
                close was already consumed.
        """
        if self._closed.is_set() or self._peer_closed:
            raise ChannelClosedError("read on closed channel")

        receive = asyncio.ensure_future(self.websocket.receive())
        closed = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({receive, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed.cancel()

        if not receive.done():
            receive.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await receive
            raise ChannelClosedError("channel closed locally")

        try:
            message = classify_message(receive.result())
        except DISCONNECT_ERRORS as e:
            self._peer_closed = True
            raise ChannelClosedError(f"read failed: {e}") from e

        if message.code is not None:
            self._peer_closed = True
        return message

    async def write_message(self, payload: bytes) -> None:
        """Send payload as one binary message."""
        if self._closed.is_set():
            raise ChannelClosedError("write on closed channel")
        try:
            await self.websocket.send_bytes(payload)
        except DISCONNECT_ERRORS as e:
            raise ChannelClosedError(f"write failed: {e}") from e

    async def write_close(self, code: int, timeout: float) -> None:
        """
        Send a close frame.

        Raises:
            ChannelClosedError: A close was already sent or received.
            asyncio.TimeoutError: The frame was not sent within timeout.
        """
        if (
            self._closed.is_set()
            or self._peer_closed
            or self.websocket.application_state != WebSocketState.CONNECTED
        ):
            raise ChannelClosedError("close already sent")
        try:
            await asyncio.wait_for(self.websocket.close(code=code), timeout=timeout)
        except DISCONNECT_ERRORS as e:
            raise ChannelClosedError(f"close frame not sent: {e}") from e

    async def close(self, code: int = CLOSE_NORMAL_CLOSURE) -> None:
        """
        Close the channel locally. Closing twice is a no-op.

        A close frame is sent only if none was sent or received yet.
        """
        if self._closed.is_set():
            return
        self._closed.set()

        if (
            self._peer_closed
            or self.websocket.application_state != WebSocketState.CONNECTED
        ):
            return
        try:
            await self.websocket.close(code=code)
        except DISCONNECT_ERRORS as e:
            logger.debug(f"[Channel] Error while closing websocket: {e}")
