"""
Bidirectional relay between a WebSocket channel and a TCP connection.

Two tasks copy data, one per direction:

    WS→TCP: each binary message is written verbatim to the TCP connection.
    TCP→WS: each chunk read from the TCP connection becomes one binary message.

They share nothing but the session's cancel signal and the close state of the
two connections. A direction that fails aborts the session through the
CloseCoordinator; a direction that ends cleanly makes the other one unblock.
"""

import asyncio

from huproxy.models.enums import MessageKind
from huproxy.tunnel.closer import CloseCoordinator
from huproxy.tunnel.errors import (
    ChannelClosedError,
    DeadlineExceeded,
    ProtocolViolation,
    UnexpectedIOError,
)
from huproxy.tunnel.session import TunnelSession
from huproxy.utils.logger import get_logger

logger = get_logger(__name__)

WS_TO_TCP = "WS→TCP"
TCP_TO_WS = "TCP→WS"


class RelayEngine:
    """Runs both copy directions of a tunnel session to completion."""

    def __init__(
        self, session: TunnelSession, coordinator: CloseCoordinator | None = None
    ):
        self.session = session
        self.coordinator = coordinator or CloseCoordinator(session)
        self.log_prefix = f"[Tunnel {session.target}]"

    async def run(self) -> None:
        """
        Relay until both directions have terminated, then release both
        connections.

        After the first direction ends, the other one gets at most the write
        timeout to finish the close handshake before both connections are
        released under it.
        """
        session = self.session
        logger.info(f"{self.log_prefix} Incoming connection {session.describe()}")

        ws_to_tcp = asyncio.create_task(self._channel_to_socket())
        tcp_to_ws = asyncio.create_task(self._socket_to_channel())

        try:
            _, pending = await asyncio.wait(
                {ws_to_tcp, tcp_to_ws}, return_when=asyncio.FIRST_COMPLETED
            )
            if pending:
                _, pending = await asyncio.wait(pending, timeout=session.write_timeout)
            if pending:
                logger.debug(
                    f"{self.log_prefix} Close handshake incomplete after "
                    f"{session.write_timeout}s, releasing connections"
                )
                await self.coordinator.release()
                await asyncio.wait(pending)
        finally:
            for task in (ws_to_tcp, tcp_to_ws):
                if not task.done():
                    task.cancel()
            await asyncio.gather(ws_to_tcp, tcp_to_ws, return_exceptions=True)
            await self.coordinator.release()

        logger.info(f"{self.log_prefix} Finished connection {session.describe()}")

    # -------------------------------------------------------------------------
    # WS → TCP
    # -------------------------------------------------------------------------

    async def _channel_to_socket(self) -> None:
        session = self.session
        try:
            while True:
                try:
                    message = await session.channel.read_message()
                except ChannelClosedError as e:
                    if session.cancel.is_set() or self.coordinator.released:
                        logger.debug(f"{self.log_prefix} {WS_TO_TCP} stopped: {e}")
                        return
                    raise UnexpectedIOError(f"reading from websocket: {e}") from e

                match message.kind:
                    case MessageKind.BINARY:
                        pass
                    case MessageKind.CLOSE_NORMAL | MessageKind.CLOSE_ABNORMAL:
                        logger.debug(
                            f"{self.log_prefix} Client closed websocket "
                            f"(code={message.code})"
                        )
                        return
                    case MessageKind.TEXT:
                        raise ProtocolViolation(
                            "received non-binary websocket message"
                        )
                    case _ if message.code is not None:
                        raise UnexpectedIOError(
                            f"websocket closed with code {message.code}"
                        )
                    case _:
                        raise ProtocolViolation("received unknown websocket message")

                try:
                    await session.socket.write(message.payload)
                except (OSError, DeadlineExceeded) as e:
                    if session.cancel.is_set():
                        return
                    raise UnexpectedIOError(f"writing to target: {e}") from e

        except (ProtocolViolation, UnexpectedIOError) as e:
            await self.coordinator.abort(WS_TO_TCP, e)
        finally:
            # Unblock a TCP→WS read still waiting on the target
            if not session.socket.closed:
                session.interrupt_socket()

    # -------------------------------------------------------------------------
    # TCP → WS
    # -------------------------------------------------------------------------

    async def _socket_to_channel(self) -> None:
        session = self.session
        try:
            while True:
                try:
                    data = await session.socket.read(session.read_size)
                except DeadlineExceeded:
                    # Another path ended the session and forced the deadline
                    logger.debug(f"{self.log_prefix} {TCP_TO_WS} interrupted")
                    return
                except OSError as e:
                    if session.cancel.is_set() or self.coordinator.released:
                        return
                    raise UnexpectedIOError(f"reading from target: {e}") from e

                if not data:
                    break

                try:
                    await session.channel.write_message(data)
                except ChannelClosedError as e:
                    if session.cancel.is_set() or self.coordinator.released:
                        return
                    raise UnexpectedIOError(f"writing to websocket: {e}") from e

        except UnexpectedIOError as e:
            await self.coordinator.abort(TCP_TO_WS, e)
            return

        if session.cancel.is_set() or self.coordinator.released:
            return
        logger.debug(f"{self.log_prefix} Target closed its side")
        await self.coordinator.graceful_close()
