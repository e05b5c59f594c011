"""
Close coordination for tunnel sessions.

Whatever ends a session (TCP end-of-stream, a peer close, a protocol
violation or an I/O error), the TCP connection and the WebSocket are each
closed exactly once.
"""

import asyncio

from huproxy.tunnel.channel import CLOSE_INTERNAL_ERROR, CLOSE_NORMAL_CLOSURE
from huproxy.tunnel.errors import ChannelClosedError
from huproxy.tunnel.session import TunnelSession
from huproxy.utils.logger import format_traceback, get_logger

logger = get_logger(__name__)


class CloseCoordinator:
    """Turns the end of either relay direction into a single teardown."""

    def __init__(self, session: TunnelSession):
        self.session = session
        self._close_frame_attempted = False
        self._released = False
        self.log_prefix = f"[Tunnel {session.target}]"

    @property
    def released(self) -> bool:
        return self._released

    async def graceful_close(self) -> None:
        """
        Send a normal-closure frame after the target closed its side.

        Attempted at most once, and never after the session was cancelled.
        A close already sent or received from the peer is not an error.
        """
        if self._close_frame_attempted or self.session.cancel.is_set():
            return
        self._close_frame_attempted = True

        try:
            await self.session.channel.write_close(
                CLOSE_NORMAL_CLOSURE, timeout=self.session.write_timeout
            )
            logger.debug(f"{self.log_prefix} Sent normal closure to client")
        except ChannelClosedError as e:
            logger.debug(f"{self.log_prefix} Peer closed first: {e}")
        except asyncio.TimeoutError:
            logger.warning(
                f"{self.log_prefix} Error sending close message: timed out after "
                f"{self.session.write_timeout}s"
            )

    async def abort(self, direction: str, error: BaseException) -> None:
        """
        Tear the session down after a failure in one direction.

        Args:
            direction: Name of the failing relay direction.
            error: The protocol violation or I/O error that ended it.
        """
        if self.session.cancel.trigger(f"{direction}: {error}"):
            logger.warning(
                f"{self.log_prefix} {direction} failed "
                f"({self.session.describe()}): {error}"
            )
            logger.debug(format_traceback(error))
        else:
            logger.debug(f"{self.log_prefix} {direction} ended after cancel: {error}")
        await self.release(CLOSE_INTERNAL_ERROR)

    async def release(self, code: int = CLOSE_NORMAL_CLOSURE) -> None:
        """Close the TCP connection and the WebSocket, once."""
        if self._released:
            return
        self._released = True

        await self.session.socket.close()
        await self.session.channel.close(code)
        logger.debug(f"{self.log_prefix} Released connections")
