"""
TCP connection to the tunnel target.

Wraps an asyncio stream pair with deadline-based reads and writes. A deadline
is an absolute ``loop.time()`` value; once it passes, any pending and any
future read or write fails with DeadlineExceeded. Setting a deadline in the
near past is how a blocked read is interrupted from another task.
"""

import asyncio
import contextlib

from huproxy.tunnel.errors import DeadlineExceeded, DialFailed
from huproxy.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_READ_SIZE = 32 * 1024


class TcpConnection:
    """
    Byte-stream connection with deadlines and idempotent close.

    Only one task reads and only one task writes at a time. ``close`` and
    ``set_deadline`` may be called from any task.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self._reader = reader
        self._writer = writer
        self._expired = asyncio.Event()
        self._deadline_handle: asyncio.TimerHandle | None = None
        self._closed = False

    @classmethod
    async def dial(cls, host: str, port: str, timeout: float) -> "TcpConnection":
        """
        Open a TCP connection to host:port.

        Args:
            host: Target host name or address.
            port: Target port, numeric or a service name.
            timeout: Seconds allowed for the connect step.

        Raises:
            DialFailed: Connect failed or did not finish within timeout.
        """
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            raise DialFailed(
                f"Timeout connecting to {host}:{port} after {timeout}s"
            ) from e
        except (OSError, ValueError, OverflowError) as e:
            raise DialFailed(f"Failed to connect to {host}:{port}: {e}") from e
        return cls(reader, writer)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def remote_address(self) -> str:
        peer = self._writer.get_extra_info("peername")
        if not peer:
            return "unknown"
        return f"{peer[0]}:{peer[1]}"

    def set_deadline(self, when: float | None) -> None:
        """
        Set the absolute deadline for reads and writes.

        Args:
            when: A ``loop.time()`` timestamp, or None to clear the deadline.
        """
        if self._deadline_handle is not None:
            self._deadline_handle.cancel()
            self._deadline_handle = None
        self._expired.clear()

        if when is None:
            return

        loop = asyncio.get_running_loop()
        delay = when - loop.time()
        if delay <= 0:
            self._expired.set()
        else:
            self._deadline_handle = loop.call_later(delay, self._expired.set)

    async def _before_deadline(self, coro):
        if self._expired.is_set():
            coro.close()
            raise DeadlineExceeded("connection deadline exceeded")

        op = asyncio.ensure_future(coro)
        expiry = asyncio.ensure_future(self._expired.wait())
        try:
            await asyncio.wait({op, expiry}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            expiry.cancel()

        if op.done():
            return op.result()

        op.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await op
        raise DeadlineExceeded("connection deadline exceeded")

    async def read(self, max_bytes: int = DEFAULT_READ_SIZE) -> bytes:
        """
        Read up to max_bytes.

        Returns:
            The bytes read; b"" at end of stream.

        Raises:
            DeadlineExceeded: The deadline passed before data arrived.
            OSError: The connection failed.
        """
        return await self._before_deadline(self._reader.read(max_bytes))

    async def write(self, data: bytes) -> int:
        """Write all of data and wait until it is flushed."""
        if self._expired.is_set():
            raise DeadlineExceeded("connection deadline exceeded")
        self._writer.write(data)
        await self._before_deadline(self._writer.drain())
        return len(data)

    async def close(self) -> None:
        """Close the connection. Closing twice is a no-op."""
        if self._closed:
            return
        self._closed = True

        if self._deadline_handle is not None:
            self._deadline_handle.cancel()
            self._deadline_handle = None

        self._writer.close()
        try:
            await asyncio.wait_for(self._writer.wait_closed(), timeout=1.0)
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug(f"[TCP] Error while closing connection: {e}")
