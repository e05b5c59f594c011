"""
Stdio tunnel client.

Connects to a huproxy tunnel URL and copies stdin to binary WebSocket messages
and binary messages to stdout. Meant to be used as an SSH ProxyCommand:

    ssh -o 'ProxyCommand=huproxy client wss://example.com/proxy/%h/%p' host
"""

import asyncio
import ssl
import sys
from typing import BinaryIO

import websockets

from huproxy.tunnel.connection import DEFAULT_READ_SIZE
from huproxy.tunnel.errors import ProtocolViolation, UpgradeFailed
from huproxy.utils.logger import get_logger

logger = get_logger(__name__)


def _insecure_ssl_context() -> ssl.SSLContext:
    """TLS context that skips certificate and hostname verification."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


async def open_stdin_reader() -> asyncio.StreamReader:
    """Wrap the process's stdin in an asyncio StreamReader."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(
        lambda: asyncio.StreamReaderProtocol(reader), sys.stdin
    )
    return reader


async def bridge(
    url: str,
    stdin: asyncio.StreamReader,
    stdout: BinaryIO,
    insecure: bool = False,
    read_size: int = DEFAULT_READ_SIZE,
) -> None:
    """
    Relay stdin and stdout through a tunnel WebSocket until either side ends.

    Args:
        url: Tunnel URL, ws:// or wss://.
        stdin: Source of bytes sent to the tunnel.
        stdout: Destination of bytes received from the tunnel.
        insecure: Skip TLS certificate verification.
        read_size: Maximum bytes per sent message.

    Raises:
        UpgradeFailed: The connection or the handshake failed.
        ProtocolViolation: The server sent a text message.
    """
    connect_kwargs = {}
    if insecure and url.startswith("wss://"):
        connect_kwargs["ssl"] = _insecure_ssl_context()

    try:
        ws = await websockets.connect(url, **connect_kwargs)
    except (
        websockets.exceptions.WebSocketException,
        OSError,
        asyncio.TimeoutError,
    ) as e:
        raise UpgradeFailed(f"Failed to connect to {url}: {e}") from e

    logger.debug(f"[Client] Connected to {url}")

    async def stdin_to_ws():
        """Forward stdin until EOF, then close the tunnel normally."""
        while True:
            data = await stdin.read(read_size)
            if not data:
                break
            await ws.send(data)
        logger.debug("[Client] stdin closed, closing tunnel")
        await ws.close()

    sender = asyncio.create_task(stdin_to_ws())
    try:
        async for message in ws:
            if isinstance(message, str):
                raise ProtocolViolation("received non-binary websocket message")
            stdout.write(message)
            stdout.flush()
    except websockets.exceptions.ConnectionClosedError as e:
        logger.debug(f"[Client] Tunnel closed abnormally: {e}")
    finally:
        if not sender.done():
            sender.cancel()
        results = await asyncio.gather(sender, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.debug(f"[Client] stdin forwarding ended: {result}")
        await ws.close()


async def run_stdio_client(url: str, insecure: bool = False) -> None:
    """Run the tunnel client on the process's stdin and stdout."""
    stdin = await open_stdin_reader()
    await bridge(url, stdin, sys.stdout.buffer, insecure=insecure)
