"""
Tunnel request handling.

Entry point of the server for one tunnel request: negotiate a session, relay
it to completion, and report setup failures through the HTTP response while
the WebSocket is not yet accepted.

Architecture:
    Client (WebSocket) ←→ huproxy ←→ Target (TCP)
"""

from http import HTTPStatus

from starlette.responses import PlainTextResponse
from starlette.websockets import WebSocket, WebSocketState

from huproxy.server.config import ProxyConfig, config as default_config
from huproxy.tunnel.channel import DISCONNECT_ERRORS
from huproxy.tunnel.errors import TunnelSetupError
from huproxy.tunnel.negotiator import negotiate
from huproxy.tunnel.relay import RelayEngine
from huproxy.utils.logger import get_logger

logger = get_logger(__name__)

# ASGI extension that lets a WebSocket handler answer with a plain HTTP response
DENIAL_RESPONSE_EXTENSION = "websocket.http.response"


async def reject_request(websocket: WebSocket, error: TunnelSetupError) -> None:
    """
    Answer a failed tunnel request with the error's status.

    Uses an HTTP denial response when the server supports it, otherwise closes
    the WebSocket before accepting it, which the server turns into HTTP 403.
    Nothing is sent once the WebSocket has been accepted.
    """
    if error.committed or websocket.application_state != WebSocketState.CONNECTING:
        return

    try:
        if DENIAL_RESPONSE_EXTENSION in (websocket.scope.get("extensions") or {}):
            phrase = HTTPStatus(error.status_code).phrase
            await websocket.send_denial_response(
                PlainTextResponse(f"{phrase}\n", status_code=error.status_code)
            )
        else:
            await websocket.close(code=error.close_code)
    except DISCONNECT_ERRORS as e:
        logger.debug(f"[Tunnel] Could not send rejection ({error.status_code}): {e}")


async def handle_tunnel_request(
    websocket: WebSocket,
    host: str,
    port: str,
    config: ProxyConfig | None = None,
) -> None:
    """
    Handle one tunnel request from start to teardown.

    Args:
        websocket: The request's WebSocket, not yet accepted.
        host: Target host, possibly empty.
        port: Target port, possibly empty.
        config: Server configuration; the global config if None.
    """
    cfg = config or default_config

    try:
        session = await negotiate(
            websocket,
            host,
            port,
            dial_timeout=cfg.DIAL_TIMEOUT_SECONDS,
            handshake_timeout=cfg.HANDSHAKE_TIMEOUT_SECONDS,
            write_timeout=cfg.WRITE_TIMEOUT_SECONDS,
            dial_before_upgrade=cfg.DIAL_BEFORE_UPGRADE,
            read_size=cfg.READ_BUFFER_SIZE,
        )
    except TunnelSetupError as e:
        logger.warning(
            f"[Tunnel] Rejected request from {websocket.client}: "
            f"{type(e).__name__}: {e}"
        )
        await reject_request(websocket, e)
        return

    await RelayEngine(session).run()
