"""
huproxy FastAPI Application.

This module provides the main entry point for the tunnel server.

Routes (with the default URL_PATH "proxy"):
    WS /proxy/{host}/{port}   Tunnel to host:port
    WS /proxy                 Tunnel to the "Connect: host:port" header

Run with uvicorn's factory mode:
    uvicorn huproxy.server.app:create_app --factory
"""

from fastapi import FastAPI, WebSocket

from huproxy import __version__
from huproxy.models.enums import LogLevel
from huproxy.server.config import ProxyConfig, config as default_config
from huproxy.server.services.tunnel_proxy import handle_tunnel_request
from huproxy.server.target import resolve_target
from huproxy.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


# =============================================================================
# Application Setup
# =============================================================================


def create_app(config: ProxyConfig | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Server configuration; the global config if None.
    """
    cfg = config or default_config

    app = FastAPI(
        title="huproxy",
        description="TCP over WebSocket tunnel server",
        version=__version__,
    )

    async def websocket_tunnel(websocket: WebSocket):
        """WebSocket endpoint that tunnels to a TCP target."""
        host, port = resolve_target(websocket.headers, websocket.path_params)
        await handle_tunnel_request(websocket, host, port, cfg)

    app.add_api_websocket_route(cfg.get_target_route_path(), websocket_tunnel)
    app.add_api_websocket_route(cfg.get_route_path(), websocket_tunnel)

    return app


# =============================================================================
# Server Entry Points
# =============================================================================


def run(config: ProxyConfig | None = None):
    """Run the tunnel server using uvicorn."""
    import uvicorn

    cfg = config or default_config

    # Configure logging before starting uvicorn
    configure_logging(cfg.LOG_LEVEL, cfg.LOG_FILE)

    # Map log levels to uvicorn levels
    uvicorn_level_map = {
        LogLevel.FULL: "trace",
        LogLevel.DEBUG: "debug",
        LogLevel.INFO: "info",
        LogLevel.WARNING: "warning",
        LogLevel.WARN: "warning",
        LogLevel.ERROR: "error",
    }
    uvicorn_level = uvicorn_level_map.get(cfg.LOG_LEVEL, "info")

    logger.info(f"huproxy {__version__}")
    logger.info(
        f"Starting tunnel server on {cfg.get_listen_address()} "
        f"(route {cfg.get_target_route_path()})"
    )

    uvicorn.run(
        create_app(cfg),
        host=cfg.BIND_IP,
        port=cfg.PORT,
        log_level=uvicorn_level,
        log_config=None,  # Disable uvicorn's default logging config (use loguru)
    )


def main():
    """Entry point for the tunnel server."""
    run()


if __name__ == "__main__":
    main()
