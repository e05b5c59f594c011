"""
Server configuration for huproxy.

This module defines the configuration dataclass for the tunnel server,
providing a centralized place for all configurable parameters.

Configuration can be modified at runtime by importing the global config
instance and updating its attributes before starting the server.

Usage:
    from huproxy.server.config import config

    # Modify configuration before starting
    config.PORT = 9000
    config.LOG_LEVEL = LogLevel.DEBUG
"""

from dataclasses import dataclass

from huproxy.models.enums import LogLevel


# =============================================================================
# Configuration Dataclass
# =============================================================================


@dataclass
class ProxyConfig:
    """
    Tunnel server configuration.

    Attributes:
        BIND_IP: IP address to bind the server to.
        PORT: HTTP port.
        URL_PATH: Route prefix of the tunnel endpoints.
        DIAL_TIMEOUT_SECONDS: Bound on the TCP connect to the target.
        HANDSHAKE_TIMEOUT_SECONDS: Bound on the WebSocket upgrade.
        WRITE_TIMEOUT_SECONDS: Bound on sending the final close frame.
        DIAL_BEFORE_UPGRADE: Dial the target before accepting the WebSocket.
        LOG_FILE: "stdout", "stderr" or a file path.
        LOG_LEVEL: Logging verbosity level.
    """

    # -------------------------------------------------------------------------
    # Network Configuration
    # -------------------------------------------------------------------------

    BIND_IP: str = "127.0.0.1"
    PORT: int = 8086
    URL_PATH: str = "proxy"

    # -------------------------------------------------------------------------
    # Tunnel Configuration
    # -------------------------------------------------------------------------

    DIAL_TIMEOUT_SECONDS: float = 10.0
    HANDSHAKE_TIMEOUT_SECONDS: float = 10.0
    WRITE_TIMEOUT_SECONDS: float = 10.0

    # When False the WebSocket is accepted before dialing, and an unreachable
    # target closes the accepted WebSocket instead of answering 503
    DIAL_BEFORE_UPGRADE: bool = True

    # Largest chunk read from the target and sent as one binary message
    READ_BUFFER_SIZE: int = 32 * 1024

    # -------------------------------------------------------------------------
    # Logging Configuration
    # -------------------------------------------------------------------------

    LOG_FILE: str = "stdout"
    LOG_LEVEL: LogLevel = LogLevel.INFO

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def get_listen_address(self) -> str:
        """Get the listen address as "host:port"."""
        return f"{self.BIND_IP}:{self.PORT}"

    def set_listen_address(self, address: str) -> None:
        """
        Set BIND_IP and PORT from a "host:port" string.

        Raises:
            ValueError: The address has no port or the port is not a number.
        """
        host, sep, port = address.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"Invalid listen address: {address!r}")
        self.BIND_IP = host.strip("[]") or "0.0.0.0"
        self.PORT = int(port)

    def get_route_path(self) -> str:
        """
        Get the route that reads the target from the Connect header.

        Returns:
            Path like "/proxy".
        """
        return "/" + self.URL_PATH.strip("/")

    def get_target_route_path(self) -> str:
        """
        Get the route that reads the target from the path.

        Returns:
            Path like "/proxy/{host}/{port}".
        """
        return self.get_route_path() + "/{host}/{port}"


# =============================================================================
# Global Instance
# =============================================================================

# Global config instance - modify before server startup
config = ProxyConfig()
