"""
Enumeration types for huproxy.

This module defines the enumeration types shared by the server, the tunnel
core and the command line client.
"""

from enum import Enum


# =============================================================================
# Channel-Related Enums
# =============================================================================


class MessageKind(str, Enum):
    """
    Kind of a message read from the WebSocket channel.

    Only BINARY messages carry tunnel payload. The two close kinds end the
    channel-to-socket direction cleanly; every other kind is a fault.
    """

    BINARY = "binary"
    TEXT = "text"
    CLOSE_NORMAL = "close_normal"  # Close code 1000
    CLOSE_ABNORMAL = "close_abnormal"  # Close code 1006, peer vanished
    OTHER = "other"  # Any other close code or unknown ASGI message


# =============================================================================
# Configuration Enums
# =============================================================================


class LogLevel(str, Enum):
    """
    Logging verbosity levels for huproxy.

    Levels (from most to least verbose):
        - FULL: Complete trace with detailed stack information
        - DEBUG: Debug messages and above
        - INFO: Informational messages and above
        - WARNING: Only warnings and errors (also accepted as "warn")
        - ERROR: Only errors
    """

    FULL = "full"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    WARN = "warn"  # Same as WARNING
    ERROR = "error"
