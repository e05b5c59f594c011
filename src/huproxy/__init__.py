"""huproxy: tunnel TCP connections over WebSockets."""

__version__ = "0.1.0"
