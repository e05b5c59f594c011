"""Tunnel server: FastAPI application, configuration and request handling."""
