"""
Fixtures for server tests: real TCP targets served from background threads.
"""

import socket
import socketserver
import threading

import pytest
from fastapi.testclient import TestClient

from huproxy.server.app import create_app
from huproxy.server.config import ProxyConfig


class EchoHandler(socketserver.BaseRequestHandler):
    def handle(self):
        while data := self.request.recv(4096):
            self.request.sendall(data)


class GreetingHandler(socketserver.BaseRequestHandler):
    def handle(self):
        self.request.sendall(b"welcome\n")


def _serve(handler_class):
    server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), handler_class)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


@pytest.fixture
def echo_target():
    """(host, port) of a TCP echo server."""
    server = _serve(EchoHandler)
    yield "127.0.0.1", str(server.server_address[1])
    server.shutdown()
    server.server_close()


@pytest.fixture
def greeting_target():
    """(host, port) of a TCP server that sends one line and closes."""
    server = _serve(GreetingHandler)
    yield "127.0.0.1", str(server.server_address[1])
    server.shutdown()
    server.server_close()


@pytest.fixture
def closed_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return str(sock.getsockname()[1])


@pytest.fixture
def proxy_config():
    return ProxyConfig(
        DIAL_TIMEOUT_SECONDS=2.0,
        HANDSHAKE_TIMEOUT_SECONDS=2.0,
        WRITE_TIMEOUT_SECONDS=0.5,
    )


@pytest.fixture
def client(proxy_config):
    with TestClient(create_app(proxy_config)) as test_client:
        yield test_client
