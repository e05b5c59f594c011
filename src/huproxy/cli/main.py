"""
huproxy CLI entry point.

Usage:
    huproxy [OPTIONS] COMMAND [ARGS]...

Commands:
    serve     Run the tunnel server
    client    Bridge stdin/stdout to a tunnel URL (SSH ProxyCommand)
    version   Show version information
"""

import asyncio
from typing import Annotated

import typer

from huproxy import __version__
from huproxy.cli.output import console, print_error
from huproxy.models.enums import LogLevel
from huproxy.server.config import config
from huproxy.tunnel.errors import ProtocolViolation, UpgradeFailed
from huproxy.utils.logger import configure_logging

app = typer.Typer(
    name="huproxy",
    help="Tunnel TCP connections over WebSockets",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.command("serve")
def serve(
    listen: Annotated[
        str,
        typer.Option("--listen", help="Address to listen to", envvar="HUPROXY_LISTEN"),
    ] = "127.0.0.1:8086",
    url: Annotated[
        str,
        typer.Option("--url", help="Path to listen to", envvar="HUPROXY_URL"),
    ] = "proxy",
    dial_timeout: Annotated[
        float,
        typer.Option(
            "--dial-timeout", help="Dial timeout (s)", envvar="HUPROXY_DIAL_TIMEOUT"
        ),
    ] = 10.0,
    handshake_timeout: Annotated[
        float,
        typer.Option(
            "--handshake-timeout",
            help="Handshake timeout (s)",
            envvar="HUPROXY_HANDSHAKE_TIMEOUT",
        ),
    ] = 10.0,
    write_timeout: Annotated[
        float,
        typer.Option(
            "--write-timeout", help="Write timeout (s)", envvar="HUPROXY_WRITE_TIMEOUT"
        ),
    ] = 10.0,
    upgrade_first: Annotated[
        bool,
        typer.Option(
            "--upgrade-first",
            help="Accept the WebSocket before dialing the target",
            envvar="HUPROXY_UPGRADE_FIRST",
        ),
    ] = False,
    log_file: Annotated[
        str,
        typer.Option(
            "--log", help="Log to: stdout, stderr or a file", envvar="HUPROXY_LOG"
        ),
    ] = "stdout",
    level: Annotated[
        LogLevel,
        typer.Option("--level", help="Log level", envvar="HUPROXY_LEVEL"),
    ] = LogLevel.INFO,
):
    """Run the tunnel server."""
    from huproxy.server.app import run

    try:
        config.set_listen_address(listen)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    config.URL_PATH = url
    config.DIAL_TIMEOUT_SECONDS = dial_timeout
    config.HANDSHAKE_TIMEOUT_SECONDS = handshake_timeout
    config.WRITE_TIMEOUT_SECONDS = write_timeout
    config.DIAL_BEFORE_UPGRADE = not upgrade_first
    config.LOG_FILE = log_file
    config.LOG_LEVEL = level

    try:
        run(config)
    except OSError as e:
        print_error(f"Failed to start server: {e}")
        raise typer.Exit(1)


@app.command("client")
def client(
    url: Annotated[
        str, typer.Argument(help="Tunnel URL, e.g. wss://example.com/proxy/host/22")
    ],
    insecure: Annotated[
        bool,
        typer.Option("--insecure", "-k", help="Skip TLS certificate verification"),
    ] = False,
    level: Annotated[
        LogLevel,
        typer.Option("--level", help="Log level", envvar="HUPROXY_LEVEL"),
    ] = LogLevel.WARNING,
):
    """
    Bridge stdin/stdout to a tunnel URL.

    Use as an SSH ProxyCommand:
    ssh -o 'ProxyCommand=huproxy client wss://example.com/proxy/%h/%p' host
    """
    from huproxy.client.stdio_bridge import run_stdio_client

    # stdout carries tunnel data
    configure_logging(level, "stderr")

    try:
        asyncio.run(run_stdio_client(url, insecure=insecure))
    except UpgradeFailed as e:
        print_error(str(e))
        raise typer.Exit(1)
    except ProtocolViolation as e:
        print_error(f"Protocol violation: {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        raise typer.Exit(130)


@app.command("version")
def version():
    """Show version information."""
    console.print(f"huproxy v{__version__}")


def main():
    """Entry point for the huproxy CLI."""
    app()


if __name__ == "__main__":
    main()
