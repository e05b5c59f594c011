"""
Console output helpers for the CLI.

Output goes to stderr: in client mode stdout carries tunnel data.
"""

from rich.console import Console

console = Console(stderr=True)


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")
