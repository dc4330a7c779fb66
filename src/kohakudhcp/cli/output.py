"""Console output helpers shared by CLI commands."""

import json

from rich.console import Console

from kohakudhcp.cli import config as cli_config

console = Console()
err_console = Console(stderr=True)


def print_error(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    console.print(f"[green]{message}[/green]")


def print_warning(message: str) -> None:
    console.print(f"[yellow]{message}[/yellow]")


def wants_json() -> bool:
    """Whether --format json was requested."""
    return cli_config.OUTPUT_FORMAT == "json"


def print_json(data) -> None:
    """Print data as JSON without rich markup processing."""
    console.print_json(json.dumps(data, default=str))
