"""
HakuDHCP unified CLI entry point.

Usage:
    kohakudhcp [OPTIONS] COMMAND [ARGS]...

Commands:
    pool         Pool management
    reservation  Static reservations
    lease        Lease management
    dns          Upstream resolvers and Unbound config
    next-ip      Preview the next free address of a pool
    stats        Pool and lease statistics
    logs         DHCP event log
    apply        Write the Kea config and reload
    serve        Run the host API server
"""

import json
from typing import Annotated

import typer
import yaml

from kohakudhcp.cli import client
from kohakudhcp.cli import config as cli_config
from kohakudhcp.cli.commands import dns, lease, pool, reservation
from kohakudhcp.cli.formatters import format_log_table, format_stats
from kohakudhcp.cli.output import (
    console,
    print_error,
    print_json,
    print_success,
    print_warning,
    wants_json,
)

app = typer.Typer(
    name="kohakudhcp",
    help="HakuDHCP Pool and Lease Management CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register command groups
app.add_typer(pool.app, name="pool", help="Pool management")
app.add_typer(reservation.app, name="reservation", help="Static reservations")
app.add_typer(lease.app, name="lease", help="Lease management")
app.add_typer(dns.app, name="dns", help="Upstream resolvers and Unbound config")


@app.callback()
def main(
    host: Annotated[
        str | None,
        typer.Option("--host", "-H", help="Host address", envvar="KOHAKUDHCP_HOST"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-P", help="Host port", envvar="KOHAKUDHCP_PORT"),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: table|json"),
    ] = "table",
):
    """
    HakuDHCP Pool and Lease Management CLI.

    Manage DHCP pools, reservations, leases and the generated
    Kea / Unbound configuration.
    """
    if host:
        cli_config.HOST_ADDRESS = host
    if port:
        cli_config.HOST_PORT = port
    cli_config.OUTPUT_FORMAT = output_format


@app.command("version")
def version():
    """Show version information."""
    from kohakudhcp import __version__

    console.print(f"HakuDHCP CLI v{__version__}")


@app.command("next-ip")
def next_ip(
    pool_id: Annotated[int, typer.Argument(help="Pool ID")],
):
    """Preview the next free address of a pool."""
    try:
        result = client.get_next_ip(pool_id)
        if wants_json():
            print_json(result)
        elif result.get("available"):
            console.print(result["ip_address"])
        elif result.get("pool_active") is False:
            print_warning(f"Pool {pool_id} is not active.")
            raise typer.Exit(2)
        else:
            print_warning(f"Pool {pool_id} has no free addresses.")
            raise typer.Exit(2)

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("stats")
def stats():
    """Show pool, lease and reservation statistics."""
    try:
        data = client.get_stats()
        if wants_json():
            print_json(data)
        else:
            console.print(format_stats(data))

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("logs")
def logs(
    mac_address: Annotated[
        str | None, typer.Option("--mac", "-m", help="Filter by MAC address")
    ] = None,
    event_type: Annotated[
        str | None, typer.Option("--type", "-t", help="Filter by event type")
    ] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Max events")] = 100,
):
    """Show recent DHCP events."""
    try:
        events = client.get_logs(mac_address, event_type, limit)
        if wants_json():
            print_json(events)
            return
        if not events:
            console.print("[dim]No events.[/dim]")
            return
        console.print(format_log_table(events))

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("config")
def show_dhcp_config():
    """Preview the generated Kea DHCPv4 configuration."""
    try:
        data = client.get_dhcp_config()
        console.print(json.dumps(data, indent=4), markup=False, highlight=False)

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("apply")
def apply():
    """Write the Kea configuration and reload the DHCP server."""
    try:
        result = client.apply_dhcp_config()
        print_success(
            f"Wrote {result['path']}"
            + (" and reloaded Kea." if result.get("reloaded") else ".")
        )

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("serve")
def serve(
    config_file: Annotated[
        str | None,
        typer.Option("--config", "-c", help="YAML config file"),
    ] = None,
    bind: Annotated[
        str | None, typer.Option("--bind", help="Bind address override")
    ] = None,
    listen_port: Annotated[
        int | None, typer.Option("--listen-port", help="Listen port override")
    ] = None,
    db_file: Annotated[
        str | None, typer.Option("--db", help="SQLite database path")
    ] = None,
):
    """Run the host API server."""
    from kohakudhcp.host.app import load_config
    from kohakudhcp.host.app import run as run_host

    try:
        cfg = load_config(config_file)
    except (OSError, ValueError, KeyError, yaml.YAMLError) as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(1)

    if bind:
        cfg.HOST_BIND_IP = bind
    if listen_port:
        cfg.HOST_PORT = listen_port
    if db_file:
        cfg.DB_FILE = db_file

    run_host(cfg)


def run():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
