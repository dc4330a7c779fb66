"""DNS upstream resolver commands."""

from typing import Annotated

import typer

from kohakudhcp.cli import client
from kohakudhcp.cli.formatters import format_upstream_table
from kohakudhcp.cli.output import (
    console,
    print_error,
    print_json,
    print_success,
    wants_json,
)

app = typer.Typer(help="DNS resolver commands")


@app.command("upstreams")
def list_upstreams():
    """List upstream resolvers."""
    try:
        upstreams = client.get_upstreams()

        if wants_json():
            print_json(upstreams)
            return
        if not upstreams:
            console.print("[yellow]No upstream resolvers configured.[/yellow]")
            return
        console.print(format_upstream_table(upstreams))

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("add")
def add_upstream(
    name: Annotated[str, typer.Argument(help="Resolver name")],
    ip_address: Annotated[str, typer.Argument(help="Resolver address")],
    dot_hostname: Annotated[
        str | None,
        typer.Option("--dot", help="TLS hostname; enables DNS over TLS"),
    ] = None,
    priority: Annotated[int, typer.Option("--priority", "-p")] = 100,
    port: Annotated[int, typer.Option("--port")] = 53,
):
    """Add an upstream resolver."""
    payload = {
        "name": name,
        "ip_address": ip_address,
        "port": port,
        "supports_dot": dot_hostname is not None,
        "dot_hostname": dot_hostname,
        "priority": priority,
    }
    try:
        upstream = client.create_upstream(payload)
        print_success(f"Upstream '{upstream['name']}' added (id {upstream['id']}).")

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("remove")
def remove_upstream(
    resolver_id: Annotated[int, typer.Argument(help="Resolver ID")],
):
    """Remove an upstream resolver."""
    try:
        client.delete_upstream(resolver_id)
        print_success(f"Upstream {resolver_id} removed.")

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("config")
def show_config():
    """Preview the generated Unbound configuration."""
    try:
        console.print(client.get_dns_config(), markup=False, highlight=False)

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("apply")
def apply_config():
    """Write the Unbound configuration and reload the resolver."""
    try:
        result = client.apply_dns_config()
        print_success(
            f"Wrote {result['path']}"
            + (" and reloaded Unbound." if result.get("reloaded") else ".")
        )

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)
