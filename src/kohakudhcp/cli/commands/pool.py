"""Pool management commands."""

from typing import Annotated

import typer

from kohakudhcp.cli import client
from kohakudhcp.cli.formatters import format_pool_detail, format_pool_table
from kohakudhcp.cli.output import (
    console,
    print_error,
    print_json,
    print_success,
    wants_json,
)

app = typer.Typer(help="Pool management commands")


@app.command("list")
def list_pools(
    active: Annotated[
        bool, typer.Option("--active", "-a", help="Only active pools")
    ] = False,
):
    """List DHCP pools."""
    try:
        pools = client.get_pools(active_only=active)

        if wants_json():
            print_json(pools)
            return
        if not pools:
            console.print("[yellow]No pools found.[/yellow]")
            return
        console.print(format_pool_table(pools))

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("show")
def show_pool(
    pool_id: Annotated[int, typer.Argument(help="Pool ID")],
):
    """Show a pool with its utilisation."""
    try:
        pool = client.get_pool(pool_id)
        if wants_json():
            print_json(pool)
        else:
            console.print(format_pool_detail(pool))

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("add")
def add_pool(
    name: Annotated[str, typer.Argument(help="Pool name")],
    network: Annotated[
        str, typer.Option("--network", "-n", help="Network CIDR, e.g. 10.0.0.0/24")
    ],
    start: Annotated[str, typer.Option("--start", "-s", help="First address")],
    end: Annotated[str, typer.Option("--end", "-e", help="Last address")],
    gateway: Annotated[str, typer.Option("--gateway", "-g", help="Router address")],
    dns: Annotated[
        list[str], typer.Option("--dns", "-d", help="DNS server (repeatable)")
    ],
    vlan: Annotated[int, typer.Option("--vlan", "-v", help="VLAN tag")] = 1,
    lease_time: Annotated[
        str, typer.Option("--lease-time", help="e.g. '24 hours'")
    ] = "24 hours",
    max_lease_time: Annotated[
        str, typer.Option("--max-lease-time", help="e.g. '7 days'")
    ] = "7 days",
    domain: Annotated[str, typer.Option("--domain", help="Domain name")] = "local",
    description: Annotated[
        str | None, typer.Option("--description", help="Free text")
    ] = None,
    inactive: Annotated[
        bool, typer.Option("--inactive", help="Create disabled")
    ] = False,
    known_only: Annotated[
        bool, typer.Option("--known-only", help="Only serve reserved clients")
    ] = False,
    require_auth: Annotated[
        bool, typer.Option("--require-auth", help="Require authorized clients")
    ] = False,
):
    """Create a pool."""
    payload = {
        "name": name,
        "description": description,
        "vlan_id": vlan,
        "network_cidr": network,
        "start_ip": start,
        "end_ip": end,
        "gateway_ip": gateway,
        "dns_servers": dns,
        "domain_name": domain,
        "lease_seconds": lease_time,
        "max_lease_seconds": max_lease_time,
        "is_active": not inactive,
        "allow_unknown_clients": not known_only,
        "require_authorization": require_auth,
    }
    try:
        pool = client.create_pool(payload)
        if wants_json():
            print_json(pool)
        else:
            print_success(f"Pool '{pool['name']}' created with id {pool['id']}.")

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("update")
def update_pool(
    pool_id: Annotated[int, typer.Argument(help="Pool ID")],
    name: Annotated[str | None, typer.Option("--name")] = None,
    start: Annotated[str | None, typer.Option("--start", "-s")] = None,
    end: Annotated[str | None, typer.Option("--end", "-e")] = None,
    gateway: Annotated[str | None, typer.Option("--gateway", "-g")] = None,
    dns: Annotated[list[str] | None, typer.Option("--dns", "-d")] = None,
    lease_time: Annotated[str | None, typer.Option("--lease-time")] = None,
    max_lease_time: Annotated[str | None, typer.Option("--max-lease-time")] = None,
    active: Annotated[
        bool | None, typer.Option("--active/--inactive", help="Enable or disable")
    ] = None,
):
    """Update selected fields of a pool."""
    payload = {
        key: value
        for key, value in {
            "name": name,
            "start_ip": start,
            "end_ip": end,
            "gateway_ip": gateway,
            "dns_servers": dns or None,
            "lease_seconds": lease_time,
            "max_lease_seconds": max_lease_time,
            "is_active": active,
        }.items()
        if value is not None
    }
    if not payload:
        print_error("Nothing to update.")
        raise typer.Exit(1)

    try:
        pool = client.update_pool(pool_id, payload)
        if wants_json():
            print_json(pool)
        else:
            print_success(f"Pool '{pool['name']}' updated.")

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("remove")
def remove_pool(
    pool_id: Annotated[int, typer.Argument(help="Pool ID")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
):
    """Delete a pool."""
    if not yes:
        typer.confirm(f"Delete pool {pool_id}?", abort=True)
    try:
        client.delete_pool(pool_id)
        print_success(f"Pool {pool_id} deleted.")

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)
