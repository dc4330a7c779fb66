"""Lease management commands."""

from typing import Annotated

import typer

from kohakudhcp.cli import client
from kohakudhcp.cli.formatters import format_lease_table
from kohakudhcp.cli.output import (
    console,
    print_error,
    print_json,
    print_success,
    print_warning,
    wants_json,
)

app = typer.Typer(help="Lease management commands")


@app.command("list")
def list_leases(
    pool_id: Annotated[
        int | None, typer.Option("--pool", "-p", help="Filter by pool ID")
    ] = None,
):
    """List active leases."""
    try:
        leases = client.get_leases(pool_id)

        if wants_json():
            print_json(leases)
            return
        if not leases:
            console.print("[yellow]No active leases.[/yellow]")
            return
        console.print(format_lease_table(leases))

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("allocate")
def allocate_lease(
    mac_address: Annotated[str, typer.Argument(help="Client MAC address")],
    pool_id: Annotated[int, typer.Option("--pool", "-p", help="Pool ID")],
    hostname: Annotated[str | None, typer.Option("--hostname", "-n")] = None,
    lease_time: Annotated[str | None, typer.Option("--lease-time")] = None,
    authorized: Annotated[
        bool, typer.Option("--authorized", help="Client is authorized")
    ] = False,
):
    """Allocate an address for a client."""
    payload = {
        "mac_address": mac_address,
        "pool_id": pool_id,
        "hostname": hostname,
        "lease_time": lease_time,
        "authorized": authorized,
    }
    try:
        lease = client.allocate_lease(payload)
        if wants_json():
            print_json(lease)
        else:
            print_success(
                f"{lease['mac_address']} -> {lease['ip_address']} "
                f"(lease {lease['id']}, until {lease['lease_end']})"
            )

    except client.APIError as e:
        if isinstance(e.detail, dict) and e.detail.get("error") == "pool_exhausted":
            print_warning(f"Pool {pool_id} has no free addresses.")
            raise typer.Exit(2)
        print_error(str(e))
        raise typer.Exit(1)


@app.command("release")
def release_lease(
    mac_address: Annotated[str, typer.Argument(help="Client MAC address")],
):
    """Release a client's active lease."""
    try:
        result = client.release_lease(mac_address)
        if result.get("released"):
            print_success(f"Lease for {result['mac_address']} released.")
        else:
            print_warning(f"No active lease for {result['mac_address']}.")

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("renew")
def renew_lease(
    lease_id: Annotated[int, typer.Argument(help="Lease ID")],
    lease_time: Annotated[
        str | None, typer.Option("--lease-time", help="e.g. '12 hours'")
    ] = None,
):
    """Renew a lease."""
    try:
        lease = client.renew_lease(lease_id, lease_time)
        if wants_json():
            print_json(lease)
        else:
            print_success(
                f"Lease {lease['id']} renewed until {lease['lease_end']} "
                f"(renewal #{lease['renewal_count']})."
            )

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("cleanup")
def cleanup_leases():
    """Expire leases whose end time has passed."""
    try:
        result = client.cleanup_leases()
        if wants_json():
            print_json(result)
            return
        print_success(f"Expired {result['processed']} lease(s).")
        if result.get("skipped_ids"):
            print_warning(f"Skipped: {result['skipped_ids']}")

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)
