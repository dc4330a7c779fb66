"""Reservation management commands."""

from typing import Annotated

import typer

from kohakudhcp.cli import client
from kohakudhcp.cli.formatters import format_reservation_table
from kohakudhcp.cli.output import (
    console,
    print_error,
    print_json,
    print_success,
    wants_json,
)

app = typer.Typer(help="Reservation management commands")


@app.command("list")
def list_reservations(
    pool_id: Annotated[
        int | None, typer.Option("--pool", "-p", help="Filter by pool ID")
    ] = None,
):
    """List active reservations."""
    try:
        reservations = client.get_reservations(pool_id)

        if wants_json():
            print_json(reservations)
            return
        if not reservations:
            console.print("[yellow]No reservations found.[/yellow]")
            return
        console.print(format_reservation_table(reservations))

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("add")
def add_reservation(
    mac_address: Annotated[str, typer.Argument(help="Client MAC address")],
    ip_address: Annotated[str, typer.Argument(help="Reserved IP address")],
    hostname: Annotated[str | None, typer.Option("--hostname", "-n")] = None,
    pool_id: Annotated[int | None, typer.Option("--pool", "-p")] = None,
    lease_time: Annotated[
        str | None, typer.Option("--lease-time", help="Lease override, e.g. '12 hours'")
    ] = None,
    description: Annotated[str | None, typer.Option("--description")] = None,
):
    """Reserve an IP address for a MAC."""
    payload = {
        "mac_address": mac_address,
        "ip_address": ip_address,
        "hostname": hostname,
        "pool_id": pool_id,
        "lease_time": lease_time,
        "description": description,
    }
    try:
        reservation = client.create_reservation(payload)
        if wants_json():
            print_json(reservation)
        else:
            print_success(
                f"Reserved {reservation['ip_address']} for "
                f"{reservation['mac_address']} (id {reservation['id']})."
            )

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("remove")
def remove_reservation(
    reservation_id: Annotated[int, typer.Argument(help="Reservation ID")],
):
    """Remove a reservation."""
    try:
        client.delete_reservation(reservation_id)
        print_success(f"Reservation {reservation_id} removed.")

    except client.APIError as e:
        print_error(str(e))
        raise typer.Exit(1)
