"""Rich renderables for CLI output."""

from rich.panel import Panel
from rich.table import Table

STATE_STYLES = {
    "active": "green",
    "released": "dim",
    "expired": "yellow",
    "declined": "red",
}


def _short_time(value: str | None) -> str:
    if not value:
        return "-"
    return value.replace("T", " ")[:19]


# =============================================================================
# Pools
# =============================================================================


def format_pool_table(pools: list[dict]) -> Table:
    table = Table(title="DHCP Pools")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("VLAN", justify="right")
    table.add_column("Network")
    table.add_column("Range")
    table.add_column("Gateway")
    table.add_column("Lease")
    table.add_column("Size", justify="right")
    table.add_column("Active")

    for pool in pools:
        table.add_row(
            str(pool["id"]),
            pool["name"],
            str(pool["vlan_id"]),
            pool["network_cidr"],
            f"{pool['start_ip']} - {pool['end_ip']}",
            pool["gateway_ip"],
            pool.get("lease_time", str(pool.get("lease_seconds"))),
            str(pool.get("size", "")),
            "[green]yes[/green]" if pool["is_active"] else "[dim]no[/dim]",
        )
    return table


def format_pool_detail(pool: dict) -> Panel:
    usage = pool.get("usage") or {}
    lines = [
        f"[bold]Name:[/bold] {pool['name']} (id {pool['id']})",
        f"[bold]VLAN:[/bold] {pool['vlan_id']}",
        f"[bold]Network:[/bold] {pool['network_cidr']}",
        f"[bold]Range:[/bold] {pool['start_ip']} - {pool['end_ip']}",
        f"[bold]Gateway:[/bold] {pool['gateway_ip']}",
        f"[bold]DNS:[/bold] {', '.join(pool.get('dns_servers', []))}",
        f"[bold]Domain:[/bold] {pool.get('domain_name', 'local')}",
        f"[bold]Lease:[/bold] {pool.get('lease_time')} "
        f"(max {pool.get('max_lease_time')})",
        f"[bold]Unknown clients:[/bold] "
        f"{'allowed' if pool.get('allow_unknown_clients') else 'refused'}",
        f"[bold]Authorization:[/bold] "
        f"{'required' if pool.get('require_authorization') else 'not required'}",
    ]
    if usage:
        lines.append(
            f"[bold]Usage:[/bold] {usage['total'] - usage['free']}/{usage['total']} "
            f"({usage['utilization']}%), {usage['leased']} leased, "
            f"{usage['reserved']} reserved"
        )
    if pool.get("description"):
        lines.append(f"[bold]Description:[/bold] {pool['description']}")
    status = "green" if pool["is_active"] else "dim"
    return Panel("\n".join(lines), title=f"Pool {pool['name']}", border_style=status)


# =============================================================================
# Reservations & Leases
# =============================================================================


def format_reservation_table(reservations: list[dict]) -> Table:
    table = Table(title="Reservations")
    table.add_column("ID", justify="right")
    table.add_column("MAC", style="cyan")
    table.add_column("IP")
    table.add_column("Hostname")
    table.add_column("Pool")
    table.add_column("Lease Override", justify="right")

    for r in reservations:
        override = r.get("lease_seconds_override")
        table.add_row(
            str(r["id"]),
            r["mac_address"],
            r["ip_address"],
            r.get("hostname") or "-",
            r.get("pool_name") or "-",
            f"{override}s" if override else "-",
        )
    return table


def format_lease_table(leases: list[dict]) -> Table:
    table = Table(title="Leases")
    table.add_column("ID", justify="right")
    table.add_column("MAC", style="cyan")
    table.add_column("IP")
    table.add_column("Hostname")
    table.add_column("Pool")
    table.add_column("Ends")
    table.add_column("Renewals", justify="right")
    table.add_column("State")

    for lease in leases:
        style = STATE_STYLES.get(lease["state"], "white")
        table.add_row(
            str(lease["id"]),
            lease["mac_address"],
            lease["ip_address"],
            lease.get("hostname") or "-",
            lease.get("pool_name") or "-",
            _short_time(lease.get("lease_end")),
            str(lease.get("renewal_count", 0)),
            f"[{style}]{lease['state']}[/{style}]",
        )
    return table


# =============================================================================
# Stats, Logs & DNS
# =============================================================================


def format_stats(stats: dict) -> Panel:
    pools = stats["pools"]
    leases = stats["leases"]
    reservations = stats["reservations"]
    lines = [
        f"[bold]Pools:[/bold] {pools['active']} active / {pools['total']} total",
        f"[bold]Leases:[/bold] {leases['active']} active, {leases['expired']} expired, "
        f"{leases['released']} released, {leases['declined']} declined",
        f"[bold]Reservations:[/bold] {reservations['active']} active / "
        f"{reservations['total']} total",
    ]
    for usage in stats.get("utilization", []):
        lines.append(
            f"  {usage['pool_name']} (VLAN {usage['vlan_id']}): "
            f"{usage['total'] - usage['free']}/{usage['total']} used "
            f"({usage['utilization']}%)"
        )
    return Panel("\n".join(lines), title="DHCP Statistics", border_style="blue")


def format_log_table(events: list[dict]) -> Table:
    table = Table(title="DHCP Events")
    table.add_column("Time")
    table.add_column("Event", style="cyan")
    table.add_column("MAC")
    table.add_column("IP")
    table.add_column("Message")

    for event in events:
        table.add_row(
            _short_time(event.get("timestamp")),
            event["event_type"],
            event.get("mac_address") or "-",
            event.get("ip_address") or "-",
            event.get("message") or "",
        )
    return table


def format_upstream_table(upstreams: list[dict]) -> Table:
    table = Table(title="Upstream Resolvers")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Address")
    table.add_column("DoT")
    table.add_column("Priority", justify="right")
    table.add_column("Active")

    for u in upstreams:
        dot = u.get("dot_hostname") if u.get("supports_dot") else None
        table.add_row(
            str(u["id"]),
            u["name"],
            f"{u['ip_address']}:{u.get('port', 53)}",
            dot or "-",
            str(u.get("priority", 100)),
            "[green]yes[/green]" if u.get("is_active") else "[dim]no[/dim]",
        )
    return table
