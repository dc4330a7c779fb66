"""
Upstream DNS resolver model.

Input for the Unbound forward-zone synthesis.
"""

import datetime

import peewee

from kohakudhcp.db.base import BaseModel


class UpstreamResolver(BaseModel):
    """
    An upstream DNS server the appliance forwards queries to.

    Attributes:
        ip_address: Resolver address.
        port: Plain DNS port (53 unless overridden).
        supports_dot: Whether the resolver accepts DNS over TLS on 853.
        dot_hostname: TLS authentication name (e.g., 'cloudflare-dns.com').
        priority: Lower values are listed first.
    """

    id = peewee.AutoField()
    name = peewee.CharField()
    ip_address = peewee.CharField()
    port = peewee.IntegerField(default=53)
    supports_dot = peewee.BooleanField(default=False)
    dot_hostname = peewee.CharField(null=True)
    priority = peewee.IntegerField(default=100)
    is_active = peewee.BooleanField(default=True)
    created_at = peewee.DateTimeField(default=datetime.datetime.now)

    class Meta:
        table_name = "upstream_resolvers"

    def uses_tls(self) -> bool:
        return bool(self.supports_dot and self.dot_hostname)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "ip_address": self.ip_address,
            "port": self.port,
            "supports_dot": self.supports_dot,
            "dot_hostname": self.dot_hostname,
            "priority": self.priority,
            "is_active": self.is_active,
        }
