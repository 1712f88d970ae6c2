"""Data models for servers and network endpoints discovered from Hetzner Cloud."""

from __future__ import annotations

from dataclasses import dataclass, field

IPV4 = "ipv4"
IPV6 = "ipv6"


@dataclass(frozen=True)
class PublicAddress:
    """A primary public IP directly attached to a server."""

    ip: str
    blocked: bool = False


@dataclass(frozen=True)
class FloatingAddress:
    """A reassignable floating IP currently assigned to a server."""

    ip: str
    family: str  # "ipv4" or "ipv6"
    blocked: bool = False


@dataclass(frozen=True)
class NetworkEndpoints:
    """Every candidate address of a server, in the order the API reports them."""

    private_ips: tuple[str, ...] = ()
    ipv4: PublicAddress | None = None
    ipv6: PublicAddress | None = None
    floating_ips: tuple[FloatingAddress, ...] = ()

    def public(self, family: str) -> PublicAddress | None:
        """The dedicated public address for an address family."""
        return self.ipv4 if family == IPV4 else self.ipv6 if family == IPV6 else None


@dataclass(frozen=True)
class ServerRecord:
    """A single server from the inventory."""

    server_id: int
    name: str
    location: str  # datacenter location name, e.g. "fsn1"
    endpoints: NetworkEndpoints = field(default_factory=NetworkEndpoints)
    status: str = "running"
    labels: dict[str, str] = field(default_factory=dict)
