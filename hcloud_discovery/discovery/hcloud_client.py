"""Hetzner Cloud SDK client for looking up and listing servers."""

from __future__ import annotations

import ipaddress
import logging
from typing import Any

import requests
from hcloud import APIException, Client

from .. import __version__
from ..exceptions import InventoryLookupError
from .models import FloatingAddress, NetworkEndpoints, PublicAddress, ServerRecord

logger = logging.getLogger(__name__)

APPLICATION_NAME = "hcloud-discover"
STATUS_RUNNING = "running"


class HcloudInventory:
    """Reads servers from the Hetzner Cloud API using the official SDK."""

    def __init__(self, api_token: str):
        self._client = Client(
            token=api_token,
            application_name=APPLICATION_NAME,
            application_version=__version__,
        )

    def get_server_by_name(self, name: str) -> ServerRecord | None:
        """Look up a server by exact name. Returns None if there is none."""
        logger.debug("Looking up server named %s", name)
        try:
            server = self._client.servers.get_by_name(name)
            return self._to_record(server) if server is not None else None
        except (APIException, requests.RequestException) as exc:
            raise _lookup_error(f"looking up server {name}", exc) from exc

    def list_running_servers(self, label_selector: str = "") -> list[ServerRecord]:
        """List every running server matching the label selector, across all pages."""
        kwargs: dict[str, Any] = {"status": [STATUS_RUNNING]}
        if label_selector:
            kwargs["label_selector"] = label_selector

        logger.debug("Listing running servers label_selector=%r", label_selector)
        try:
            # Floating IPs are loaded lazily by the SDK, so conversion may still hit the API
            records = [self._to_record(s) for s in self._client.servers.get_all(**kwargs)]
        except (APIException, requests.RequestException) as exc:
            raise _lookup_error("listing servers", exc) from exc

        logger.info("Inventory returned %d running servers", len(records))
        return records

    # ── Parsing ─────────────────────────────────────────────────────

    def _to_record(self, server) -> ServerRecord:
        """Convert an SDK BoundServer into a ServerRecord."""
        public_net = server.public_net
        private_net = server.private_net or []

        endpoints = NetworkEndpoints(
            private_ips=tuple(net.ip for net in private_net if net.ip),
            ipv4=self._public_address(public_net.ipv4 if public_net else None),
            ipv6=self._public_address(public_net.ipv6 if public_net else None),
            floating_ips=tuple(
                FloatingAddress(ip=_host_address(fip.ip), family=fip.type, blocked=bool(fip.blocked))
                for fip in ((public_net.floating_ips or []) if public_net else [])
            ),
        )

        return ServerRecord(
            server_id=server.id,
            name=server.name,
            location=self._location_name(server),
            endpoints=endpoints,
            status=server.status,
            labels=dict(server.labels or {}),
        )

    @staticmethod
    def _location_name(server) -> str:
        """Name of the location a server runs in, e.g. "fsn1"."""
        location = getattr(server, "location", None)
        if location is None:
            # SDK releases without Server.location only expose it through the datacenter
            datacenter = getattr(server, "datacenter", None)
            location = datacenter.location if datacenter is not None else None
        return location.name if location is not None else ""

    @staticmethod
    def _public_address(raw) -> PublicAddress | None:
        if raw is None or not raw.ip:
            return None
        return PublicAddress(ip=_host_address(raw.ip), blocked=bool(raw.blocked))


def _host_address(value: str) -> str:
    """Return the address part of an IP or network string.

    The API reports IPv6 assignments as networks ("2001:db8::/64"); the
    network address is what gets reported.
    """
    try:
        return str(ipaddress.ip_network(value, strict=False).network_address)
    except ValueError:
        return value


def _lookup_error(action: str, exc: Exception) -> InventoryLookupError:
    if isinstance(exc, APIException):
        return InventoryLookupError(f"Hetzner Cloud API error while {action}: {exc}", code=exc.code)
    status_code = exc.response.status_code if getattr(exc, "response", None) is not None else None
    return InventoryLookupError(f"Request failed while {action}: {exc}", status_code=status_code)
