"""Hetzner Cloud node discovery: resolve args, find servers, pick one address each."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Callable

from .config import LOCATION_ENV, PROVIDER_NAME, TOKEN_ENV, DiscoveryConfig, resolve_config
from .discovery import InventoryClient
from .discovery.address_selector import select_address
from .discovery.hcloud_client import HcloudInventory
from .exceptions import HostnameReadError, InvalidProviderError

logger = logging.getLogger(__name__)

HOSTNAME_PATH = "/etc/hostname"

HELP = f"""Hetzner Cloud:

    provider:       "{PROVIDER_NAME}"
    api_token:      The Hetzner Cloud API token to use
    location:       The Hetzner Cloud datacenter location to filter by (eg. "fsn1"). Optional.
                    If empty, the location of the current server is detected.
                    If not on an hcloud server, all servers matching label_selector are used.
    label_selector: The label selector to filter by
    address_type:   "private_v4", "public_v4" or "public_v6". (default: "private_v4")
                    In the case of private networks, the first one is used.

    Variables can also be provided by environment variables:
    export {LOCATION_ENV} for location
    export {TOKEN_ENV} for api_token
"""


class Provider:
    """Discovers node addresses from the Hetzner Cloud server inventory.

    Each call to addrs() is one independent, synchronous pass: nothing is cached
    and no API call is retried.
    """

    name = PROVIDER_NAME

    def __init__(
        self,
        inventory_factory: Callable[[str], InventoryClient] = HcloudInventory,
        hostname_path: str | Path = HOSTNAME_PATH,
        environ: Mapping[str, str] | None = None,
    ):
        self._inventory_factory = inventory_factory
        self._hostname_path = Path(hostname_path)
        self._environ = environ

    def help(self) -> str:
        return HELP

    def addrs(self, args: Mapping[str, str], log: logging.Logger | None = None) -> list[str]:
        """Return the addresses of all running servers matching ``args``."""
        log = log or logger

        if args.get("provider") != PROVIDER_NAME:
            raise InvalidProviderError(f"invalid provider {args.get('provider')}")

        config = resolve_config(args, self._environ, log)
        inventory = self._inventory_factory(config.api_token)

        location = config.location or self._detect_location(inventory, log)
        if location:
            log.info("filtering by location %s", location)

        log.debug(
            "using address_type=%s label_selector=%s location=%s",
            config.address_type, config.label_selector, location,
            extra={"address_type": config.address_type, "label_selector": config.label_selector,
                   "location": location},
        )

        addrs = self._collect(inventory, config, location, log)
        log.debug("found IP addresses: %s", addrs, extra={"total_addresses": len(addrs)})
        return addrs

    def _collect(
        self, inventory: InventoryClient, config: DiscoveryConfig, location: str, log: logging.Logger,
    ) -> list[str]:
        addrs: list[str] = []
        for server in inventory.list_running_servers(config.label_selector):
            # Exact match only, case and whitespace included
            if location and server.location != location:
                continue
            ip = select_address(
                server.endpoints, config.address_type, log, name=server.name, server_id=server.server_id,
            )
            if ip:
                addrs.append(ip)
        return addrs

    def _detect_location(self, inventory: InventoryClient, log: logging.Logger) -> str:
        """Use the location of the server we run on, if it is an hcloud server."""
        try:
            hostname = self._hostname_path.read_text().strip()
        except OSError as exc:
            raise HostnameReadError(f"cannot read {self._hostname_path}: {exc}") from exc

        if not hostname:
            log.info("Location not specified and %s is empty. Joining all matching label selector.",
                     self._hostname_path)
            return ""

        log.info("Location not specified. Searching for current server named %s.", hostname)
        server = inventory.get_server_by_name(hostname)
        if server is None:
            log.info("No location specified and not an hcloud server. Joining all matching label selector.")
            return ""

        log.info(
            "Detected current server %s with id %d", server.name, server.server_id,
            extra={"server": server.name, "server_id": server.server_id, "location": server.location},
        )
        return server.location
