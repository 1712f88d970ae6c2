"""Pick the single address a server contributes for a requested address type.

Each address type maps to an ordered list of candidate strategies. Strategies
are tried in order and the first one that yields an address wins; a server
for which none yields anything contributes no address at all.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple, Union

from ..config import PRIVATE_V4, PUBLIC_V4, PUBLIC_V6
from .models import IPV4, IPV6, NetworkEndpoints

logger = logging.getLogger(__name__)

# (name, server id), only used in log messages
Instance = Tuple[str, Union[int, str]]
Candidate = Callable[[NetworkEndpoints, logging.Logger, Instance], Optional[str]]

_FAMILY_LABELS = {IPV4: "IPv4", IPV6: "IPv6"}


def _dedicated_public(family: str) -> Candidate:
    label = _FAMILY_LABELS[family]

    def candidate(endpoints: NetworkEndpoints, log: logging.Logger, instance: Instance) -> str | None:
        address = endpoints.public(family)
        if address is None:
            log.debug("instance %s (%s) has no public %s", *instance, label)
            return None
        if address.blocked:
            log.info("public %s for instance %s (%s) is blocked, checking associated floating IPs", label, *instance)
            return None
        log.info("instance %s (%s) has public IP %s", *instance, address.ip)
        return address.ip

    return candidate


def _floating(family: str) -> Candidate:
    def candidate(endpoints: NetworkEndpoints, log: logging.Logger, instance: Instance) -> str | None:
        for floating_ip in endpoints.floating_ips:
            if floating_ip.family == family and not floating_ip.blocked:
                log.info("instance %s (%s) has floating IP %s", *instance, floating_ip.ip)
                return floating_ip.ip
        return None

    return candidate


def _first_private(endpoints: NetworkEndpoints, log: logging.Logger, instance: Instance) -> str | None:
    # Only the first private network counts, there is no public fallback
    if not endpoints.private_ips:
        log.info("instance %s (%s) has no private IP", *instance)
        return None
    log.info("instance %s (%s) has private IP %s", *instance, endpoints.private_ips[0])
    return endpoints.private_ips[0]


_STRATEGIES: dict[str, tuple[Candidate, ...]] = {
    PUBLIC_V4: (_dedicated_public(IPV4), _floating(IPV4)),
    PUBLIC_V6: (_dedicated_public(IPV6), _floating(IPV6)),
    PRIVATE_V4: (_first_private,),
}


def select_address(
    endpoints: NetworkEndpoints,
    address_type: str,
    log: logging.Logger | None = None,
    *,
    name: str = "?",
    server_id: int | str = "?",
) -> str | None:
    """Return the best address among ``endpoints`` for ``address_type``, or None.

    ``name`` and ``server_id`` identify the server in log messages and take no
    part in the selection. Never raises. Unknown address types select nothing.
    """
    log = log or logger
    instance: Instance = (name, server_id)
    for candidate in _STRATEGIES.get(address_type, ()):
        ip = candidate(endpoints, log, instance)
        if ip:
            return ip
    log.debug("instance %s (%s) has no valid associated IP address", *instance)
    return None
