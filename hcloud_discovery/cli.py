"""Argument parsing, configuration loading, and a single discovery pass."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

from .config import PROVIDER_NAME, AppConfig, load_config, parse_args_string
from .exceptions import ConfigError, DiscoveryError
from .logging_config import configure_logging
from .provider import Provider

logger = logging.getLogger(__name__)

_FLAG_KEYS = ("api_token", "location", "label_selector", "address_type")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hcloud-discover",
        description="Print the addresses of Hetzner Cloud servers matching the given filters",
    )
    parser.add_argument(
        "discover",
        nargs="?",
        default="",
        metavar="ARGS",
        help='Discovery arguments as one string, e.g. "label_selector=role=consul address_type=public_v4"',
    )
    parser.add_argument("-c", "--config", help="Path to a YAML configuration file")
    parser.add_argument("--api-token", help="Hetzner Cloud API token (default: $HCLOUD_TOKEN)")
    parser.add_argument("--location", help="Datacenter location to filter by (default: $HCLOUD_LOCATION)")
    parser.add_argument("--label-selector", help="Label selector to filter servers by")
    parser.add_argument("--address-type", help="private_v4, public_v4 or public_v6")
    parser.add_argument("--log-level", help="Log level (default: INFO)")
    parser.add_argument("--log-format", choices=("json", "text"), help="Log format (default: text)")
    parser.add_argument(
        "--help-provider",
        action="store_true",
        help="Show the provider's argument reference and exit",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    provider = Provider()

    if args.help_provider:
        print(provider.help())
        return 0

    # Load config (minimal logging until config is loaded)
    try:
        config = load_config(args.config) if args.config else AppConfig()
        discover_args = {"provider": PROVIDER_NAME, **config.discover, **parse_args_string(args.discover)}
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    for key in _FLAG_KEYS:
        value = getattr(args, key)
        if value is not None:
            discover_args[key] = value

    logging_config = config.logging
    if args.log_level:
        logging_config = replace(logging_config, level=args.log_level)
    if args.log_format:
        logging_config = replace(logging_config, format=args.log_format)
    configure_logging(logging_config)

    try:
        addrs = provider.addrs(discover_args)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    except DiscoveryError as exc:
        logger.error("Discovery failed: %s", exc)
        return 1

    print(" ".join(addrs))
    return 0
