"""Discovery argument resolution and YAML loader with env-var interpolation."""

from __future__ import annotations

import logging
import os
import re
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError, MissingCredentialError

logger = logging.getLogger(__name__)

PROVIDER_NAME = "hcloud"

TOKEN_ENV = "HCLOUD_TOKEN"
LOCATION_ENV = "HCLOUD_LOCATION"

PRIVATE_V4 = "private_v4"
PUBLIC_V4 = "public_v4"
PUBLIC_V6 = "public_v6"
ADDRESS_TYPES = (PRIVATE_V4, PUBLIC_V4, PUBLIC_V6)
DEFAULT_ADDRESS_TYPE = PRIVATE_V4

ARG_KEYS = ("provider", "api_token", "location", "label_selector", "address_type")

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _interpolate_env(value: str) -> str:
    """Replace ${ENV_VAR} placeholders with environment variable values."""

    def _replace(match: re.Match) -> str:
        env_key = match.group(1)
        env_val = os.environ.get(env_key)
        if env_val is None:
            raise ConfigError(f"Environment variable '{env_key}' is not set")
        return env_val

    return _ENV_PATTERN.sub(_replace, value)


def _walk_and_interpolate(obj: Any) -> Any:
    """Recursively interpolate env vars in strings throughout a nested structure."""
    if isinstance(obj, str):
        return _interpolate_env(obj)
    if isinstance(obj, dict):
        return {k: _walk_and_interpolate(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk_and_interpolate(v) for v in obj]
    return obj


@dataclass(frozen=True)
class DiscoveryConfig:
    """Effective parameters for one discovery pass."""

    api_token: str = field(default="", repr=False)
    location: str = ""  # empty = no filter, or detect from the current server
    label_selector: str = ""  # empty = no filter
    address_type: str = DEFAULT_ADDRESS_TYPE


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "text"  # "json" or "text"


@dataclass(frozen=True)
class AppConfig:
    discover: dict[str, str] = field(default_factory=dict)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _args_or_env(args: Mapping[str, str], key: str, env: Mapping[str, str], env_key: str) -> str:
    value = args.get(key)
    if value:
        return value
    return env.get(env_key, "")


def normalize_address_type(address_type: str | None, log: logging.Logger | None = None) -> str:
    """Coerce any input to one of ADDRESS_TYPES, defaulting to private_v4."""
    log = log or logger
    if not address_type:
        log.info("address type not provided, using '%s'", DEFAULT_ADDRESS_TYPE)
        return DEFAULT_ADDRESS_TYPE
    if address_type not in ADDRESS_TYPES:
        log.warning(
            "address_type %s is invalid, falling back to '%s'. valid values are: %s",
            address_type, DEFAULT_ADDRESS_TYPE, ", ".join(ADDRESS_TYPES),
        )
        return DEFAULT_ADDRESS_TYPE
    return address_type


def resolve_config(
    args: Mapping[str, str],
    environ: Mapping[str, str] | None = None,
    log: logging.Logger | None = None,
) -> DiscoveryConfig:
    """Merge explicit args with HCLOUD_* environment fallbacks.

    Explicit values win; the environment is consulted only for absent or empty
    keys. A missing token is fatal, an invalid address type is not.
    """
    env = os.environ if environ is None else environ

    api_token = _args_or_env(args, "api_token", env, TOKEN_ENV)
    if not api_token:
        raise MissingCredentialError("no API token specified")

    return DiscoveryConfig(
        api_token=api_token,
        location=_args_or_env(args, "location", env, LOCATION_ENV),
        label_selector=args.get("label_selector") or "",
        address_type=normalize_address_type(args.get("address_type"), log),
    )


def parse_args_string(text: str) -> dict[str, str]:
    """Parse a 'provider=hcloud label_selector=role=db' discovery string.

    Tokens are shell-split so values may be quoted; only the first '=' of a
    token separates the key.
    """
    try:
        tokens = shlex.split(text)
    except ValueError as exc:
        raise ConfigError(f"Cannot parse discovery arguments: {exc}") from exc

    args: dict[str, str] = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        if not sep or not key:
            raise ConfigError(f"Invalid discovery argument '{token}', expected key=value")
        args[key] = value
    return args


def _build_nested(cls: type, data: dict[str, Any]) -> Any:
    """Construct a frozen dataclass, recursively building nested dataclass fields."""
    if not isinstance(data, dict):
        return data
    field_types = {f.name: f.type for f in cls.__dataclass_fields__.values()}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in field_types:
            continue
        ft = field_types[key]
        # Resolve string annotations to actual types in the module scope
        if isinstance(ft, str):
            ft = eval(ft, globals(), {cls.__name__: cls})  # noqa: S307
        if isinstance(ft, type) and hasattr(ft, "__dataclass_fields__") and isinstance(value, dict):
            kwargs[key] = _build_nested(ft, value)
        else:
            kwargs[key] = value
    return cls(**kwargs)


def load_config(path: str | Path) -> AppConfig:
    """Load and validate configuration from a YAML file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must be a YAML mapping")

    raw = _walk_and_interpolate(raw)
    config = _build_nested(AppConfig, raw)
    _validate(config)
    return config


def _validate(config: AppConfig) -> None:
    """Validate configuration values."""
    if not isinstance(config.discover, dict):
        raise ConfigError("discover must be a mapping of discovery arguments")

    for key, value in config.discover.items():
        if key not in ARG_KEYS:
            raise ConfigError(f"discover.{key} is not a recognized argument ({', '.join(ARG_KEYS)})")
        if not isinstance(value, str):
            raise ConfigError(f"discover.{key} must be a string")

    provider = config.discover.get("provider")
    if provider and provider != PROVIDER_NAME:
        raise ConfigError(f"discover.provider must be '{PROVIDER_NAME}'")

    if config.logging.format not in ("json", "text"):
        raise ConfigError("logging.format must be 'json' or 'text'")
