"""Custom exception hierarchy for the Hetzner Cloud discovery provider."""


class DiscoveryError(Exception):
    """Base exception for all discovery errors."""


class ConfigError(DiscoveryError):
    """Invalid or missing configuration."""


class InvalidProviderError(ConfigError):
    """The ``provider`` argument does not name this plugin."""


class MissingCredentialError(ConfigError):
    """No API token was given explicitly or through the environment."""


class HostnameReadError(DiscoveryError):
    """The local hostname file could not be read during location detection."""


class InventoryLookupError(DiscoveryError):
    """Error talking to the Hetzner Cloud API."""

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
