"""Node discovery for Hetzner Cloud servers."""

import logging

__version__ = "0.1.0"

# Silent unless the host application configures logging
logging.getLogger(__name__).addHandler(logging.NullHandler())

from .provider import Provider  # noqa: E402

__all__ = ["Provider", "__version__"]
