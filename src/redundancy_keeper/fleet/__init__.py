"""Access to the fleet orchestration API."""

from .auth import BearerTokenAuth, StaticTokenIssuer, TokenIssuer
from .client import FleetClient, ServiceIdentity
from .identity_cache import IdentityCache

__all__ = [
    "BearerTokenAuth",
    "StaticTokenIssuer",
    "TokenIssuer",
    "FleetClient",
    "ServiceIdentity",
    "IdentityCache",
]
