"""
Shared plumbing for the marketplace packages.

Public API:
- Error taxonomy: MarketplaceError, NotFound, Conflict, InvalidTransition, ValidationError
- Settings: Settings, load_settings, configure_logging
"""
from .errors import MarketplaceError, NotFound, Conflict, InvalidTransition, ValidationError
from .settings import Settings, load_settings, configure_logging

__all__ = [
    "MarketplaceError",
    "NotFound",
    "Conflict",
    "InvalidTransition",
    "ValidationError",
    "Settings",
    "load_settings",
    "configure_logging",
]
