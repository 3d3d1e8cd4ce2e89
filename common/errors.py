"""
Purpose: Error taxonomy shared by every core operation.

Each operation raises one of these at its boundary. The hosting layer maps
them onto user-facing responses; the core never retries or swallows them.
"""


class MarketplaceError(Exception):
    """Base class for all core marketplace errors."""
    pass


class NotFound(MarketplaceError):
    """A job, bid or user id is unknown."""
    pass


class Conflict(MarketplaceError):
    """
    A concurrent state-changing operation won the race.
    Callers are expected to re-fetch the job and retry if it still makes sense.
    """
    pass


class InvalidTransition(MarketplaceError):
    """The requested status change is not legal from the job's current status."""
    pass


class ValidationError(MarketplaceError, ValueError):
    """Malformed input (negative distance, degenerate polygon, passengers <= 0, ...)."""
    pass
