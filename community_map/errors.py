from typing import Optional


class CommunityMapError(Exception):
    """Base class for errors raised by the geocoding pipeline."""


class ConfigurationError(CommunityMapError):
    """A required setting is missing; raised before any work starts."""


class RateLimitedError(CommunityMapError):
    """An upstream service asked us to slow down."""

    def __init__(self, message="Rate limited", retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class MaxRetriesExceededError(CommunityMapError):
    """Rate limiting persisted past the retry ceiling. Aborts the run."""
