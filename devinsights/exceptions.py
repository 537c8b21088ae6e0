"""
DevInsights exception hierarchy.

All custom exceptions inherit from DevInsightsException so callers can
catch a single base type when they want a broad safety net.
"""

from typing import Optional


class DevInsightsException(Exception):
    """Base exception for all DevInsights errors."""


class ConfigurationError(DevInsightsException, ValueError):
    """Raised when configuration is invalid or cannot be loaded."""


class AuthenticationError(DevInsightsException):
    """Raised when a bearer token cannot be resolved to a principal."""


class GitHubAPIError(DevInsightsException):
    """Raised when a GitHub REST call fails.

    Attributes:
        status_code: Upstream HTTP status, or 500 when no response arrived.
        error_type: Machine-readable error category (e.g. ``FETCH_REPOS_ERROR``).
        details: Low-level error text for diagnostics.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        error_type: str = "GENERAL_ERROR",
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
