"""
Error taxonomy for the recommendation core.

Only Unauthorized and AuthRefreshFailed are meant to reach callers of
RecommendationEngine.recommend(). UpstreamUnavailable is raised by the
catalog client and absorbed by the cascade stages.
"""

from __future__ import annotations

from typing import Optional


class MoodDJError(Exception):
    """Base exception for Mood DJ errors."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict | None = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class Unauthorized(MoodDJError):
    """No credential is installed, or it expired with no refresh path."""

    def __init__(self, message: str = "Not authorized. Reconnect Spotify.", details: dict | None = None):
        super().__init__(message, "UNAUTHORIZED", details)


class AuthRefreshFailed(MoodDJError):
    """The refresh-token exchange was rejected or could not be completed."""

    def __init__(self, message: str = "Token refresh failed. Reconnect Spotify.", details: dict | None = None):
        super().__init__(message, "AUTH_REFRESH_FAILED", details)


class UpstreamUnavailable(MoodDJError):
    """A catalog call failed (HTTP error, rate limit, timeout, bad payload)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        details: dict | None = None,
    ):
        super().__init__(message, "UPSTREAM_UNAVAILABLE", details)
        self.status_code = status_code
        self.endpoint = endpoint


class CatalogUnauthorized(UpstreamUnavailable):
    """The catalog answered 401 even though a token was sent."""

    def __init__(self, message: str, endpoint: Optional[str] = None, rejected_token: Optional[str] = None):
        super().__init__(message, status_code=401, endpoint=endpoint)
        self.rejected_token = rejected_token
