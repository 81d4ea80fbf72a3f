"""
Domain exceptions raised by the core and translated to HTTP responses by the
handlers in ``api.middleware``.
"""

from __future__ import annotations

from typing import Optional


class DoorlockError(Exception):
    """Base class for every error the core raises on purpose."""

    status_code = 500
    # What the HTTP caller gets to see; the exception text stays in the logs.
    public_message = "Internal error"


class NotFound(DoorlockError):
    status_code = 404
    public_message = "Not found"


class Forbidden(DoorlockError):
    status_code = 403
    public_message = "Forbidden"


class GrantDenied(Forbidden):
    """
    Redemption refused.

    Carries the internal reason for logging only; responses never include it
    so callers cannot tell which precondition failed.
    """

    def __init__(self, reason: str = "denied") -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidState(DoorlockError):
    status_code = 400
    public_message = "Invalid OAuth state"


class UpstreamHubError(DoorlockError):
    """The hub answered with an error or could not be reached."""

    status_code = 502
    public_message = "Upstream hub error"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class UpstreamAuthError(UpstreamHubError):
    """OAuth code exchange or token refresh failed; nothing was persisted."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=502)


class UpstreamActuationError(UpstreamHubError):
    """The hub rejected or failed the open command (status passed through)."""
