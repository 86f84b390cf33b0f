"""
Error taxonomy for the StoryCall relay and client.

Services raise these exceptions; the FastAPI routes and the client manager
translate them into bounded HTTP responses or status text.
"""

from typing import Optional

from storycall.config.constants import MAX_ERROR_BODY_CHARS


def truncate_body(body: Optional[str], limit: int = MAX_ERROR_BODY_CHARS) -> str:
    """Cap an upstream body so error payloads stay bounded."""
    if not body:
        return ""
    return body[:limit]


class StoryCallError(Exception):
    """Base class for all application errors."""


class ConfigurationError(StoryCallError):
    """Required configuration (the provider secret) is missing."""


class BadRequest(StoryCallError):
    """Client input is missing or malformed. Never retried."""

    status = 400


class UpstreamError(StoryCallError):
    """The upstream provider failed; carries its status and a truncated body."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = truncate_body(body)

    @property
    def http_status(self) -> int:
        """Status to report downstream; network failures map to 502."""
        return self.status or 502


class UpstreamTransient(UpstreamError):
    """Gateway status (502/503/504), timeout, or network failure."""


class RetriesExhausted(UpstreamTransient):
    """Every attempt failed without an observed error."""


class UpstreamRejected(UpstreamError):
    """Any other non-success upstream status; surfaced immediately."""


class ProtocolError(StoryCallError):
    """A data-channel message could not be decoded."""


class MediaPermissionError(StoryCallError):
    """Local microphone or camera could not be opened."""


class PlaybackBlocked(StoryCallError):
    """Remote audio playback needs a user gesture before it can start."""
