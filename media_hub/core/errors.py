"""Exceptions raised across media-hub."""

from __future__ import annotations


class MediaHubError(Exception):
    """Base error for media-hub."""


class RemoteQueryFailed(MediaHubError):
    """A call into the media service failed (transport, auth or service)."""

    def __init__(self, message, code="", error_type="aws_api", is_credential_error=False):
        super().__init__(message)
        self.message = message
        self.code = code
        self.error_type = error_type
        self.is_credential_error = is_credential_error

    def __str__(self):
        if self.code:
            return f"{self.code}: {self.message}"
        return self.message


class ResourceNotFound(MediaHubError):
    """Named remote resource does not exist."""


class ConfigError(MediaHubError):
    """Settings are missing or invalid."""


class LiveEventFailed(MediaHubError):
    """A live event channel failed or never reached the wanted state."""
