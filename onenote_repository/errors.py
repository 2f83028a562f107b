"""Exceptions raised by the OneNote repository plugin."""

from __future__ import annotations

from typing import Optional


class OneNoteRepositoryError(Exception):
    """Base exception for all repository errors."""


class AuthenticationError(OneNoteRepositoryError):
    """Raised when the authorization code is rejected or no token is returned."""


class NotLoggedInError(AuthenticationError):
    """Raised when a listing or download is attempted without a token."""


class ConfigurationError(OneNoteRepositoryError):
    """Raised when the client id or secret is missing."""


class RemoteAPIError(OneNoteRepositoryError):
    """Raised when a OneNote API call fails (network error or non-2xx status)."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)
