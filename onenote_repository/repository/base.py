"""Base repository plugin interface for the OneNote repository.

This module defines the capability interface the host platform talks to
(login, list, fetch, logout, capabilities). The host depends only on
RepositoryPlugin; concrete repositories live in their own modules and
are wired in via the registry in onenote_repository.repository.__init__.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from ..models import Breadcrumb, Capabilities, FetchResult, Listing, LoginPrompt


class AuthState(Enum):
    """Where a session is in the OAuth2 login flow."""

    UNAUTHENTICATED = "unauthenticated"
    PENDING_CALLBACK = "pending_callback"
    AUTHENTICATED = "authenticated"


class RepositoryPlugin(ABC):
    """Abstract base class for repository plugins.

    A repository lets a user sign in to an external file source, browse
    it, and copy chosen entries into the host.
    """

    name: str = "base"

    @abstractmethod
    def is_logged_in(self) -> bool:
        """True if the current session holds a usable token."""
        raise NotImplementedError

    @abstractmethod
    def login_prompt(self) -> LoginPrompt:
        """Return the login affordance for the current session."""
        raise NotImplementedError

    @abstractmethod
    def handle_callback(self, code: Optional[str]) -> None:
        """Complete the login flow with the code the provider returned.

        A missing code leaves the session untouched. A rejected code
        raises AuthenticationError.
        """
        raise NotImplementedError

    @abstractmethod
    def list_entries(self, path: str = "", page: str = "") -> Listing:
        """List the entries under a slash-delimited path of folder ids."""
        raise NotImplementedError

    @abstractmethod
    def fetch_entry(self, entry_id: str, filename: str = "") -> FetchResult:
        """Download an entry to local storage."""
        raise NotImplementedError

    @abstractmethod
    def logout(self) -> LoginPrompt:
        """End the session and return a fresh login prompt."""
        raise NotImplementedError

    @property
    def capabilities(self) -> Capabilities:
        return Capabilities()


class NoopRepository(RepositoryPlugin):
    """A repository that is never logged in and has nothing to list.

    Useful when the OneNote repository is disabled or misconfigured.
    """

    name: str = "noop"

    def is_logged_in(self) -> bool:
        return False

    def login_prompt(self) -> LoginPrompt:
        return LoginPrompt(url="")

    def handle_callback(self, code: Optional[str]) -> None:
        return None

    def list_entries(self, path: str = "", page: str = "") -> Listing:
        return Listing(path=[Breadcrumb(name=self.name, path="")], items=[], manage="")

    def fetch_entry(self, entry_id: str, filename: str = "") -> FetchResult:
        raise FileNotFoundError(f"noop repository has no entry {entry_id!r}")

    def logout(self) -> LoginPrompt:
        return self.login_prompt()
