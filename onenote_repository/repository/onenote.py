"""OneNote repository for the host platform.

Lets a user sign in to Microsoft OneNote with OAuth2, browse notebooks
as folders and sections as files, and copy a chosen section into the
host as an HTML document.

Token lifecycle:

    Unauthenticated --login redirect--> PendingCallback
    PendingCallback --valid code--> Authenticated
    PendingCallback --missing/invalid code--> Unauthenticated
    Authenticated --logout--> Unauthenticated

The token lives in a BaseTokenStore keyed on the session id, and is
applied to the OneNote client whenever it is restored or obtained.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from ..api.client import OneNoteClient
from ..config import OneNoteConfig
from ..errors import AuthenticationError, NotLoggedInError
from ..files import prepare_file
from ..models import Breadcrumb, FetchResult, Listing, LoginPrompt
from ..storage import BaseTokenStore
from .base import AuthState, RepositoryPlugin

log = logging.getLogger("onenote_repository")

MANAGE_URL = "https://www.onenote.com/"


class OneNoteRepository(RepositoryPlugin):
    """Repository plugin backed by a user's OneNote account."""

    name: str = "onenote"

    def __init__(
        self,
        config: OneNoteConfig,
        token_store: BaseTokenStore,
        session_id: str,
        client: Optional[OneNoteClient] = None,
        download_dir: Optional[Path] = None,
        sesskey: Optional[str] = None,
    ) -> None:
        self.config = config
        self.token_store = token_store
        self.session_id = session_id
        self.download_dir = download_dir
        self._pending = False

        if client is None:
            client = OneNoteClient(
                config.client_id,
                config.client_secret,
                config.callback_url(sesskey),
            )
        self.client = client
        self.check_login()

    # ------------------------------------------------------------------
    # Session / token handling
    # ------------------------------------------------------------------

    def _get_access_token(self) -> Optional[str]:
        return self.token_store.get_token(self.session_id)

    def _store_access_token(self, token: str) -> None:
        self.token_store.set_token(self.session_id, token)
        self.client.set_access_token(token)

    def check_login(self) -> bool:
        """Restore a stored token onto the client. True if one was found."""
        token = self._get_access_token()
        self.client.set_access_token(token)
        return token is not None

    def is_logged_in(self) -> bool:
        return self._get_access_token() is not None

    @property
    def state(self) -> AuthState:
        if self.is_logged_in():
            return AuthState.AUTHENTICATED
        if self._pending:
            return AuthState.PENDING_CALLBACK
        return AuthState.UNAUTHENTICATED

    def _require_token(self) -> str:
        token = self._get_access_token()
        if token is None:
            raise NotLoggedInError("Not logged in to OneNote")
        return token

    # ------------------------------------------------------------------
    # Login flow
    # ------------------------------------------------------------------

    def login_prompt(self) -> LoginPrompt:
        self._pending = True
        return LoginPrompt(url=self.client.login_url(), popup=self.config.ajax)

    def handle_callback(self, code: Optional[str]) -> None:
        if not code:
            log.debug(f"[{self.name}] callback without oauth2code, nothing to do")
            self._pending = False
            return

        try:
            token = self.client.get_access_token(
                code,
                self.config.client_id,
                self.config.client_secret,
                self.client.return_url,
            )
        except AuthenticationError:
            log.warning(f"[{self.name}] token exchange failed for session {self.session_id}")
            raise
        finally:
            self._pending = False

        self._store_access_token(token)
        log.info(f"[{self.name}] session {self.session_id} logged in")

    def logout(self) -> LoginPrompt:
        self.token_store.clear_token(self.session_id)
        self.client.log_out()
        self._pending = False
        log.info(f"[{self.name}] session {self.session_id} logged out")
        return LoginPrompt(url=self.client.login_url(), popup=self.config.ajax)

    # ------------------------------------------------------------------
    # Browsing and download
    # ------------------------------------------------------------------

    def list_entries(self, path: str = "", page: str = "") -> Listing:
        token = self._require_token()
        self.client.set_access_token(token)

        items = self.client.get_items_list(path or "", token)

        # The trail always starts with the plugin's own name.
        breadcrumbs: List[Breadcrumb] = [Breadcrumb(name=self.config.name, path="")]
        trail: List[str] = []
        for folder_id in (path or "").split("/"):
            if not folder_id:
                continue
            trail.append(folder_id)
            breadcrumbs.append(
                Breadcrumb(
                    name=self.client.get_notebook_name(folder_id, token),
                    path="/".join(trail),
                )
            )

        return Listing(path=breadcrumbs, items=items, manage=MANAGE_URL)

    def fetch_entry(self, entry_id: str, filename: str = "") -> FetchResult:
        token = self._require_token()
        self.client.set_access_token(token)

        local_path = prepare_file(filename, self.download_dir)
        return self.client.download_section(entry_id, local_path, token)
