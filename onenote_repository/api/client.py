"""OneNote API client.

A small synchronous client for the Microsoft identity platform (OAuth2
authorization-code flow) and the OneNote part of Microsoft Graph. It
covers exactly what the repository plugin needs:

- building the authorization URL the browser is sent to
- exchanging the returned code for a bearer token
- listing notebooks (as folders) and their sections (as files)
- resolving a notebook id to its display name
- downloading a section as a single HTML document
- signing out

Every call is attempted once. HTTP and network failures surface as
RemoteAPIError (or AuthenticationError for the token exchange); retries
and backoff, if wanted, belong to the host.
"""

from __future__ import annotations

import html
import json
import logging
import re
import urllib.error
import urllib.request
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import quote, urlencode

from ..errors import AuthenticationError, NotLoggedInError, RemoteAPIError
from ..models import FetchResult, ListingItem

log = logging.getLogger("onenote_repository")

AUTH_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
LOGOUT_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/logout"
API_BASE_URL = "https://graph.microsoft.com/v1.0/me/onenote"
DEFAULT_SCOPE = "offline_access Notes.Read"

_BODY_RE = re.compile(r"<body[^>]*>(.*)</body>", re.IGNORECASE | re.DOTALL)
_FRACTION_RE = re.compile(r"\.\d+")


def _timestamp(value: Optional[str]) -> Optional[int]:
    """Convert a Graph ISO-8601 time (e.g. 2024-01-02T03:04:05.123Z) to Unix seconds."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(_FRACTION_RE.sub("", value).replace("Z", "+00:00"))
    except ValueError:
        log.debug(f"unparseable timestamp {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


class OneNoteClient:
    """OAuth2 + OneNote Graph client used by OneNoteRepository."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        return_url: str,
        *,
        api_base_url: str = API_BASE_URL,
        auth_url: str = AUTH_URL,
        token_url: str = TOKEN_URL,
        logout_url: str = LOGOUT_URL,
        scope: str = DEFAULT_SCOPE,
        timeout: Optional[float] = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.return_url = return_url
        self.api_base_url = api_base_url.rstrip("/")
        self.auth_url = auth_url
        self.token_url = token_url
        self.logout_url = logout_url
        self.scope = scope
        self.timeout = timeout
        self._access_token: Optional[str] = None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    def set_access_token(self, token: Optional[str]) -> None:
        """Apply a token to the client. Empty values and "null" clear it."""
        if token is None or not token.strip() or token.strip() == "null":
            self._access_token = None
        else:
            self._access_token = token.strip()

    def login_url(self, state: Optional[str] = None) -> str:
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.return_url,
            "response_mode": "query",
            "scope": self.scope,
        }
        if state:
            params["state"] = state
        return f"{self.auth_url}?{urlencode(params)}"

    def get_access_token(
        self,
        code: str,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_url: Optional[str] = None,
    ) -> str:
        """Exchange an authorization code for a bearer token.

        Raises:
            AuthenticationError: the exchange was rejected, failed on the
                network, or the response carried no access_token.
        """
        form = {
            "client_id": client_id or self.client_id,
            "client_secret": client_secret or self.client_secret,
            "code": code,
            "redirect_uri": redirect_url or self.return_url,
            "grant_type": "authorization_code",
            "scope": self.scope,
        }
        req = urllib.request.Request(
            self.token_url,
            data=urlencode(form).encode("utf-8"),
            method="POST",
        )
        req.add_header("Content-Type", "application/x-www-form-urlencoded")
        req.add_header("Accept", "application/json")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode("utf-8") or "{}"
        except urllib.error.HTTPError as e:
            raise AuthenticationError(
                f"Token exchange rejected: HTTP {e.code} {e.reason}"
            ) from e
        except urllib.error.URLError as e:
            raise AuthenticationError(f"Token exchange failed: {e.reason}") from e
        except OSError as e:
            raise AuthenticationError(f"Token exchange failed: {e}") from e

        try:
            obj = json.loads(body)
        except json.JSONDecodeError as e:
            raise AuthenticationError("Token endpoint returned invalid JSON") from e

        token = obj.get("access_token") if isinstance(obj, dict) else None
        if not token:
            error = (obj.get("error_description") or obj.get("error")) if isinstance(obj, dict) else None
            raise AuthenticationError(f"No access token in response: {error or 'unknown error'}")

        log.info("OneNote token exchange succeeded")
        return str(token)

    def log_out(self) -> None:
        """Forget the applied token and end the remote sign-in session.

        The remote sign-out is best effort: the token is already gone
        locally, so a failure here is logged rather than raised.
        """
        self._access_token = None

        url = f"{self.logout_url}?{urlencode({'post_logout_redirect_uri': self.return_url})}"
        try:
            with urllib.request.urlopen(url, timeout=self.timeout):
                pass
        except urllib.error.HTTPError as e:
            log.warning(f"OneNote sign-out returned HTTP {e.code} {e.reason}")
        except urllib.error.URLError as e:
            log.warning(f"OneNote sign-out failed: {e.reason}")
        except OSError as e:
            log.warning(f"OneNote sign-out failed: {e}")

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def get_items_list(self, path: str = "", token: Optional[str] = None) -> List[ListingItem]:
        """List the entries at path.

        The root lists notebooks as folders; a notebook id (the last
        segment of a slash-delimited path) lists that notebook's sections
        as downloadable files.
        """
        segments = [p for p in (path or "").split("/") if p]
        if not segments:
            return [
                self._notebook_item(nb)
                for nb in self._paged(f"{self.api_base_url}/notebooks", token)
            ]

        notebook_id = segments[-1]
        trail = "/".join(segments)
        url = f"{self.api_base_url}/notebooks/{quote(notebook_id, safe='')}/sections"
        items = []
        for section in self._paged(url, token):
            items.append(
                ListingItem(
                    title=f"{section.get('displayName') or 'Untitled'}.html",
                    source=section.get("id"),
                    date=_timestamp(section.get("lastModifiedDateTime")),
                )
            )
        log.debug(f"[{trail}] listed {len(items)} sections")
        return items

    def get_notebook_name(self, folder_id: str, token: Optional[str] = None) -> str:
        url = f"{self.api_base_url}/notebooks/{quote(folder_id, safe='')}"
        obj = self._get_json(url, token)
        return str(obj.get("displayName") or folder_id)

    def _notebook_item(self, notebook: Dict[str, Any]) -> ListingItem:
        return ListingItem(
            title=notebook.get("displayName") or "Untitled",
            path=notebook.get("id") or "",
            date=_timestamp(notebook.get("lastModifiedDateTime")),
            is_folder=True,
        )

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------

    def download_section(self, section_id: str, path: Path, token: Optional[str] = None) -> FetchResult:
        """Write every page of a section into one HTML document at path."""
        quoted = quote(section_id, safe="")
        section = self._get_json(f"{self.api_base_url}/sections/{quoted}", token)
        title = section.get("displayName") or "Untitled"

        parts = [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="utf-8">',
            f"<title>{html.escape(title)}</title>",
            "</head>",
            "<body>",
        ]
        pages = 0
        for page in self._paged(f"{self.api_base_url}/sections/{quoted}/pages", token):
            content_url = page.get("contentUrl") or (
                f"{self.api_base_url}/pages/{quote(page.get('id') or '', safe='')}/content"
            )
            content = self._request(content_url, token).decode("utf-8", errors="replace")
            match = _BODY_RE.search(content)
            body = match.group(1) if match else content
            parts.append("<article>")
            parts.append(f"<h1>{html.escape(page.get('title') or 'Untitled')}</h1>")
            parts.append(body.strip())
            parts.append("</article>")
            pages += 1
        parts.extend(["</body>", "</html>", ""])

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(parts), encoding="utf-8")

        links = section.get("links") or {}
        url = (links.get("oneNoteWebUrl") or {}).get("href") or section.get("self") or (
            f"{self.api_base_url}/sections/{quoted}"
        )
        log.info(f"Downloaded section {title!r} ({pages} pages) to {path}")
        return FetchResult(path=path, url=url)

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _request(self, url: str, token: Optional[str] = None) -> bytes:
        bearer = token or self._access_token
        if not bearer:
            raise NotLoggedInError("No OneNote access token available")

        req = urllib.request.Request(url, method="GET")
        req.add_header("Authorization", f"Bearer {bearer}")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return resp.read()
        except urllib.error.HTTPError as e:
            raise RemoteAPIError(f"HTTPError {e.code}: {e.reason} ({url})", status=e.code) from e
        except urllib.error.URLError as e:
            raise RemoteAPIError(f"URLError: {e.reason} ({url})") from e
        except OSError as e:
            raise RemoteAPIError(f"{type(e).__name__}: {e} ({url})") from e

    def _get_json(self, url: str, token: Optional[str] = None) -> Dict[str, Any]:
        body = self._request(url, token).decode("utf-8") or "{}"
        try:
            obj = json.loads(body)
        except json.JSONDecodeError as e:
            raise RemoteAPIError(f"Invalid JSON from {url}") from e
        if not isinstance(obj, dict):
            raise RemoteAPIError(f"Unexpected response from {url}")
        return obj

    def _paged(self, url: str, token: Optional[str] = None) -> Iterator[Dict[str, Any]]:
        """Yield entries of a Graph collection, following @odata.nextLink."""
        next_url: Optional[str] = url
        while next_url:
            obj = self._get_json(next_url, token)
            for entry in obj.get("value") or []:
                if isinstance(entry, dict):
                    yield entry
            next_url = obj.get("@odata.nextLink")
