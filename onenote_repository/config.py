"""Configuration for the OneNote repository: typed settings, .env loading and admin options."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_RETURN_URL = "http://localhost/repository/repository_callback.php"

# Names of the settings the host's admin form exposes for this plugin.
OPTION_NAMES: Tuple[str, ...] = ("clientid", "secret", "pluginname")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class OneNoteConfig:
    client_id: str
    client_secret: str
    ajax: bool = False
    return_url: str = DEFAULT_RETURN_URL
    repository_id: int = 0
    name: str = "OneNote"

    def callback_url(self, sesskey: Optional[str] = None) -> str:
        """
        Return the host callback URL for this repository instance.

        The OAuth provider redirects the browser here with ``oauth2code``
        once the user has signed in.
        """

        parts = urlsplit(self.return_url)
        query = parse_qsl(parts.query, keep_blank_values=True)
        query.append(("callback", "yes"))
        query.append(("repo_id", str(self.repository_id)))
        if sesskey:
            query.append(("sesskey", sesskey))
        return urlunsplit(
            (parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment)
        )


def option_names() -> Tuple[str, ...]:
    return OPTION_NAMES


def oauth_info(callback_url: str) -> str:
    """Text shown to the admin above the client id / secret fields."""

    return (
        "To use this plugin, register an application with Microsoft and "
        f"set its redirect URL to:\n\n{callback_url}\n\n"
        "Then copy the application's client id and secret below."
    )


def validate_options(options: Mapping[str, object]) -> Dict[str, str]:
    """
    Check the admin form values, returning field -> error for each problem.
    """

    errors: Dict[str, str] = {}
    for field in ("clientid", "secret"):
        value = options.get(field)
        if not isinstance(value, str) or not value.strip():
            errors[field] = "Required"
    return errors


def config_from_options(
    options: Mapping[str, object],
    *,
    ajax: bool = False,
    return_url: str = DEFAULT_RETURN_URL,
    repository_id: int = 0,
) -> OneNoteConfig:
    """Build a config from host admin-form values."""

    errors = validate_options(options)
    if errors:
        missing = ", ".join(sorted(errors))
        raise ConfigurationError(f"Missing required settings: {missing}")

    name = options.get("pluginname")
    return OneNoteConfig(
        client_id=str(options["clientid"]).strip(),
        client_secret=str(options["secret"]).strip(),
        ajax=ajax,
        return_url=return_url,
        repository_id=repository_id,
        name=str(name).strip() if isinstance(name, str) and name.strip() else "OneNote",
    )


def load_config(project_root: Optional[Path] = None) -> OneNoteConfig:
    """
    Load configuration from .env and the ONENOTE_* environment variables
    """

    if project_root is None:
        # Assume this file is onenote_repository/config.py
        project_root = Path(__file__).resolve().parents[1]

    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    client_id = os.getenv("ONENOTE_CLIENT_ID", "").strip()
    client_secret = os.getenv("ONENOTE_CLIENT_SECRET", "").strip()

    if not client_id:
        raise ConfigurationError("ONENOTE_CLIENT_ID is not set in .env")
    if not client_secret:
        raise ConfigurationError("ONENOTE_CLIENT_SECRET is not set in .env")

    ajax = os.getenv("ONENOTE_AJAX", "0").strip().lower() in _TRUTHY
    return_url = os.getenv("ONENOTE_RETURN_URL", "").strip() or DEFAULT_RETURN_URL

    repo_id_raw = os.getenv("ONENOTE_REPO_ID", "0").strip() or "0"
    try:
        repository_id = int(repo_id_raw)
    except ValueError as e:
        raise ConfigurationError(f"ONENOTE_REPO_ID must be an integer, got {repo_id_raw!r}") from e

    name = os.getenv("ONENOTE_REPO_NAME", "").strip() or "OneNote"

    return OneNoteConfig(
        client_id=client_id,
        client_secret=client_secret,
        ajax=ajax,
        return_url=return_url,
        repository_id=repository_id,
        name=name,
    )
