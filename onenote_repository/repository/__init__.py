"""Repository registry for the OneNote repository plugin.

This module wires together the RepositoryPlugin interface and concrete
implementations so that a host (or the CLI) can resolve a configured
repository name into an instance bound to one user session.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Dict, Optional

from ..config import OneNoteConfig
from ..storage import BaseTokenStore
from .base import AuthState, NoopRepository, RepositoryPlugin
from .onenote import OneNoteRepository

RepositoryFactory = Callable[[OneNoteConfig, BaseTokenStore, str, Optional[Path]], RepositoryPlugin]

_REPOSITORY_FACTORIES: Dict[str, RepositoryFactory] = {}


def _register_defaults() -> None:
    """Populate the registry with the built-in repositories."""

    if _REPOSITORY_FACTORIES:
        return

    # Always available: a repository that never logs in
    _REPOSITORY_FACTORIES["noop"] = lambda config, store, session_id, download_dir: NoopRepository()

    _REPOSITORY_FACTORIES["onenote"] = (
        lambda config, store, session_id, download_dir: OneNoteRepository(
            config, store, session_id, download_dir=download_dir
        )
    )


def get_repository(
    name: Optional[str],
    config: OneNoteConfig,
    token_store: BaseTokenStore,
    session_id: str,
    download_dir: Optional[Path] = None,
) -> RepositoryPlugin:
    """Return a repository instance for the given name.

    If the name is None or empty, defaults to "onenote". Unknown names
    resolve to a NoopRepository so a misconfigured host shows a
    logged-out repository instead of crashing.
    """

    _register_defaults()

    if not name:
        name = "onenote"

    key = name.strip().lower()
    factory = _REPOSITORY_FACTORIES.get(key)
    if factory is None:
        return NoopRepository()

    return factory(config, token_store, session_id, download_dir)


def repository_from_env(
    config: OneNoteConfig,
    token_store: BaseTokenStore,
    session_id: str,
    download_dir: Optional[Path] = None,
) -> RepositoryPlugin:
    """Resolve a repository based on ONENOTE_REPOSITORY_PROVIDER."""

    name = os.environ.get("ONENOTE_REPOSITORY_PROVIDER", "").strip() or None
    return get_repository(name, config, token_store, session_id, download_dir)


__all__ = [
    "AuthState",
    "NoopRepository",
    "OneNoteRepository",
    "RepositoryPlugin",
    "get_repository",
    "repository_from_env",
]
