"""Command line for the OneNote repository: sign in, browse and download sections."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .__version__ import __version__
from .config import load_config, oauth_info
from .errors import OneNoteRepositoryError
from .repository import get_repository
from .storage import SqliteTokenStore

log = logging.getLogger("onenote_repository")

_default_log_path = Path.home() / ".onenote_repository.log"


def setup_logging(verbose: bool) -> None:
    """Log to ONENOTE_LOG_PATH, and to stderr as well when verbose."""
    log_path = (
        Path(os.environ["ONENOTE_LOG_PATH"])
        if os.environ.get("ONENOTE_LOG_PATH")
        else _default_log_path
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(log_path, encoding="utf-8"),
            logging.StreamHandler() if verbose else logging.NullHandler(),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="onenote-repository",
        description="Browse and download OneNote sections through the repository plugin",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"onenote-repository {__version__}",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging output",
    )
    parser.add_argument(
        "--session",
        default="cli",
        help="Session id the access token is stored under (default: cli)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the token database (default: ~/.onenote_repository.db)",
    )
    parser.add_argument(
        "--download-dir",
        type=Path,
        default=None,
        help="Directory to download sections into (default: a new temp dir)",
    )
    parser.add_argument(
        "--provider",
        default=os.environ.get("ONENOTE_REPOSITORY_PROVIDER") or "onenote",
        help="Repository implementation to use (default: onenote)",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("login-url", help="Print the URL to start the OAuth2 login")
    callback = sub.add_parser("callback", help="Complete login with the returned oauth2code")
    callback.add_argument("code", nargs="?", default=None)
    ls = sub.add_parser("ls", help="List notebooks, or the sections of a notebook path")
    ls.add_argument("path", nargs="?", default="")
    fetch = sub.add_parser("fetch", help="Download a section")
    fetch.add_argument("id")
    fetch.add_argument("filename", nargs="?", default="")
    sub.add_parser("logout", help="Forget the session token and sign out")
    sub.add_parser("status", help="Show login state and repository capabilities")
    sub.add_parser("oauth-info", help="Show the redirect URL to register with Microsoft")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    verbose = args.verbose or os.environ.get("ONENOTE_VERBOSE", "0") == "1"
    setup_logging(verbose)

    try:
        config = load_config()

        if args.command == "oauth-info":
            print(oauth_info(config.callback_url()))
            return 0

        store = SqliteTokenStore(args.db)
        try:
            repo = get_repository(args.provider, config, store, args.session, args.download_dir)

            if args.command == "login-url":
                print(repo.login_prompt().url)
            elif args.command == "callback":
                repo.handle_callback(args.code)
                print("logged in" if repo.is_logged_in() else "not logged in")
            elif args.command == "ls":
                print(json.dumps(repo.list_entries(args.path).to_dict(), indent=2))
            elif args.command == "fetch":
                print(json.dumps(repo.fetch_entry(args.id, args.filename).to_dict(), indent=2))
            elif args.command == "logout":
                print(repo.logout().url)
            elif args.command == "status":
                caps = repo.capabilities
                status = {
                    "repository": repo.name,
                    "session": args.session,
                    "logged_in": repo.is_logged_in(),
                    "global_search": caps.global_search,
                    "supported_filetypes": caps.supported_filetypes,
                    "return_types": caps.return_types,
                }
                print(json.dumps(status, indent=2))
        finally:
            store.close()
    except OneNoteRepositoryError as e:
        log.error(f"{args.command} failed: {e}")
        print(f"error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
