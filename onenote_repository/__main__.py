"""Entry point for running the OneNote repository CLI as a module or command.

Usage:
    # Run as a module
    python -m onenote_repository ls

    # After pip install, run as a command
    onenote-repository ls
"""

from __future__ import annotations

import sys

from .cli import main


def cli() -> None:
    """CLI entry point installed by pip.

    Registered in pyproject.toml as the `onenote-repository` console script.
    """
    sys.exit(main())


if __name__ == "__main__":
    cli()
