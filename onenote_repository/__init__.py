"""OneNote repository: browse and import OneNote sections into a learning platform.

The package exposes a repository plugin that signs a user in to their
Microsoft OneNote account with OAuth2, lists their notebooks and sections
as browsable folders, and downloads a chosen section to local storage so
the host platform can import it like any other file.
"""

from __future__ import annotations

from .__version__ import __version__

__all__ = ["__version__"]
