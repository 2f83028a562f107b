"""View models passed between the repository plugin and the host.

These are transient shapes built fresh from the OneNote API on every
call; nothing here is cached.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

# Return-type bitmask values understood by the host.
FILE_EXTERNAL = 1
FILE_INTERNAL = 2
FILE_REFERENCE = 4


@dataclass(frozen=True)
class ListingItem:
    """One entry in a repository listing.

    Folders carry a path the host passes back to list_entries; files
    carry a source id the host passes back to fetch_entry.
    """

    title: str
    path: Optional[str] = None
    source: Optional[str] = None
    date: Optional[int] = None       # last-modified time, Unix seconds
    size: Optional[int] = None
    thumbnail: Optional[str] = None
    is_folder: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"title": self.title}
        if self.is_folder:
            data["path"] = self.path or ""
            data["children"] = []
        else:
            data["source"] = self.source
        if self.date is not None:
            data["date"] = self.date
        if self.size is not None:
            data["size"] = self.size
        if self.thumbnail is not None:
            data["thumbnail"] = self.thumbnail
        return data


@dataclass(frozen=True)
class Breadcrumb:
    name: str
    path: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "path": self.path}


@dataclass(frozen=True)
class Listing:
    """A folder listing in the shape the host's file picker expects."""

    path: List[Breadcrumb]
    items: List[ListingItem]
    manage: str
    dynload: bool = True
    nosearch: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dynload": self.dynload,
            "nosearch": self.nosearch,
            "manage": self.manage,
            "path": [b.to_dict() for b in self.path],
            "list": [i.to_dict() for i in self.items],
        }


@dataclass(frozen=True)
class LoginPrompt:
    """Login affordance pointing at the remote authorization endpoint.

    In AJAX mode the host opens the URL in a popup; otherwise it embeds
    a plain link in the page.
    """

    url: str
    popup: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"login": [{"type": "popup", "url": self.url}]}

    def to_html(self, label: str = "Log in to your account") -> str:
        return (
            f'<a target="_blank" href="{html.escape(self.url, quote=True)}">'
            f"{html.escape(label)}</a>"
        )


@dataclass(frozen=True)
class FetchResult:
    path: Path   # local file the section was written to
    url: str     # where the section lives remotely

    def to_dict(self) -> Dict[str, str]:
        return {"path": str(self.path), "url": self.url}


@dataclass(frozen=True)
class Capabilities:
    global_search: bool = False
    supported_filetypes: str = "*"
    return_types: int = FILE_INTERNAL


