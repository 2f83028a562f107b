"""Client for the OneNote API and Microsoft identity platform."""

from __future__ import annotations

from .client import OneNoteClient

__all__ = ["OneNoteClient"]
