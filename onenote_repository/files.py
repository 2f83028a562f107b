"""Local file preparation for downloaded sections."""

from __future__ import annotations

import re
import tempfile
from pathlib import Path
from typing import Optional

from unidecode import unidecode

DEFAULT_FILENAME = "section.html"


def safe_filename(name: str) -> str:
    """Reduce a section title or filename to something safe on any filesystem."""

    name = (name or "").strip()
    stem, dot, suffix = name.rpartition(".")
    if not dot or not stem:
        stem, suffix = name, ""

    stem = unidecode(stem)
    stem = re.sub(r"[^\w\-\s]", "", stem).strip()
    stem = re.sub(r"\s+", " ", stem)[:80]

    suffix = re.sub(r"[^\w]", "", unidecode(suffix))[:10]

    if not stem:
        return DEFAULT_FILENAME
    return f"{stem}.{suffix}" if suffix else f"{stem}.html"


def prepare_file(filename: str = "", download_dir: Optional[Path] = None) -> Path:
    """Return a fresh local path to download a section into.

    The directory is created if needed (a new temporary directory when
    download_dir is None). If the sanitized name already exists, a
    numeric suffix is added so nothing gets overwritten.
    """

    if download_dir is None:
        directory = Path(tempfile.mkdtemp(prefix="onenote-"))
    else:
        directory = Path(download_dir)
        directory.mkdir(parents=True, exist_ok=True)

    base = Path(safe_filename(filename))
    candidate = directory / base.name
    counter = 1
    while candidate.exists():
        candidate = directory / f"{base.stem} ({counter}){base.suffix}"
        counter += 1
    return candidate
