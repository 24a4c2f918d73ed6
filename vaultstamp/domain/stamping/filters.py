"""Eligibility rules deciding which vault documents get stamped."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

__all__ = ["DOCUMENT_EXTENSION", "RESERVED_FOLDER_PREFIXES", "is_eligible"]

DOCUMENT_EXTENSION = "md"

# Matched against the top-level folder name, so "archive-2023/" is skipped too.
RESERVED_FOLDER_PREFIXES: Sequence[str] = (
    ".git",
    ".obsidian",
    "archive",
    "assets",
    "templates",
)


def is_eligible(
    path: str | Path,
    extension: str,
    ancestor_folders: Sequence[str],
    *,
    document_extension: str = DOCUMENT_EXTENSION,
    reserved_prefixes: Sequence[str] = RESERVED_FOLDER_PREFIXES,
) -> bool:
    """Return True when the document at ``path`` should be stamped.

    ``ancestor_folders`` lists folder names from the vault root down to the
    document's parent; an empty sequence means the document lives directly in
    the vault root, which is never stamped.
    """

    # Exact match: "NOTE.MD" is not a document.
    if extension.lstrip(".") != document_extension.lstrip("."):
        return False
    if not ancestor_folders:
        return False
    top_folder = ancestor_folders[0]
    return not any(top_folder.startswith(prefix) for prefix in reserved_prefixes)
