"""Relative path normalization and segment sanitization.

Pure functions, no I/O. Relative paths are the common currency between the
DB tree and the physical tree: sanitized segments joined by ``/``, no leading
or trailing separator, no ``.``/``..`` and no empty segments. The root is ``""``.
"""

import os
import re
from typing import Optional, Tuple

from ..exceptions import InvalidPathError

SEPARATOR = "/"
PLACEHOLDER_NAME = "untitled"
MAX_SEGMENT_LENGTH = 200

# Characters never allowed inside one segment. Whitespace is collapsed
# separately so tabs and newlines become a single space instead of vanishing.
_ILLEGAL_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f\x7f]')
_WHITESPACE = re.compile(r"\s+")


def normalize_relative_path(raw: Optional[str]) -> str:
    """Canonicalize a user-supplied relative path.

    Backslashes become ``/``, empty and ``.`` segments are dropped and
    surrounding whitespace of each segment is stripped. Any ``..`` segment
    or NUL byte rejects the whole path with ``InvalidPathError``; a path
    with a parent reference is never reinterpreted.

    Idempotent: ``normalize_relative_path(normalize_relative_path(p)) ==
    normalize_relative_path(p)``.
    """
    if not raw:
        return ""
    if "\x00" in raw:
        raise InvalidPathError(raw, "NUL byte in path")

    segments = []
    for segment in raw.replace("\\", SEPARATOR).split(SEPARATOR):
        segment = segment.strip()
        if segment in ("", "."):
            continue
        if segment == "..":
            raise InvalidPathError(raw, "parent directory references are not allowed")
        segments.append(segment)
    return SEPARATOR.join(segments)


def is_normalized(raw: Optional[str]) -> bool:
    """True when *raw* is already in canonical form (and would not be rejected)."""
    try:
        return normalize_relative_path(raw) == (raw or "")
    except InvalidPathError:
        return False


def sanitize_name(display_name: Optional[str]) -> str:
    """Map a display name to a filesystem-safe path segment.

    Strips separators, reserved punctuation and control characters, collapses
    whitespace, trims leading/trailing spaces and dots (no hidden entries, no
    ``.``/``..``) and caps the length. A name without any legal character
    becomes ``PLACEHOLDER_NAME`` so nothing is ever created at the parent
    path itself.
    """
    cleaned = _WHITESPACE.sub(" ", display_name or "")
    cleaned = _ILLEGAL_CHARS.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip(". ")
    cleaned = cleaned[:MAX_SEGMENT_LENGTH].strip(". ")
    return cleaned or PLACEHOLDER_NAME


def join_relative(*parts: Optional[str]) -> str:
    """Join already-normalized relative paths, skipping empty ones."""
    return normalize_relative_path(SEPARATOR.join(p for p in parts if p))


def parent_of(relative_path: str) -> str:
    """Parent of a normalized relative path (``""`` for top-level entries)."""
    head, _, _ = normalize_relative_path(relative_path).rpartition(SEPARATOR)
    return head


def basename_of(relative_path: str) -> str:
    _, _, tail = normalize_relative_path(relative_path).rpartition(SEPARATOR)
    return tail


def split_extension(filename: str) -> Tuple[str, str]:
    """Split ``name.ext`` into ``("name", ".ext")`` with a lower-cased extension."""
    stem, ext = os.path.splitext(filename)
    return stem, ext.lower()
