"""Cross-platform file name sanitizing."""

from __future__ import annotations

import re
from typing import Set

MAX_FILENAME_LENGTH = 200
FALLBACK_FILENAME = "unnamed"

_ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]')
_HYPHEN_RUNS = re.compile(r"-{2,}")
_EDGE_DOTS = re.compile(r"^[\s.]+|[\s.]+$")
_WINDOWS_RESERVED = frozenset(
    {"CON", "PRN", "AUX", "NUL"}
    | {f"COM{i}" for i in range(1, 10)}
    | {f"LPT{i}" for i in range(1, 10)}
)


def _trim(name: str) -> str:
    return _EDGE_DOTS.sub("", name)


def sanitize_filename(name: str) -> str:
    """Map an arbitrary display name to a filesystem-safe file name.

    The result is never empty, at most 200 characters long, contains none of
    ``<>:"/\\|?*`` or control characters, and neither starts nor ends with a
    dot.
    """
    cleaned = _ILLEGAL_CHARS.sub("-", name or "")
    cleaned = _HYPHEN_RUNS.sub("-", cleaned)
    cleaned = _trim(cleaned)
    cleaned = _trim(cleaned[:MAX_FILENAME_LENGTH])

    if not cleaned:
        return FALLBACK_FILENAME

    if cleaned.split(".")[0].upper() in _WINDOWS_RESERVED:
        cleaned = f"{cleaned[:MAX_FILENAME_LENGTH - 1]}_"

    return cleaned


def unique_filename(name: str, taken: Set[str]) -> str:
    """Sanitize ``name`` and suffix ``-2``, ``-3``... until it is unused.

    ``taken`` holds every name issued so far, lowercased, and is updated in
    place with the returned name.
    """
    stem = sanitize_filename(name)
    candidate = stem
    count = 1
    while candidate.lower() in taken:
        count += 1
        suffix = f"-{count}"
        candidate = sanitize_filename(stem[: MAX_FILENAME_LENGTH - len(suffix)] + suffix)
    taken.add(candidate.lower())
    return candidate
