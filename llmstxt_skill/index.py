"""Fetch and parse ``llms.txt`` style index documents.

An index is a small markdown file with a heading and a bulleted list of
links::

    # My Docs
    - [Getting Started](https://example.com/start.md): How to begin
    - [API Reference](https://example.com/api.md)

Public API::

    from llmstxt_skill.index import fetch_index_async, parse_index

    document = await fetch_index_async("https://example.com/llms.txt")
    for link in document.links:
        print(link.name, link.url)
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import unquote, urlparse

import httpx

from .client import build_client, get_with_deadline
from .document import MAX_DESCRIPTION_LENGTH, IndexDocument, Link
from .errors import (
    FilesystemError,
    InvalidArgumentError,
    NetworkError,
    NetworkErrorKind,
    ParseError,
)
from .settings import resolve_timeout

LOGGER = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled"
FALLBACK_SKILL_NAME = "unnamed-skill"
FALLBACK_LINK_NAME = "unnamed"
EXPECTED_FORMAT = "- [Title](url): description"

TITLE_LINE = re.compile(r"^#\s+(?P<title>.+)$")
LINK_LINE = re.compile(
    r"^-\s*\[(?P<title>[^\]]+)\]\((?P<url>[^)]+)\)(?::\s*(?P<description>.*))?$"
)

_ALLOWED_SCHEMES = ("http", "https")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Name derivation
# ---------------------------------------------------------------------------


def is_absolute_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in _ALLOWED_SCHEMES and bool(parsed.netloc)


def validate_url(value: str) -> str:
    """Return ``value`` stripped if it is an absolute http(s) URL.

    Raises:
        InvalidArgumentError: For any other scheme or an unparseable string.
    """
    candidate = (value or "").strip()
    if not is_absolute_http_url(candidate):
        raise InvalidArgumentError(
            f"Invalid URL: {value} (URL must start with http:// or https://)"
        )
    return candidate


def derive_skill_name(title: str) -> str:
    name = (title or "").lower()
    name = re.sub(r"[^a-z0-9\s-]", "", name).strip()
    name = re.sub(r"\s+", "-", name)
    name = re.sub(r"-+", "-", name).strip("-")
    return name or FALLBACK_SKILL_NAME


def _slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")


def derive_link_name(url: str, title: str) -> str:
    """Name a link after its URL's last path segment, else its title."""
    try:
        path = urlparse(url).path
    except ValueError:
        path = ""
    segment = unquote(path.rsplit("/", 1)[-1])
    if segment.endswith(".md"):
        segment = segment[: -len(".md")]
    if segment:
        return segment
    return _slugify(title) or FALLBACK_LINK_NAME


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_index(
    text: str,
    *,
    source_url: str,
    fetched_at: Optional[str] = None,
) -> IndexDocument:
    """Parse raw index text into an :class:`IndexDocument`.

    Raises:
        ParseError: If the text is blank or holds no valid link lines.
    """
    if not text or not text.strip():
        raise ParseError("Empty response from server")

    title: Optional[str] = None
    links: List[Link] = []

    for raw_line in text.splitlines():
        line = raw_line.rstrip()

        if title is None:
            title_match = TITLE_LINE.match(line)
            if title_match:
                title = title_match.group("title").strip()
                continue

        match = LINK_LINE.match(line)
        if not match:
            continue

        link_title = match.group("title").strip()
        link_url = match.group("url").strip()
        if not is_absolute_http_url(link_url):
            LOGGER.warning("Skipping invalid URL: %s", link_url)
            continue

        description = (match.group("description") or "").strip() or link_title
        links.append(
            Link(
                name=derive_link_name(link_url, link_title),
                url=link_url,
                description=description[:MAX_DESCRIPTION_LENGTH],
            )
        )

    if not links:
        raise ParseError(
            f"No valid links found in index - expected format: {EXPECTED_FORMAT}"
        )

    resolved_title = title or DEFAULT_TITLE
    return IndexDocument(
        title=resolved_title,
        skill_name=derive_skill_name(resolved_title),
        links=tuple(links),
        source_url=source_url,
        fetched_at=fetched_at or utc_timestamp(),
    )


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


async def fetch_index_async(
    url: str,
    *,
    timeout: Optional[float] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> IndexDocument:
    """Fetch an index URL and parse it.

    Args:
        url: Absolute http(s) URL of the index document.
        timeout: Request deadline in seconds (default: ``LLMSTXT_TIMEOUT``
            or 30).
        client: Optional pre-configured client; one is created otherwise.

    Returns:
        The parsed :class:`IndexDocument`.

    Raises:
        InvalidArgumentError: If ``url`` is not an http(s) URL.
        NetworkError: On timeout, non-2xx status or transport failure.
        ParseError: If the body is empty or contains no links.
    """
    target = validate_url(url)
    deadline = resolve_timeout(timeout)

    LOGGER.info("Fetching %s...", target)
    if client is None:
        async with build_client() as owned_client:
            response = await get_with_deadline(owned_client, target, deadline)
    else:
        response = await get_with_deadline(client, target, deadline)

    if not response.is_success:
        raise NetworkError(
            f"HTTP {response.status_code}: {response.reason_phrase}",
            kind=NetworkErrorKind.HTTP_STATUS,
            status_code=response.status_code,
        )

    document = parse_index(response.text, source_url=target)
    LOGGER.info('Found: "%s" with %d links', document.title, len(document.links))
    return document


def fetch_index(url: str, *, timeout: Optional[float] = None) -> IndexDocument:
    """Synchronous wrapper for :func:`fetch_index_async`."""
    return asyncio.run(fetch_index_async(url, timeout=timeout))


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def dump_index(document: IndexDocument) -> str:
    return json.dumps(document.to_dict(), indent=2, ensure_ascii=False)


def write_index(document: IndexDocument, path: Union[str, Path]) -> Path:
    """Write the index JSON to ``path``; its parent directory must exist."""
    target = Path(path)
    if not target.parent.is_dir():
        raise FilesystemError(f"Output directory does not exist: {target.parent}")
    try:
        target.write_text(dump_index(document), encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f"Failed to write file: {exc}") from exc
    LOGGER.info("Wrote %d links to %s", len(document.links), target)
    return target


def _links_from_payload(payload: Any) -> List[Link]:
    if not isinstance(payload, dict):
        raise ParseError("Index JSON must be an object with a links array")
    raw_links = payload.get("links")
    if not isinstance(raw_links, list):
        raise ParseError("Index JSON missing required field: links (array)")
    links: List[Link] = []
    for position, entry in enumerate(raw_links):
        if not isinstance(entry, dict):
            raise ParseError(f"Index JSON link #{position} is not an object")
        links.append(Link.from_dict(entry))
    return links


def index_from_dict(payload: Dict[str, Any]) -> IndexDocument:
    """Build an index from its persisted JSON shape.

    Links are not validated here; the downloader skips unusable entries.
    """
    links = _links_from_payload(payload)
    title = payload.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ParseError("Index JSON missing required field: title")
    skill_name = payload.get("skillName")
    if not isinstance(skill_name, str) or not skill_name.strip():
        skill_name = derive_skill_name(title)
    return IndexDocument(
        title=title.strip(),
        skill_name=skill_name.strip(),
        links=tuple(links),
        source_url=str(payload.get("sourceUrl") or ""),
        fetched_at=str(payload.get("fetchedAt") or ""),
    )


def load_index(path: Union[str, Path]) -> IndexDocument:
    """Read an index JSON file written by :func:`write_index`.

    Raises:
        FilesystemError: If the file is missing or unreadable.
        ParseError: If the file is not valid index JSON.
    """
    source = Path(path)
    if not source.is_file():
        raise FilesystemError(f"JSON file not found: {source}")
    try:
        raw = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FilesystemError(f"Cannot read JSON file {source}: {exc}") from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON in file {source}: {exc}") from exc
    return index_from_dict(payload)
