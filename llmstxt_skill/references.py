"""Download the documents referenced by an index into a local directory.

Links are fetched in fixed-size batches: batches run one after another and
the links inside a batch are fetched concurrently. A failing link never
cancels its siblings; its failure is recorded in the :class:`FetchReport`
and the download continues.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Set, Tuple, Union

import httpx

from .client import build_client, format_seconds, get_with_deadline
from .document import (
    FetchFailure,
    FetchOutcome,
    FetchProgress,
    FetchReport,
    FetchSuccess,
    Link,
)
from .errors import FilesystemError, NetworkError
from .filenames import unique_filename
from .index import is_absolute_http_url, utc_timestamp
from .settings import resolve_batch_size, resolve_timeout

LOGGER = logging.getLogger(__name__)

FILE_EXTENSION = ".md"

ProgressCallback = Callable[[FetchProgress], None]


# ---------------------------------------------------------------------------
# Pre-validation
# ---------------------------------------------------------------------------


def _validation_error(link: Link) -> Optional[str]:
    if not link.url:
        return "missing url"
    if not link.name:
        return "missing name"
    if not is_absolute_http_url(link.url):
        return f"invalid URL {link.url}"
    return None


def assign_file_names(links: Sequence[Link]) -> List[Optional[str]]:
    """File name for each link, in order; ``None`` for links that get skipped."""
    taken: Set[str] = set()
    names: List[Optional[str]] = []
    for link in links:
        if _validation_error(link):
            names.append(None)
        else:
            names.append(unique_filename(link.name, taken) + FILE_EXTENSION)
    return names


def plan_downloads(
    links: Sequence[Link], report: FetchReport
) -> List[Tuple[Link, str]]:
    """Drop structurally invalid links and pair each survivor with its file name.

    Runs before any network activity. Skipped links are counted on
    ``report``.
    """
    planned: List[Tuple[Link, str]] = []
    for link, file_name in zip(links, assign_file_names(links)):
        if file_name is None:
            problem = _validation_error(link) or "invalid link"
            LOGGER.warning("Skipping link %s: %s", link.name or link.url, problem)
            report.skip(link, problem)
            continue
        planned.append((link, file_name))
    return planned


def prepare_output_dir(output_dir: Union[str, Path]) -> Path:
    """Create ``output_dir`` with parents and check it is writable."""
    target = Path(output_dir)
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"Cannot create output directory {target}: {exc}") from exc
    if not target.is_dir():
        raise FilesystemError(f"Output path is not a directory: {target}")
    if not os.access(target, os.W_OK):
        raise FilesystemError(f"Output directory is not writable: {target}")
    return target


# ---------------------------------------------------------------------------
# Per-link download
# ---------------------------------------------------------------------------


def _single_line(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def render_reference(link: Link, body: str, fetched_at: Optional[str] = None) -> str:
    """Prefix a downloaded body with its provenance header."""
    header = [
        "---",
        f"source: {link.url}",
        f"title: {_single_line(link.name)}",
        f"description: {_single_line(link.description)}",
        f"fetched: {fetched_at or utc_timestamp()}",
        "---",
        "",
    ]
    return "\n".join(header) + "\n" + body


async def _download_one(
    client: httpx.AsyncClient,
    link: Link,
    target: Path,
    timeout: float,
) -> FetchOutcome:
    try:
        response = await get_with_deadline(client, link.url, timeout)
    except NetworkError as exc:
        reason = f"Timeout ({format_seconds(timeout)})" if exc.is_timeout else str(exc)
        return FetchOutcome(link, FetchFailure(reason))

    if not response.is_success:
        return FetchOutcome(link, FetchFailure(f"HTTP {response.status_code}"))

    body = response.text
    if not body.strip():
        return FetchOutcome(link, FetchFailure("Empty response"))

    content = render_reference(link, body)
    try:
        await asyncio.to_thread(target.write_text, content, encoding="utf-8")
    except OSError as exc:
        return FetchOutcome(link, FetchFailure(f"Write failed: {exc}"))

    LOGGER.debug("Saved %s -> %s", link.url, target)
    return FetchOutcome(link, FetchSuccess(target.name))


async def _download_into_report(
    client: httpx.AsyncClient,
    link: Link,
    target: Path,
    timeout: float,
    report: FetchReport,
) -> None:
    try:
        outcome = await _download_one(client, link, target, timeout)
    except Exception as exc:  # recorded as this link's failure
        LOGGER.debug("Unexpected error for %s", link.url, exc_info=True)
        outcome = FetchOutcome(link, FetchFailure(str(exc) or type(exc).__name__))
    report.record(outcome)
    if not outcome.succeeded:
        LOGGER.warning("Failed: %s - %s", link.url, outcome.status.reason)


def _batches(items: List[Tuple[Link, str]], size: int) -> List[List[Tuple[Link, str]]]:
    return [items[start : start + size] for start in range(0, len(items), size)]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def fetch_references_async(
    links: Sequence[Link],
    output_dir: Union[str, Path],
    *,
    batch_size: Optional[int] = None,
    timeout: Optional[float] = None,
    client: Optional[httpx.AsyncClient] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> FetchReport:
    """Download every link into ``output_dir`` as ``<name>.md``.

    Args:
        links: Links to download, usually ``IndexDocument.links``.
        output_dir: Destination directory, created if absent.
        batch_size: Concurrent downloads per batch (default:
            ``LLMSTXT_BATCH_SIZE`` or 5).
        timeout: Per-request deadline in seconds (default:
            ``LLMSTXT_TIMEOUT`` or 30).
        client: Optional pre-configured client; one is created otherwise.
        on_progress: Called with a :class:`FetchProgress` after each batch.

    Returns:
        :class:`FetchReport` with counts, written files and warnings.
        Check ``report.is_total_failure`` for the nothing-succeeded case.

    Raises:
        FilesystemError: If the destination cannot be created or written.
    """
    size = resolve_batch_size(batch_size)
    deadline = resolve_timeout(timeout)

    report = FetchReport(total=len(links))
    planned = plan_downloads(links, report)
    target_dir = prepare_output_dir(output_dir)

    if not planned:
        LOGGER.warning("No valid links to fetch")
        if on_progress is not None:
            on_progress(
                FetchProgress(
                    batch=0, batches=0, completed=0, total=0, success=0, failed=0
                )
            )
        return report

    batches = _batches(planned, size)
    LOGGER.info(
        "Fetching %d references in %d batch(es) of up to %d...",
        len(planned),
        len(batches),
        size,
    )

    async def run(active_client: httpx.AsyncClient) -> None:
        completed = 0
        for number, batch in enumerate(batches, start=1):
            await asyncio.gather(
                *(
                    _download_into_report(
                        active_client, link, target_dir / file_name, deadline, report
                    )
                    for link, file_name in batch
                )
            )
            completed += len(batch)
            progress = FetchProgress(
                batch=number,
                batches=len(batches),
                completed=completed,
                total=len(planned),
                success=report.success,
                failed=report.failed,
            )
            LOGGER.debug("Batch %d/%d settled", number, len(batches))
            if on_progress is not None:
                on_progress(progress)

    if client is None:
        async with build_client() as owned_client:
            await run(owned_client)
    else:
        await run(client)

    LOGGER.info(
        "Fetched %d/%d references (%d failed, %d skipped)",
        report.success,
        report.total,
        report.failed,
        report.skipped,
    )
    return report


def fetch_references(
    links: Sequence[Link],
    output_dir: Union[str, Path],
    *,
    batch_size: Optional[int] = None,
    timeout: Optional[float] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> FetchReport:
    """Synchronous wrapper for :func:`fetch_references_async`."""
    return asyncio.run(
        fetch_references_async(
            links,
            output_dir,
            batch_size=batch_size,
            timeout=timeout,
            on_progress=on_progress,
        )
    )
