"""HTTP client construction and single-request helpers."""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx

from .errors import NetworkError, NetworkErrorKind
from .settings import ACCEPT_HEADER, load_settings


def build_client(user_agent: Optional[str] = None) -> httpx.AsyncClient:
    """Create an httpx async client with the identifying request headers.

    No client-level timeout is set: each request is bounded by
    :func:`get_with_deadline` instead.
    """
    agent = user_agent or load_settings().user_agent
    return httpx.AsyncClient(
        headers={
            "User-Agent": agent,
            "Accept": ACCEPT_HEADER,
        },
        follow_redirects=True,
        timeout=None,
    )


def format_seconds(seconds: float) -> str:
    return f"{seconds:g}s"


async def get_with_deadline(
    client: httpx.AsyncClient, url: str, timeout: float
) -> httpx.Response:
    """GET ``url`` and cancel the request once ``timeout`` seconds elapse.

    Raises:
        NetworkError: ``TIMEOUT`` when the deadline passes, ``CONNECTION``
            for any other transport failure.
    """
    try:
        return await asyncio.wait_for(client.get(url), timeout=timeout)
    except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
        raise NetworkError(
            f"Request timeout after {format_seconds(timeout)}",
            kind=NetworkErrorKind.TIMEOUT,
        ) from exc
    except httpx.RequestError as exc:
        detail = str(exc) or type(exc).__name__
        raise NetworkError(
            f"Network error: {detail}",
            kind=NetworkErrorKind.CONNECTION,
        ) from exc
