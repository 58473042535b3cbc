"""Shared fixtures and global pytest hooks for strict test-accounting guardrails."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Tuple, Union

import httpx
import pytest

Route = Union[
    Tuple[int, str],
    Exception,
    Callable[[httpx.Request], Awaitable[httpx.Response]],
]

SAMPLE_INDEX = """\
# My Docs

> Documentation for My Docs.

- [Getting Started](https://example.com/start.md): How to begin
- [API Reference](https://example.com/api.md)
"""


@dataclass
class _TestAccounting:
    deselected: int = 0
    skipped: int = 0
    xfailed: int = 0
    xpassed: int = 0


_ACCOUNTING = _TestAccounting()


def pytest_deselected(items):  # pragma: no cover - pytest hook
    _ACCOUNTING.deselected += len(items)


def pytest_runtest_logreport(report):  # pragma: no cover - pytest hook
    if report.when not in {"setup", "call"}:
        return

    if getattr(report, "wasxfail", False):
        if report.outcome == "skipped":
            _ACCOUNTING.xfailed += 1
        elif report.outcome == "passed":
            _ACCOUNTING.xpassed += 1
        return

    if report.outcome == "skipped":
        _ACCOUNTING.skipped += 1


def pytest_sessionfinish(session, exitstatus):  # pragma: no cover - pytest hook
    violations = [
        f"{name}={count}"
        for name, count in (
            ("deselected", _ACCOUNTING.deselected),
            ("skipped", _ACCOUNTING.skipped),
            ("xfailed", _ACCOUNTING.xfailed),
            ("xpassed", _ACCOUNTING.xpassed),
        )
        if count
    ]
    if not violations:
        return

    reporter = session.config.pluginmanager.get_plugin("terminalreporter")
    if reporter:
        reporter.write_sep(
            "=",
            f"Test accounting violations detected ({', '.join(violations)})",
        )
    session.exitstatus = 1


def make_transport(routes: Dict[str, Route]) -> httpx.MockTransport:
    """Serve ``routes`` keyed by absolute URL; anything else is a 404."""

    async def handler(request: httpx.Request) -> httpx.Response:
        entry = routes.get(str(request.url))
        if entry is None:
            return httpx.Response(404, text="Not Found")
        if isinstance(entry, Exception):
            raise entry
        if callable(entry):
            return await entry(request)
        status, body = entry
        return httpx.Response(status, text=body)

    return httpx.MockTransport(handler)


@pytest.fixture
def sample_index() -> str:
    return SAMPLE_INDEX


@pytest.fixture
def make_client() -> Callable[[Dict[str, Route]], httpx.AsyncClient]:
    def factory(routes: Dict[str, Route]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=make_transport(routes))

    return factory


@pytest.fixture
def patch_clients(monkeypatch: pytest.MonkeyPatch, make_client):
    """Make every internally built client serve the given routes."""

    def apply(routes: Dict[str, Route]) -> None:
        def fake_build_client(user_agent=None):
            return make_client(routes)

        for module in ("index", "references", "pipeline"):
            monkeypatch.setattr(
                f"llmstxt_skill.{module}.build_client", fake_build_client
            )

    return apply


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests independent of the developer's .env files."""
    for name in ("LLMSTXT_TIMEOUT", "LLMSTXT_BATCH_SIZE", "LLMSTXT_USER_AGENT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("llmstxt_skill.cli._load_config", lambda: None)
