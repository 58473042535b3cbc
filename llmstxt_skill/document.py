"""Data structures shared by the index, download and summary stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

MAX_DESCRIPTION_LENGTH = 500


@dataclass(slots=True, frozen=True)
class Link:
    """One named, described entry of an index document."""

    name: str
    url: str
    description: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "url": self.url, "description": self.description}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Link":
        """Build a link from a JSON entry without validating it."""
        description = _as_text(data.get("description"))
        return cls(
            name=_as_text(data.get("name")).strip(),
            url=_as_text(data.get("url")).strip(),
            description=description[:MAX_DESCRIPTION_LENGTH],
        )


@dataclass(slots=True, frozen=True)
class IndexDocument:
    """Parsed result of one index fetch. Immutable once created."""

    title: str
    skill_name: str
    links: Tuple[Link, ...]
    source_url: str
    fetched_at: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted JSON shape."""
        return {
            "title": self.title,
            "skillName": self.skill_name,
            "links": [link.to_dict() for link in self.links],
            "sourceUrl": self.source_url,
            "fetchedAt": self.fetched_at,
        }


@dataclass(slots=True, frozen=True)
class FetchSuccess:
    local_file_name: str


@dataclass(slots=True, frozen=True)
class FetchFailure:
    reason: str


FetchStatus = Union[FetchSuccess, FetchFailure]


@dataclass(slots=True, frozen=True)
class FetchOutcome:
    """Result of one attempted reference download."""

    link: Link
    status: FetchStatus

    @property
    def succeeded(self) -> bool:
        return isinstance(self.status, FetchSuccess)


@dataclass(slots=True)
class FetchProgress:
    """Snapshot emitted after each download batch settles."""

    batch: int
    batches: int
    completed: int
    total: int
    success: int
    failed: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "batch": self.batch,
            "batches": self.batches,
            "completed": self.completed,
            "total": self.total,
            "success": self.success,
            "failed": self.failed,
        }


@dataclass(slots=True)
class FetchReport:
    """Aggregate of every download outcome.

    ``total`` counts every link handed to the downloader, including the
    ones skipped by pre-validation. ``outcomes``, ``files`` and
    ``warnings`` are appended in completion order, not input order.
    """

    total: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    outcomes: List[FetchOutcome] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def record(self, outcome: FetchOutcome) -> None:
        self.outcomes.append(outcome)
        if isinstance(outcome.status, FetchSuccess):
            self.success += 1
            self.files.append(outcome.status.local_file_name)
        else:
            self.failed += 1
            self.warnings.append(f"{_label(outcome.link)}: {outcome.status.reason}")

    def skip(self, link: Link, reason: str) -> None:
        self.skipped += 1
        self.warnings.append(f"{_label(link)}: skipped ({reason})")

    @property
    def is_total_failure(self) -> bool:
        return self.success == 0 and self.total > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "success": self.success,
            "failed": self.failed,
            "skipped": self.skipped,
            "files": list(self.files),
            "warnings": list(self.warnings),
        }


def _label(link: Link) -> str:
    return link.name or link.url or "<unnamed>"


def _as_text(value: Optional[Any]) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
