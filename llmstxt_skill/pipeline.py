"""End-to-end build: index -> references -> SKILL.md."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx

from .client import build_client
from .document import FetchReport, IndexDocument
from .errors import FilesystemError
from .index import fetch_index_async, write_index
from .references import ProgressCallback, fetch_references_async
from .skill import REFERENCES_DIRNAME, SkillResult, generate_skill

LOGGER = logging.getLogger(__name__)

INDEX_FILENAME = "llms.json"


@dataclass(slots=True)
class BuildResult:
    skill_dir: Path
    index_path: Path
    index: IndexDocument
    report: FetchReport
    skill: Optional[SkillResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "skillDir": str(self.skill_dir),
            "indexPath": str(self.index_path),
            "title": self.index.title,
            "skillName": self.index.skill_name,
            "references": self.report.to_dict(),
            "skill": self.skill.to_dict() if self.skill else None,
        }


def _make_skill_dir(skills_root: Path, skill_name: str) -> Path:
    skill_dir = skills_root / skill_name
    try:
        (skill_dir / REFERENCES_DIRNAME).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"Cannot create skill directory {skill_dir}: {exc}") from exc
    return skill_dir


async def build_skill_async(
    url: str,
    skills_root: Union[str, Path] = ".",
    *,
    batch_size: Optional[int] = None,
    timeout: Optional[float] = None,
    client: Optional[httpx.AsyncClient] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> BuildResult:
    """Build ``<skills_root>/<skill-name>/`` from an index URL.

    The skill directory receives ``llms.json``, ``references/*.md`` and
    ``SKILL.md``. ``SKILL.md`` is not written when no reference could be
    downloaded; check ``result.report.is_total_failure``.

    Raises:
        InvalidArgumentError, NetworkError, ParseError: From the index fetch.
        FilesystemError: If the skill directory cannot be prepared.
    """
    if client is None:
        async with build_client() as owned_client:
            return await build_skill_async(
                url,
                skills_root,
                batch_size=batch_size,
                timeout=timeout,
                client=owned_client,
                on_progress=on_progress,
            )

    document = await fetch_index_async(url, timeout=timeout, client=client)
    skill_dir = _make_skill_dir(Path(skills_root), document.skill_name)
    index_path = write_index(document, skill_dir / INDEX_FILENAME)

    report = await fetch_references_async(
        document.links,
        skill_dir / REFERENCES_DIRNAME,
        batch_size=batch_size,
        timeout=timeout,
        client=client,
        on_progress=on_progress,
    )
    result = BuildResult(
        skill_dir=skill_dir, index_path=index_path, index=document, report=report
    )
    if report.is_total_failure:
        LOGGER.error("No references could be fetched; SKILL.md not written")
        return result

    result.skill = generate_skill(skill_dir, document, downloaded=report.files)
    return result


def build_skill(
    url: str,
    skills_root: Union[str, Path] = ".",
    *,
    batch_size: Optional[int] = None,
    timeout: Optional[float] = None,
) -> BuildResult:
    """Synchronous wrapper for :func:`build_skill_async`."""
    return asyncio.run(
        build_skill_async(url, skills_root, batch_size=batch_size, timeout=timeout)
    )
