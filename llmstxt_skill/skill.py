"""Render a categorized ``SKILL.md`` summary for an index document."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .document import IndexDocument, Link
from .errors import FilesystemError
from .index import utc_timestamp
from .references import assign_file_names

LOGGER = logging.getLogger(__name__)

SKILL_FILENAME = "SKILL.md"
REFERENCES_DIRNAME = "references"
DEFAULT_CATEGORY = "Core Concepts"
CATEGORY_PREVIEW = 5
REFERENCE_DESCRIPTION_LENGTH = 200

# First matching category wins, so order matters.
CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (
        "Getting Started",
        ("setup", "install", "start", "quickstart", "begin", "introduction", "overview"),
    ),
    ("Configuration", ("config", "setting", "option", "preference", "customize")),
    ("Reference", ("api", "reference", "cli", "command", "syntax")),
    ("Guides", ("guide", "tutorial", "example", "how-to", "walkthrough", "workflow")),
    ("Security", ("security", "auth", "permission", "access", "iam")),
    ("Integration", ("integration", "plugin", "extension", "connect", "mcp")),
    ("Troubleshooting", ("troubleshoot", "debug", "error", "issue", "problem", "fix")),
)

_TOPIC_PATTERN = re.compile(
    r"(?:about|for|to|with|using)\s+(.+?)(?:\s+(?:and|or|in|on|for|with)\s|$)",
    re.IGNORECASE,
)


@dataclass(slots=True)
class SkillResult:
    skill_path: Path
    skill_name: str
    title: str
    reference_count: int
    link_count: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "skillPath": str(self.skill_path),
            "skillName": self.skill_name,
            "title": self.title,
            "referenceCount": self.reference_count,
            "linkCount": self.link_count,
        }


def categorize_link(link: Link) -> str:
    haystack = f"{link.description} {link.name}".lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in haystack for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def categorize_links(links: Iterable[Link]) -> Dict[str, List[str]]:
    """Group link names by category, keeping first-seen category order."""
    categories: Dict[str, List[str]] = {}
    for link in links:
        categories.setdefault(categorize_link(link), []).append(link.name)
    return categories


def build_category_summary(categories: Dict[str, List[str]]) -> str:
    lines = []
    for category, names in categories.items():
        if not names:
            continue
        shown = ", ".join(names[:CATEGORY_PREVIEW])
        hidden = len(names) - CATEGORY_PREVIEW
        more = f" (+{hidden} more)" if hidden > 0 else ""
        lines.append(f"- **{category}**: {shown}{more}")
    return "\n".join(lines)


def build_trigger_phrases(links: Sequence[Link]) -> str:
    """Pull a few short topic phrases out of the first descriptions."""
    phrases: List[str] = []
    for link in links[:15]:
        sentence = re.split(r"[.!?]", link.description, maxsplit=1)[0].strip()
        match = _TOPIC_PATTERN.search(sentence)
        if not match:
            continue
        phrase = match.group(1).strip()
        if 3 < len(phrase) < 50:
            phrases.append(phrase)
        if len(phrases) == 5:
            break
    return ", ".join(phrases) if phrases else "this documentation"


def reference_paths(links: Sequence[Link]) -> List[Optional[str]]:
    """Relative paths of the files the downloader writes; ``None`` if skipped."""
    return [
        f"{REFERENCES_DIRNAME}/{name}" if name else None
        for name in assign_file_names(links)
    ]


def _reference_line(link: Link, path: Optional[str]) -> str:
    description = link.description[:REFERENCE_DESCRIPTION_LENGTH]
    if path is None:
        return f"- {link.name or link.url}: {description}"
    return f"- [{link.name}]({path}): {description}"


def render_skill(
    document: IndexDocument,
    *,
    reference_count: int,
    generated_at: Optional[str] = None,
) -> str:
    """Render the SKILL.md text. Pure apart from the default timestamp."""
    title = document.title
    links = list(document.links)
    summary = build_category_summary(categorize_links(links))
    triggers = build_trigger_phrases(links).lower()
    words = title.split()
    first_word = words[0] if words else "this topic"

    reference_list = "\n".join(
        _reference_line(link, path) for link, path in zip(links, reference_paths(links))
    )
    source = document.source_url or "unknown"
    stamp = document.fetched_at or generated_at or utc_timestamp()

    return f"""---
name: {document.skill_name}
description: {title} documentation and reference. Use when asking about {triggers}.
---

# {title}

This skill provides access to {title} documentation with {len(links)} reference documents.

## Overview

{summary}

## How to Use

Ask questions about any topic covered in this documentation. The skill will help you find relevant information from the reference documents.

**Example queries:**
- "How do I get started with {first_word}?"
- "What are the configuration options?"
- "Show me examples of common workflows"
- "How does authentication work?"

## Reference Documents

{reference_list}

---

*Generated from [llms.txt]({source}) on {stamp}*
*Fetched {reference_count} of {len(links)} documents*
"""


def count_reference_files(skill_dir: Path) -> int:
    references_dir = skill_dir / REFERENCES_DIRNAME
    if not references_dir.is_dir():
        return 0
    return sum(1 for path in references_dir.glob("*.md") if path.is_file())


def check_skill_dir(skill_dir: Union[str, Path]) -> Path:
    target = Path(skill_dir)
    if not target.is_dir():
        raise FilesystemError(f"Skill directory does not exist: {target}")
    if not os.access(target, os.W_OK):
        raise FilesystemError(f"Skill directory is not writable: {target}")
    return target


def generate_skill(
    skill_dir: Union[str, Path],
    document: IndexDocument,
    *,
    downloaded: Optional[Iterable[str]] = None,
) -> SkillResult:
    """Write ``SKILL.md`` for ``document`` into ``skill_dir``.

    Args:
        skill_dir: Existing, writable skill directory.
        document: Parsed or loaded index.
        downloaded: File names that were fetched. When omitted, the ``*.md``
            files under ``skill_dir/references`` are counted instead.

    Raises:
        FilesystemError: If the directory is unusable or the write fails.
    """
    target_dir = check_skill_dir(skill_dir)
    if downloaded is None:
        reference_count = count_reference_files(target_dir)
    else:
        reference_count = len(set(downloaded))

    content = render_skill(document, reference_count=reference_count)
    skill_path = target_dir / SKILL_FILENAME
    try:
        skill_path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f"Failed to write {skill_path}: {exc}") from exc

    LOGGER.info("Wrote %s", skill_path)
    return SkillResult(
        skill_path=skill_path,
        skill_name=document.skill_name,
        title=document.title,
        reference_count=reference_count,
        link_count=len(document.links),
    )
