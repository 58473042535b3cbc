"""Turn an llms.txt documentation index into a local skill.

This package fetches a small ``llms.txt`` style index, downloads every
document it links to, and writes a categorized ``SKILL.md`` summary. It
supports:

- Fetching and parsing an index (``fetch_index_async``)
- Batched, failure-tolerant downloads (``fetch_references_async``)
- Summary generation (``generate_skill``)
- The whole flow in one call (``build_skill_async``)

Example usage:

    from llmstxt_skill import fetch_index_async, fetch_references_async

    document = await fetch_index_async("https://example.com/llms.txt")
    report = await fetch_references_async(document.links, "./references")
    print(report.success, "of", report.total)

    # Everything at once
    from llmstxt_skill import build_skill_async

    result = await build_skill_async("https://example.com/llms.txt", "./skills")
    print(result.skill_dir)
"""

from __future__ import annotations

from .document import (
    FetchFailure,
    FetchOutcome,
    FetchProgress,
    FetchReport,
    FetchSuccess,
    IndexDocument,
    Link,
)
from .errors import (
    FilesystemError,
    InvalidArgumentError,
    LlmsTxtError,
    NetworkError,
    NetworkErrorKind,
    ParseError,
)
from .filenames import sanitize_filename
from .index import (
    derive_link_name,
    derive_skill_name,
    fetch_index,
    fetch_index_async,
    load_index,
    parse_index,
    write_index,
)
from .pipeline import BuildResult, build_skill, build_skill_async
from .references import fetch_references, fetch_references_async
from .skill import SkillResult, categorize_links, generate_skill, render_skill

__all__ = [
    # Data types
    "Link",
    "IndexDocument",
    "FetchSuccess",
    "FetchFailure",
    "FetchOutcome",
    "FetchProgress",
    "FetchReport",
    "SkillResult",
    "BuildResult",
    # Errors
    "LlmsTxtError",
    "InvalidArgumentError",
    "NetworkError",
    "NetworkErrorKind",
    "ParseError",
    "FilesystemError",
    # Index
    "parse_index",
    "fetch_index",
    "fetch_index_async",
    "load_index",
    "write_index",
    "derive_skill_name",
    "derive_link_name",
    # References
    "fetch_references",
    "fetch_references_async",
    "sanitize_filename",
    # Skill
    "categorize_links",
    "render_skill",
    "generate_skill",
    # Pipeline
    "build_skill",
    "build_skill_async",
    # MCP Server
    "mcp",
]


def get_mcp_server():
    """Get the MCP server instance (lazy import to avoid dependency if not needed)."""
    from .mcp_server import mcp

    return mcp


# Lazy import for mcp to avoid requiring fastmcp if not used
def __getattr__(name):
    if name == "mcp":
        from .mcp_server import mcp

        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
