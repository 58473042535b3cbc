"""MCP server exposing the llms.txt pipeline as tools.

Provides tools for:
- Fetching and parsing an llms.txt index
- Downloading the documents it links to
- Generating SKILL.md from an index
- Running all of the above in one call

Supports both STDIO and HTTP transports.

Usage:
    # STDIO (for desktop assistants)
    python -m llmstxt_skill.mcp_server

    # HTTP (for remote access)
    python -m llmstxt_skill.mcp_server --transport http --port 8000

Environment Variables:
    LLMSTXT_TIMEOUT: Per-request timeout in seconds (default: 30)
    LLMSTXT_BATCH_SIZE: Concurrent downloads per batch (default: 5)
    LLMSTXT_USER_AGENT: User-Agent header for outbound requests
"""

from __future__ import annotations

import argparse
import json
import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP

from .errors import LlmsTxtError, NetworkError
from .index import fetch_index_async, is_absolute_http_url, load_index
from .pipeline import build_skill_async
from .references import fetch_references_async
from .settings import load_settings
from .skill import generate_skill as write_skill

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger(__name__)

load_dotenv()

mcp = FastMCP(
    name="llms.txt to Skill",
    instructions="""
    Turns an llms.txt documentation index into a local skill:

    - fetch_llmstxt: Parse an llms.txt URL into structured JSON
    - fetch_references: Download every linked document into a directory
    - generate_skill: Write SKILL.md from a saved index JSON file
    - build_skill: Do all of the above for one URL

    All tools return JSON. Failures return {"error": ..., "kind": ...}.
    """,
)


def _dumps(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _error(exc: Exception) -> str:
    kind = type(exc).__name__
    if isinstance(exc, NetworkError):
        kind = f"{kind}:{exc.kind.value}"
    LOGGER.error("%s", exc)
    return _dumps({"error": str(exc), "kind": kind})


# =============================================================================
# TOOLS
# =============================================================================


@mcp.tool
async def fetch_llmstxt(url: str, timeout: Optional[float] = None) -> str:
    """
    Fetch an llms.txt index and return it as structured JSON.

    Args:
        url: http(s) URL of the llms.txt file
        timeout: Request timeout in seconds (default: 30)

    Returns:
        JSON with title, skillName, links [{name, url, description}],
        sourceUrl and fetchedAt.
    """
    try:
        document = await fetch_index_async(url, timeout=timeout)
    except LlmsTxtError as exc:
        return _error(exc)
    return _dumps(document.to_dict())


@mcp.tool
async def fetch_references(
    source: str,
    output_dir: str,
    batch_size: Optional[int] = None,
    timeout: Optional[float] = None,
) -> str:
    """
    Download every document linked from an index.

    Args:
        source: llms.txt URL, or path to an index JSON from fetch_llmstxt
        output_dir: Directory to write <name>.md files into (created if missing)
        batch_size: Concurrent downloads per batch (default: 5)
        timeout: Per-request timeout in seconds (default: 30)

    Returns:
        JSON report with total, success, failed, skipped, files and warnings.
    """
    try:
        if is_absolute_http_url(source.strip()):
            document = await fetch_index_async(source, timeout=timeout)
        else:
            document = load_index(source)
        report = await fetch_references_async(
            document.links,
            output_dir,
            batch_size=batch_size,
            timeout=timeout,
        )
    except LlmsTxtError as exc:
        return _error(exc)

    LOGGER.info("Completed: %d/%d successful", report.success, report.total)
    return _dumps(report.to_dict())


@mcp.tool
async def generate_skill(skill_dir: str, index_path: str) -> str:
    """
    Write SKILL.md into an existing skill directory.

    Args:
        skill_dir: Existing directory; references/*.md inside it are counted
        index_path: Path to an index JSON written by fetch_llmstxt

    Returns:
        JSON with skillPath, skillName, title, referenceCount and linkCount.
    """
    try:
        document = load_index(index_path)
        result = write_skill(skill_dir, document)
    except LlmsTxtError as exc:
        return _error(exc)
    return _dumps(result.to_dict())


@mcp.tool
async def build_skill(
    url: str,
    skills_root: str = ".",
    batch_size: Optional[int] = None,
    timeout: Optional[float] = None,
) -> str:
    """
    Fetch an llms.txt index, download its documents and write SKILL.md.

    Args:
        url: http(s) URL of the llms.txt file
        skills_root: Directory that receives <skill-name>/ (default: ".")
        batch_size: Concurrent downloads per batch (default: 5)
        timeout: Per-request timeout in seconds (default: 30)

    Returns:
        JSON with skillDir, indexPath, title, skillName, references report
        and the skill result (null when nothing could be downloaded).
    """
    try:
        result = await build_skill_async(
            url, skills_root, batch_size=batch_size, timeout=timeout
        )
    except LlmsTxtError as exc:
        return _error(exc)
    return _dumps(result.to_dict())


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the llms.txt to skill MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # STDIO transport (default)
    python -m llmstxt_skill.mcp_server

    # HTTP transport
    python -m llmstxt_skill.mcp_server --transport http --host 0.0.0.0 --port 9000
""",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )

    args = parser.parse_args()

    settings = load_settings()
    LOGGER.info(
        "Timeout: %ss, batch size: %d", settings.timeout, settings.batch_size
    )

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        mcp.run(transport="http", host=args.host, port=args.port)
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
