"""Argument parser construction for CLI commands."""

from __future__ import annotations

import argparse
import math
import sys
from typing import NoReturn, Optional, TextIO

EXIT_CODES_EPILOG = """\
Exit codes:
  0 - Success
  1 - Invalid arguments
{codes}"""


class UsageParser(argparse.ArgumentParser):
    """ArgumentParser that writes help to stderr and exits 1 on misuse.

    stdout is reserved for JSON results.
    """

    def print_help(self, file: Optional[TextIO] = None) -> None:
        super().print_help(file or sys.stderr)

    def print_usage(self, file: Optional[TextIO] = None) -> None:
        super().print_usage(file or sys.stderr)

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from None
    if not math.isfinite(number) or number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive number: {value!r}")
    return number


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value!r}")
    return number


def _new_parser(prog: str, description: str, examples: str, codes: str) -> UsageParser:
    return UsageParser(
        prog=prog,
        description=description,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=examples + "\n" + EXIT_CODES_EPILOG.format(codes=codes),
    )


def _add_timeout_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--timeout",
        type=_positive_float,
        default=None,
        help="Per-request timeout in seconds (default: LLMSTXT_TIMEOUT or 30)",
    )


def _add_batch_size_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help="Concurrent downloads per batch (default: LLMSTXT_BATCH_SIZE or 5)",
    )


def _add_verbose_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def build_fetch_parser() -> UsageParser:
    parser = _new_parser(
        "llmstxt-fetch",
        "Fetch an llms.txt index and print it as structured JSON.",
        """\
Examples:
  llmstxt-fetch https://example.com/llms.txt
  llmstxt-fetch https://example.com/llms.txt /tmp/data.json
""",
        """\
  2 - Network error
  3 - Parse error
  4 - Write error""",
    )
    parser.add_argument("url", help="URL of the llms.txt file")
    parser.add_argument(
        "output_file",
        nargs="?",
        default=None,
        help="Write the JSON here instead of stdout",
    )
    _add_timeout_arg(parser)
    _add_verbose_arg(parser)
    return parser


def build_references_parser() -> UsageParser:
    parser = _new_parser(
        "llmstxt-references",
        "Download every document linked from an llms.txt index.",
        """\
Examples:
  llmstxt-references /tmp/data.json ./my-skill/references
  llmstxt-references https://example.com/llms.txt ./references --batch-size 10
""",
        """\
  2 - Input error (missing or malformed index JSON, index fetch failed)
  3 - Output directory error
  4 - No document could be downloaded""",
    )
    parser.add_argument(
        "source",
        help="Index JSON written by llmstxt-fetch, or an llms.txt URL",
    )
    parser.add_argument("output_dir", help="Directory to save fetched documents")
    _add_batch_size_arg(parser)
    _add_timeout_arg(parser)
    _add_verbose_arg(parser)
    return parser


def build_skill_parser() -> UsageParser:
    parser = _new_parser(
        "llmstxt-skill",
        "Generate SKILL.md from an index JSON file.",
        """\
Examples:
  llmstxt-skill ./my-skill /tmp/data.json
  llmstxt-skill ~/.claude/skills/my-skill data.json
""",
        """\
  2 - JSON file error
  3 - Directory error
  4 - Write error""",
    )
    parser.add_argument("skill_dir", help="Existing directory to write SKILL.md into")
    parser.add_argument("json_file", help="Index JSON written by llmstxt-fetch")
    _add_verbose_arg(parser)
    return parser


def build_pipeline_parser() -> UsageParser:
    parser = _new_parser(
        "llmstxt-to-skill",
        "Fetch an llms.txt index, download its documents and write SKILL.md.",
        """\
Examples:
  llmstxt-to-skill https://example.com/llms.txt
  llmstxt-to-skill https://example.com/llms.txt ~/.claude/skills
""",
        """\
  2 - Network error
  3 - Parse error or destination error
  4 - No document could be downloaded""",
    )
    parser.add_argument("url", help="URL of the llms.txt file")
    parser.add_argument(
        "skills_root",
        nargs="?",
        default=".",
        help="Directory that receives <skill-name>/ (default: current directory)",
    )
    _add_batch_size_arg(parser)
    _add_timeout_arg(parser)
    _add_verbose_arg(parser)
    return parser
