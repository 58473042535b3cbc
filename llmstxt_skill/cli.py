"""Command-line interface for the llms.txt fetch and skill tools."""

from __future__ import annotations

import argparse
import asyncio
import logging
import shutil
import sys
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from dotenv import load_dotenv

from .cli_config import CONFIG_DIR, CONFIG_ENV_FILE, load_config
from .cli_output import (
    emit_progress,
    print_error,
    print_json,
    print_report_summary,
)
from .cli_parsers import (
    UsageParser,
    build_fetch_parser,
    build_pipeline_parser,
    build_references_parser,
    build_skill_parser,
)
from .document import IndexDocument
from .errors import (
    FilesystemError,
    InvalidArgumentError,
    LlmsTxtError,
    NetworkError,
    ParseError,
)
from .index import (
    fetch_index_async,
    is_absolute_http_url,
    load_index,
    validate_url,
    write_index,
)
from .pipeline import build_skill_async
from .references import fetch_references_async
from .skill import check_skill_dir, generate_skill

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_INPUT = 2
EXIT_OUTPUT = 3
EXIT_PROCESSING = 4
EXIT_INTERRUPTED = 130


def _load_config() -> None:
    load_config(
        config_dir=CONFIG_DIR,
        config_env_file=CONFIG_ENV_FILE,
        cwd=Path.cwd(),
        load_env=load_dotenv,
        copy_file=shutil.copy,
    )


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _parse(parser: UsageParser, argv: Optional[List[str]]) -> Optional[argparse.Namespace]:
    """Parse ``argv``; ``None`` means no arguments were given at all."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        parser.print_help()
        return None
    return parser.parse_args(args)


def _run(
    parser: UsageParser,
    argv: Optional[List[str]],
    command: Callable[[argparse.Namespace], Awaitable[int]],
) -> int:
    args = _parse(parser, argv)
    if args is None:
        return EXIT_USAGE

    _setup_logging(args.verbose)
    _load_config()

    try:
        return asyncio.run(command(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return EXIT_INTERRUPTED
    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        if args.verbose:
            logging.exception("Full traceback:")
        return EXIT_USAGE


# =============================================================================
# FETCH COMMAND
# =============================================================================


async def _run_fetch_async(args: argparse.Namespace) -> int:
    try:
        url = validate_url(args.url)
    except InvalidArgumentError as exc:
        print_error(str(exc))
        return EXIT_USAGE

    if args.output_file:
        parent = Path(args.output_file).parent
        if not parent.is_dir():
            print_error(f"Output directory does not exist: {parent}")
            return EXIT_PROCESSING

    try:
        document = await fetch_index_async(url, timeout=args.timeout)
    except NetworkError as exc:
        print_error(f"Failed to fetch URL: {exc}")
        return EXIT_INPUT
    except ParseError as exc:
        print_error(f"Failed to parse llms.txt: {exc}")
        return EXIT_OUTPUT

    if not args.output_file:
        print_json(document.to_dict())
        return EXIT_OK

    try:
        write_index(document, args.output_file)
    except FilesystemError as exc:
        print_error(str(exc))
        return EXIT_PROCESSING
    return EXIT_OK


def fetch_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for llmstxt-fetch."""
    return _run(build_fetch_parser(), argv, _run_fetch_async)


# =============================================================================
# REFERENCES COMMAND
# =============================================================================


async def _load_source(source: str, timeout: Optional[float]) -> IndexDocument:
    if is_absolute_http_url(source.strip()):
        return await fetch_index_async(source, timeout=timeout)
    return load_index(source)


async def _run_references_async(args: argparse.Namespace) -> int:
    try:
        document = await _load_source(args.source, args.timeout)
    except LlmsTxtError as exc:
        print_error(str(exc))
        return EXIT_INPUT

    logging.info("Fetching %d references...", len(document.links))
    try:
        report = await fetch_references_async(
            document.links,
            args.output_dir,
            batch_size=args.batch_size,
            timeout=args.timeout,
            on_progress=emit_progress,
        )
    except FilesystemError as exc:
        print_error(str(exc))
        return EXIT_OUTPUT

    print_json(report.to_dict())
    print_report_summary(report)

    if report.is_total_failure:
        print_error(f"No references could be fetched ({report.total} attempted)")
        return EXIT_PROCESSING
    return EXIT_OK


def references_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for llmstxt-references."""
    return _run(build_references_parser(), argv, _run_references_async)


# =============================================================================
# SKILL COMMAND
# =============================================================================


async def _run_skill_async(args: argparse.Namespace) -> int:
    json_file = Path(args.json_file)
    if not json_file.is_file():
        print_error(f"JSON file not found: {json_file}")
        return EXIT_INPUT

    try:
        skill_dir = check_skill_dir(args.skill_dir)
    except FilesystemError as exc:
        print_error(str(exc))
        print("Create it first with: mkdir -p <skill-dir>/references", file=sys.stderr)
        return EXIT_OUTPUT

    try:
        document = load_index(json_file)
    except (ParseError, FilesystemError) as exc:
        print_error(str(exc))
        return EXIT_INPUT

    logging.info("Generating SKILL.md in %s...", skill_dir)
    try:
        result = generate_skill(skill_dir, document)
    except FilesystemError as exc:
        print_error(str(exc))
        return EXIT_PROCESSING

    print_json(result.to_dict())
    print(
        f"\nGenerated: {result.skill_path}\n"
        f"  Skill name: {result.skill_name}\n"
        f"  Title: {result.title}\n"
        f"  References: {result.reference_count}/{result.link_count}",
        file=sys.stderr,
    )
    return EXIT_OK


def skill_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for llmstxt-skill."""
    return _run(build_skill_parser(), argv, _run_skill_async)


# =============================================================================
# PIPELINE COMMAND
# =============================================================================


async def _run_pipeline_async(args: argparse.Namespace) -> int:
    try:
        url = validate_url(args.url)
    except InvalidArgumentError as exc:
        print_error(str(exc))
        return EXIT_USAGE

    try:
        result = await build_skill_async(
            url,
            args.skills_root,
            batch_size=args.batch_size,
            timeout=args.timeout,
            on_progress=emit_progress,
        )
    except NetworkError as exc:
        print_error(f"Failed to fetch URL: {exc}")
        return EXIT_INPUT
    except ParseError as exc:
        print_error(f"Failed to parse llms.txt: {exc}")
        return EXIT_OUTPUT
    except FilesystemError as exc:
        print_error(str(exc))
        return EXIT_OUTPUT

    print_json(result.to_dict())
    print_report_summary(result.report)

    if result.report.is_total_failure:
        print_error(f"No references could be fetched ({result.report.total} attempted)")
        return EXIT_PROCESSING

    logging.info("Skill written to %s", result.skill_dir)
    return EXIT_OK


def pipeline_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for llmstxt-to-skill."""
    return _run(build_pipeline_parser(), argv, _run_pipeline_async)


if __name__ == "__main__":
    sys.exit(pipeline_main())
