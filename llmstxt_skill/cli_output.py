"""Output and formatting helpers for CLI commands.

JSON results go to stdout; everything meant for humans goes to stderr.
"""

from __future__ import annotations

import json
import sys
from typing import Any, Dict

from .document import FetchProgress, FetchReport


def print_json(payload: Dict[str, Any]) -> None:
    """Write the machine-readable result to stdout."""
    print(json.dumps(payload, indent=2, ensure_ascii=False), flush=True)


def print_error(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr, flush=True)


def emit_progress(progress: FetchProgress) -> None:
    """Write one single-line JSON progress event to stderr."""
    print(
        json.dumps({"progress": progress.to_dict()}),
        file=sys.stderr,
        flush=True,
    )


def format_report_summary(report: FetchReport) -> str:
    """Human-readable summary of a download report."""
    lines = [
        f"Fetched {report.success}/{report.total} references "
        f"({report.failed} failed, {report.skipped} skipped)"
    ]
    if report.warnings:
        lines.append("")
        lines.append(f"Warnings ({len(report.warnings)}):")
        lines.extend(f"  - {warning}" for warning in report.warnings)
    return "\n".join(lines)


def print_report_summary(report: FetchReport) -> None:
    print(format_report_summary(report), file=sys.stderr, flush=True)
