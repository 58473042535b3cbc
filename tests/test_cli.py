"""Tests for llmstxt_skill.cli module."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from llmstxt_skill.cli import (
    EXIT_INPUT,
    EXIT_INTERRUPTED,
    EXIT_OK,
    EXIT_OUTPUT,
    EXIT_PROCESSING,
    EXIT_USAGE,
    fetch_main,
    pipeline_main,
    references_main,
    skill_main,
)
from llmstxt_skill.cli_output import format_report_summary
from llmstxt_skill.document import FetchReport, Link

INDEX_URL = "https://example.com/llms.txt"
START_URL = "https://example.com/start.md"
API_URL = "https://example.com/api.md"


def _index_routes(sample_index, **extra):
    routes = {INDEX_URL: (200, sample_index)}
    routes.update(extra)
    return routes


def _write_index_json(path: Path, links=None) -> Path:
    payload = {
        "title": "My Docs",
        "skillName": "my-docs",
        "links": links
        if links is not None
        else [
            {"name": "start", "url": START_URL, "description": "How to begin"},
            {"name": "api", "url": API_URL, "description": "API Reference"},
        ],
        "sourceUrl": INDEX_URL,
        "fetchedAt": "2026-01-01T00:00:00Z",
    }
    path.write_text(json.dumps(payload))
    return path


class TestUsage:
    @pytest.mark.parametrize("main", [fetch_main, references_main, skill_main, pipeline_main])
    def test_no_arguments_prints_help(self, main, capsys):
        assert main([]) == EXIT_USAGE
        captured = capsys.readouterr()
        assert "usage:" in captured.err
        assert captured.out == ""

    @pytest.mark.parametrize("main", [fetch_main, references_main, skill_main, pipeline_main])
    def test_help_exits_zero(self, main, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--help"])
        assert excinfo.value.code == 0
        captured = capsys.readouterr()
        assert "Exit codes:" in captured.err
        assert captured.out == ""

    def test_missing_positional_exits_one(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            references_main(["only-one-arg"])
        assert excinfo.value.code == 1
        assert "Error: " in capsys.readouterr().err

    def test_bad_option_value_exits_one(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            fetch_main([INDEX_URL, "--timeout", "soon"])
        assert excinfo.value.code == 1

    @pytest.mark.parametrize(
        "option",
        [
            ["--timeout", "0"],
            ["--timeout", "-5"],
            ["--timeout", "nan"],
            ["--timeout", "inf"],
            ["--batch-size", "0"],
            ["--batch-size", "-2"],
        ],
    )
    @pytest.mark.parametrize(
        "main, positionals",
        [(references_main, ["data.json", "refs"]), (pipeline_main, [INDEX_URL])],
    )
    def test_non_positive_numbers_exit_one(self, main, positionals, option, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main([*positionals, *option])
        assert excinfo.value.code == 1
        err = capsys.readouterr().err
        assert "Error: " in err
        assert option[0] in err


class TestFetchCommand:
    def test_prints_json(self, patch_clients, sample_index, capsys):
        patch_clients(_index_routes(sample_index))
        assert fetch_main([INDEX_URL]) == EXIT_OK
        captured = capsys.readouterr()
        data = json.loads(captured.out)
        assert data["title"] == "My Docs"
        assert data["skillName"] == "my-docs"
        assert [link["name"] for link in data["links"]] == ["start", "api"]

    def test_writes_file(self, patch_clients, sample_index, tmp_path, capsys):
        patch_clients(_index_routes(sample_index))
        target = tmp_path / "data.json"
        assert fetch_main([INDEX_URL, str(target)]) == EXIT_OK
        assert json.loads(target.read_text())["sourceUrl"] == INDEX_URL
        assert capsys.readouterr().out == ""

    def test_invalid_url(self, capsys):
        assert fetch_main(["ftp://example.com/llms.txt"]) == EXIT_USAGE
        assert "Error: Invalid URL" in capsys.readouterr().err

    def test_http_error(self, patch_clients, capsys):
        patch_clients({INDEX_URL: (404, "nope")})
        assert fetch_main([INDEX_URL]) == EXIT_INPUT
        captured = capsys.readouterr()
        assert "Error: Failed to fetch URL: HTTP 404" in captured.err
        assert captured.out == ""

    def test_connection_error(self, patch_clients, capsys):
        error = httpx.ConnectError("refused", request=httpx.Request("GET", INDEX_URL))
        patch_clients({INDEX_URL: error})
        assert fetch_main([INDEX_URL]) == EXIT_INPUT

    def test_empty_index(self, patch_clients, capsys):
        patch_clients({INDEX_URL: (200, "")})
        assert fetch_main([INDEX_URL]) == EXIT_OUTPUT
        assert "Error: Failed to parse llms.txt" in capsys.readouterr().err

    def test_no_links(self, patch_clients, capsys):
        patch_clients({INDEX_URL: (200, "# Title only\n")})
        assert fetch_main([INDEX_URL]) == EXIT_OUTPUT

    def test_output_directory_missing(self, patch_clients, sample_index, tmp_path, capsys):
        patch_clients(_index_routes(sample_index))
        target = tmp_path / "missing" / "data.json"
        assert fetch_main([INDEX_URL, str(target)]) == EXIT_PROCESSING
        assert "does not exist" in capsys.readouterr().err


class TestReferencesCommand:
    def test_from_json_file(self, patch_clients, tmp_path, capsys):
        patch_clients({START_URL: (200, "# Start\n"), API_URL: (500, "boom")})
        source = _write_index_json(tmp_path / "data.json")
        out_dir = tmp_path / "refs"

        assert references_main([str(source), str(out_dir)]) == EXIT_OK

        captured = capsys.readouterr()
        report = json.loads(captured.out)
        assert report["success"] == 1
        assert report["failed"] == 1
        assert report["files"] == ["start.md"]
        assert report["warnings"] == ["api: HTTP 500"]
        assert (out_dir / "start.md").is_file()
        progress = [
            json.loads(line)
            for line in captured.err.splitlines()
            if line.startswith('{"progress"')
        ]
        assert progress[-1]["progress"]["completed"] == 2

    def test_from_url(self, patch_clients, sample_index, tmp_path, capsys):
        patch_clients(
            _index_routes(sample_index, **{START_URL: (200, "S"), API_URL: (200, "A")})
        )
        assert references_main([INDEX_URL, str(tmp_path)]) == EXIT_OK
        assert json.loads(capsys.readouterr().out)["success"] == 2

    def test_all_failed(self, patch_clients, tmp_path, capsys):
        patch_clients({START_URL: (500, "x"), API_URL: (500, "x")})
        source = _write_index_json(tmp_path / "data.json")
        assert references_main([str(source), str(tmp_path / "refs")]) == EXIT_PROCESSING
        captured = capsys.readouterr()
        assert json.loads(captured.out)["success"] == 0
        assert "Error: No references could be fetched" in captured.err

    def test_missing_json(self, tmp_path, capsys):
        assert references_main([str(tmp_path / "nope.json"), str(tmp_path)]) == EXIT_INPUT
        assert "JSON file not found" in capsys.readouterr().err

    def test_malformed_json(self, tmp_path, capsys):
        source = tmp_path / "bad.json"
        source.write_text("[1, 2")
        assert references_main([str(source), str(tmp_path)]) == EXIT_INPUT

    def test_index_fetch_failure(self, patch_clients, tmp_path):
        patch_clients({INDEX_URL: (503, "down")})
        assert references_main([INDEX_URL, str(tmp_path)]) == EXIT_INPUT

    def test_destination_error(self, tmp_path, capsys):
        source = _write_index_json(tmp_path / "data.json")
        blocker = tmp_path / "file"
        blocker.write_text("x")
        assert references_main([str(source), str(blocker / "refs")]) == EXIT_OUTPUT


class TestSkillCommand:
    def test_generates(self, tmp_path, capsys):
        skill_dir = tmp_path / "my-docs"
        (skill_dir / "references").mkdir(parents=True)
        (skill_dir / "references" / "start.md").write_text("x")
        source = _write_index_json(tmp_path / "data.json")

        assert skill_main([str(skill_dir), str(source)]) == EXIT_OK

        captured = capsys.readouterr()
        result = json.loads(captured.out)
        assert result["referenceCount"] == 1
        assert result["linkCount"] == 2
        assert (skill_dir / "SKILL.md").is_file()
        assert "References: 1/2" in captured.err

    def test_missing_json(self, tmp_path, capsys):
        assert skill_main([str(tmp_path), str(tmp_path / "nope.json")]) == EXIT_INPUT

    def test_malformed_json(self, tmp_path):
        source = tmp_path / "data.json"
        source.write_text(json.dumps({"links": []}))
        assert skill_main([str(tmp_path), str(source)]) == EXIT_INPUT

    def test_missing_directory(self, tmp_path, capsys):
        source = _write_index_json(tmp_path / "data.json")
        assert skill_main([str(tmp_path / "missing"), str(source)]) == EXIT_OUTPUT
        assert "mkdir -p" in capsys.readouterr().err

    def test_write_failure(self, tmp_path, capsys):
        source = _write_index_json(tmp_path / "data.json")
        with patch.object(Path, "write_text", side_effect=OSError("read-only")):
            assert skill_main([str(tmp_path), str(source)]) == EXIT_PROCESSING
        assert "read-only" in capsys.readouterr().err


class TestPipelineCommand:
    def test_builds_skill(self, patch_clients, sample_index, tmp_path, capsys):
        patch_clients(
            _index_routes(sample_index, **{START_URL: (200, "S"), API_URL: (200, "A")})
        )
        assert pipeline_main([INDEX_URL, str(tmp_path)]) == EXIT_OK

        skill_dir = tmp_path / "my-docs"
        assert (skill_dir / "llms.json").is_file()
        assert (skill_dir / "references" / "start.md").is_file()
        assert (skill_dir / "references" / "api.md").is_file()
        assert (skill_dir / "SKILL.md").is_file()
        result = json.loads(capsys.readouterr().out)
        assert result["skill"]["referenceCount"] == 2

    def test_all_downloads_failed(self, patch_clients, sample_index, tmp_path, capsys):
        patch_clients(
            _index_routes(sample_index, **{START_URL: (500, "x"), API_URL: (500, "x")})
        )
        assert pipeline_main([INDEX_URL, str(tmp_path)]) == EXIT_PROCESSING
        assert not (tmp_path / "my-docs" / "SKILL.md").exists()
        assert json.loads(capsys.readouterr().out)["skill"] is None

    def test_invalid_url(self):
        assert pipeline_main(["not a url"]) == EXIT_USAGE

    def test_network_error(self, patch_clients, tmp_path):
        patch_clients({INDEX_URL: (500, "x")})
        assert pipeline_main([INDEX_URL, str(tmp_path)]) == EXIT_INPUT

    def test_parse_error(self, patch_clients, tmp_path):
        patch_clients({INDEX_URL: (200, "no links here")})
        assert pipeline_main([INDEX_URL, str(tmp_path)]) == EXIT_OUTPUT

    def test_destination_error(self, patch_clients, sample_index, tmp_path):
        patch_clients(_index_routes(sample_index))
        blocker = tmp_path / "file"
        blocker.write_text("x")
        assert pipeline_main([INDEX_URL, str(blocker)]) == EXIT_OUTPUT


class TestRunErrors:
    def test_unexpected_error(self, capsys):
        with patch(
            "llmstxt_skill.cli.build_skill_async",
            new=AsyncMock(side_effect=RuntimeError("kaboom")),
        ):
            assert pipeline_main([INDEX_URL]) == EXIT_USAGE
        assert "Error: Unexpected error: kaboom" in capsys.readouterr().err

    def test_keyboard_interrupt(self):
        with patch(
            "llmstxt_skill.cli.build_skill_async",
            new=AsyncMock(side_effect=KeyboardInterrupt),
        ):
            assert pipeline_main([INDEX_URL]) == EXIT_INTERRUPTED


def test_report_summary_lists_warnings():
    report = FetchReport(total=2)
    report.skip(Link(name="x", url=""), "missing url")
    text = format_report_summary(report)
    assert text.startswith("Fetched 0/2 references (0 failed, 1 skipped)")
    assert "  - x: skipped (missing url)" in text
