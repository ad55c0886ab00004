"""
Tests for the skillrules CLI.

Covers:
- validate: valid document, validation errors (exit 3), missing file
- rules: listing
- match prompt / match file (text and JSON output, exit 2 on block)
- hook: prompt-submit, pre-tool-use (exit 2 + message), broken rule set
- sessions list / cleanup
"""

import json
import os
import time
from pathlib import Path

import pytest
from click.testing import CliRunner

from skillrules.cli import EXIT_BLOCKED, EXIT_CONFIG_ERROR, EXIT_FAILED, main

RULES = {
    "version": "1.0",
    "skills": {
        "database-verification": {
            "type": "guardrail",
            "enforcement": "block",
            "priority": "critical",
            "fileTriggers": {"pathPatterns": ["**/*.sql"]},
            "blockMessage": "Review {file_path} for schema safety",
            "skipConditions": {"sessionSkillUsed": True},
        },
        "demo": {
            "type": "domain",
            "enforcement": "suggest",
            "priority": "medium",
            "promptTriggers": {"keywords": ["layout"]},
        },
    },
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CLAUDE_PROJECT_DIR", "SKILLRULES_RULES_FILE", "SKILLRULES_STATE_DIR", "SKILLRULES_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    (root / ".claude" / "skills").mkdir(parents=True)
    (root / ".claude" / "skills" / "skill-rules.json").write_text(json.dumps(RULES), encoding="utf-8")
    return root


@pytest.fixture
def base_args(project: Path) -> list[str]:
    return ["--project-dir", str(project)]


class TestValidate:
    def test_valid(self, cli_runner: CliRunner, base_args: list[str]):
        result = cli_runner.invoke(main, base_args + ["validate"])
        assert result.exit_code == 0, result.output
        assert "Valid rule set" in result.output
        assert "2 (1 guardrails, 1 domain)" in result.output

    def test_explicit_path(self, cli_runner: CliRunner, tmp_path: Path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps(RULES), encoding="utf-8")
        result = cli_runner.invoke(main, ["validate", str(path)])
        assert result.exit_code == 0

    def test_block_without_message(self, cli_runner: CliRunner, tmp_path: Path):
        path = tmp_path / "rules.json"
        path.write_text(
            json.dumps({"skills": {"g": {"type": "guardrail", "enforcement": "block", "priority": "high"}}}),
            encoding="utf-8",
        )
        result = cli_runner.invoke(main, ["validate", str(path)])
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "g.blockMessage" in result.output

    def test_missing(self, cli_runner: CliRunner, tmp_path: Path):
        result = cli_runner.invoke(main, ["validate", str(tmp_path / "none.json")])
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "not found" in result.output

    def test_invalid_utf8(self, cli_runner: CliRunner, tmp_path: Path):
        path = tmp_path / "rules.json"
        path.write_bytes(b'{"skills": {"\xff": {}}}')
        result = cli_runner.invoke(main, ["validate", str(path)])
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "not valid UTF-8" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)


class TestRulesAndMatch:
    def test_rules_list(self, cli_runner: CliRunner, base_args: list[str]):
        result = cli_runner.invoke(main, base_args + ["rules"])
        assert result.exit_code == 0
        assert "database-verification" in result.output
        assert "demo" in result.output

    def test_match_prompt(self, cli_runner: CliRunner, base_args: list[str]):
        result = cli_runner.invoke(main, base_args + ["match", "prompt", "How does the layout system work?"])
        assert result.exit_code == 0
        assert "demo" in result.output

    def test_match_prompt_nothing(self, cli_runner: CliRunner, base_args: list[str]):
        result = cli_runner.invoke(main, base_args + ["match", "prompt", "How does the grid work?"])
        assert result.exit_code == 0
        assert "No rules matched" in result.output

    def test_match_file_json_blocks(self, cli_runner: CliRunner, base_args: list[str]):
        result = cli_runner.invoke(main, base_args + ["match", "file", "migrations/001.sql", "--create", "--json"])
        assert result.exit_code == EXIT_BLOCKED
        data = json.loads(result.output)
        assert data[0]["rule"] == "database-verification"
        assert data[0]["message"] == "Review migrations/001.sql for schema safety"


class TestHook:
    def test_prompt_submit(self, cli_runner: CliRunner, base_args: list[str], tmp_path: Path):
        payload = json.dumps({"session_id": "s1", "prompt": "fix the layout"})
        result = cli_runner.invoke(
            main,
            base_args + ["--state-dir", str(tmp_path / "state"), "hook", "prompt-submit"],
            input=payload,
        )
        assert result.exit_code == 0
        assert "SKILL ACTIVATION CHECK" in result.output
        assert "demo" in result.output

    def test_pre_tool_use_blocks(self, cli_runner: CliRunner, base_args: list[str], project: Path, tmp_path: Path):
        payload = json.dumps(
            {
                "session_id": "s1",
                "tool_name": "Write",
                "tool_input": {"file_path": str(project / "migrations" / "001.sql"), "content": ""},
            }
        )
        args = base_args + ["--state-dir", str(tmp_path / "state"), "hook", "pre-tool-use"]
        first = cli_runner.invoke(main, args, input=payload)
        assert first.exit_code == EXIT_BLOCKED
        assert "Review migrations/001.sql for schema safety" in first.output

        second = cli_runner.invoke(main, args, input=payload)
        assert second.exit_code == 0

    def test_broken_rule_set_reported(self, cli_runner: CliRunner, project: Path, tmp_path: Path):
        bad = tmp_path / "bad.json"
        bad.write_text("{", encoding="utf-8")
        result = cli_runner.invoke(
            main,
            ["--project-dir", str(project), "--rules", str(bad), "hook", "prompt-submit"],
            input=json.dumps({"prompt": "layout"}),
        )
        assert result.exit_code == EXIT_FAILED
        assert "invalid JSON" in result.output

    def test_missing_rule_set_allows(self, cli_runner: CliRunner, tmp_path: Path):
        result = cli_runner.invoke(
            main,
            ["--project-dir", str(tmp_path), "--state-dir", str(tmp_path / "state"), "hook", "prompt-submit"],
            input=json.dumps({"prompt": "layout"}),
        )
        assert result.exit_code == 0
        assert result.output == ""


class TestSessions:
    def test_list_and_cleanup(self, cli_runner: CliRunner, base_args: list[str], tmp_path: Path):
        state = ["--state-dir", str(tmp_path / "state")]
        cli_runner.invoke(
            main,
            base_args + state + ["hook", "skill-used"],
            input=json.dumps({"session_id": "abc", "tool_name": "Skill", "tool_input": {"skill": "demo"}}),
        )
        listed = cli_runner.invoke(main, base_args + state + ["sessions", "list"])
        assert listed.exit_code == 0
        assert "abc" in listed.output
        assert "skills=demo" in listed.output

        cleaned = cli_runner.invoke(main, base_args + state + ["sessions", "cleanup", "--older-than-days", "1"])
        assert cleaned.exit_code == 0
        assert "Removed 0 session(s)" in cleaned.output

    def test_list_empty(self, cli_runner: CliRunner, base_args: list[str], tmp_path: Path):
        result = cli_runner.invoke(main, base_args + ["--state-dir", str(tmp_path / "none"), "sessions", "list"])
        assert "No sessions stored" in result.output

    def test_cleanup_zero_days(self, cli_runner: CliRunner, base_args: list[str], tmp_path: Path):
        state_dir = tmp_path / "state"
        state_dir.mkdir()
        stale = state_dir / "abc.json"
        stale.write_text(json.dumps({"session_id": "abc"}), encoding="utf-8")
        hour_ago = time.time() - 3600
        os.utime(stale, (hour_ago, hour_ago))

        result = cli_runner.invoke(
            main, base_args + ["--state-dir", str(state_dir), "sessions", "cleanup", "--older-than-days", "0"]
        )
        assert result.exit_code == 0
        assert "Removed 1 session(s) older than 0 day(s)" in result.output
        assert not stale.exists()

    def test_cleanup_negative_days_rejected(self, cli_runner: CliRunner, base_args: list[str]):
        result = cli_runner.invoke(main, base_args + ["sessions", "cleanup", "--older-than-days", "-1"])
        assert result.exit_code == 2
        assert "-1" in result.output
