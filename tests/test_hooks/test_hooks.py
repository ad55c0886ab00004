"""
Tests for the host hooks.

Covers:
- file_event_from_tool: Write/Edit/MultiEdit, create detection, relative paths
- HookRunner.prompt_submit: activation check output
- HookRunner.pre_tool_use: block (exit 2) and advisory outputs, one-time block
- HookRunner.post_tool_use / skill_used: session bookkeeping
- HookRunner.stop: error-handling reminder and SKIP_ERROR_REMINDER
- Malformed payloads never block
- reminder helpers: classify_path, analyze_file, build_reminder
"""

import json
from pathlib import Path

import pytest

from skillrules.config.schema import ReminderConfig
from skillrules.core.session import SessionStore
from skillrules.hooks.files import display_path, file_event_from_tool
from skillrules.hooks.reminder import analyze_file, build_reminder, classify_path
from skillrules.hooks.runner import EXIT_ALLOW, EXIT_BLOCK, HookEvent, HookOutcome, HookRunner
from skillrules.rules.loader import build_rule_set
from skillrules.rules.models import RuleSet


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def rule_set() -> RuleSet:
    return build_rule_set(
        {
            "skills": {
                "database-verification": {
                    "type": "guardrail",
                    "enforcement": "block",
                    "priority": "critical",
                    "fileTriggers": {"pathPatterns": ["**/*.sql"]},
                    "blockMessage": "Review {file_path} for schema safety",
                    "skipConditions": {"sessionSkillUsed": True},
                },
                "frontend-guidelines": {
                    "type": "domain",
                    "enforcement": "suggest",
                    "priority": "high",
                    "description": "React component conventions",
                    "promptTriggers": {"keywords": ["component", "layout"]},
                    "fileTriggers": {"pathPatterns": ["src/**/*.tsx"]},
                },
                "error-tracking": {
                    "type": "domain",
                    "enforcement": "suggest",
                    "priority": "critical",
                    "promptTriggers": {"keywords": ["sentry"]},
                    "skipConditions": {"sessionSkillUsed": True},
                },
            }
        }
    )


@pytest.fixture
def store(tmp_path: Path) -> SessionStore:
    return SessionStore(tmp_path / "state")


@pytest.fixture
def runner(rule_set: RuleSet, store: SessionStore, project: Path) -> HookRunner:
    return HookRunner(rule_set, store, project, env={})


def _payload(**kwargs) -> str:
    kwargs.setdefault("session_id", "s1")
    return json.dumps(kwargs)


# ── Tests: file_event_from_tool ──────────────────────────────────────


class TestFileEvents:
    def test_write_new_file_is_create(self, project: Path):
        event = file_event_from_tool(
            "Write",
            {"file_path": str(project / "migrations" / "001.sql"), "content": "CREATE TABLE t;"},
            project,
        )
        assert event is not None
        assert event.path == "migrations/001.sql"
        assert event.is_create is True
        assert event.content == "CREATE TABLE t;"

    def test_write_existing_file_is_not_create(self, project: Path):
        (project / "a.sql").write_text("old", encoding="utf-8")
        event = file_event_from_tool("Write", {"file_path": str(project / "a.sql"), "content": "new"}, project)
        assert event.is_create is False

    def test_edit_applies_replacement(self, project: Path):
        target = project / "db.ts"
        target.write_text("const a = 1;\nconst b = 2;\n", encoding="utf-8")
        event = file_event_from_tool(
            "Edit",
            {"file_path": str(target), "old_string": "const b = 2;", "new_string": "const b = prisma;"},
            project,
        )
        assert event.content == "const a = 1;\nconst b = prisma;\n"
        assert event.is_create is False

    def test_multi_edit(self, project: Path):
        target = project / "x.py"
        target.write_text("a\nb\n", encoding="utf-8")
        event = file_event_from_tool(
            "MultiEdit",
            {
                "file_path": str(target),
                "edits": [
                    {"old_string": "a", "new_string": "A"},
                    {"old_string": "missing", "new_string": "appended"},
                ],
            },
            project,
        )
        assert "A\nb\n" in event.content
        assert event.content.endswith("appended")

    def test_other_tools_ignored(self, project: Path):
        assert file_event_from_tool("Read", {"file_path": "a.py"}, project) is None
        assert file_event_from_tool("Bash", {"command": "ls"}, project) is None

    def test_missing_file_path(self, project: Path):
        assert file_event_from_tool("Write", {"content": "x"}, project) is None

    def test_display_path_outside_project(self, project: Path, tmp_path: Path):
        outside = tmp_path / "elsewhere" / "a.sql"
        assert display_path(str(outside), project) == str(outside)
        assert display_path("rel/a.sql", project) == "rel/a.sql"


# ── Tests: prompt submit ──────────────────────────────────────────────


class TestPromptSubmit:
    def test_activation_check(self, runner: HookRunner):
        outcome = runner.run(HookEvent.PROMPT_SUBMIT, _payload(prompt="Add sentry to the layout component"))
        assert outcome.exit_code == EXIT_ALLOW
        assert "SKILL ACTIVATION CHECK" in outcome.stdout
        assert "CRITICAL SKILLS (REQUIRED):" in outcome.stdout
        assert "RECOMMENDED SKILLS:" in outcome.stdout
        assert "→ frontend-guidelines: React component conventions" in outcome.stdout
        assert outcome.stdout.index("error-tracking") < outcome.stdout.index("frontend-guidelines")

    def test_nothing_matched(self, runner: HookRunner):
        outcome = runner.run(HookEvent.PROMPT_SUBMIT, _payload(prompt="How does the grid work?"))
        assert outcome.exit_code == EXIT_ALLOW
        assert outcome.stdout == ""

    def test_used_skill_not_suggested_again(self, runner: HookRunner):
        runner.run(
            HookEvent.SKILL_USED,
            _payload(tool_name="Skill", tool_input={"skill": "error-tracking"}),
        )
        outcome = runner.run(HookEvent.PROMPT_SUBMIT, _payload(prompt="sentry please"))
        assert outcome.stdout == ""

    def test_other_session_unaffected(self, runner: HookRunner):
        runner.run(
            HookEvent.SKILL_USED,
            _payload(tool_name="Skill", tool_input={"skill": "error-tracking"}),
        )
        outcome = runner.run(HookEvent.PROMPT_SUBMIT, _payload(session_id="s2", prompt="sentry please"))
        assert "error-tracking" in outcome.stdout


# ── Tests: pre tool use ───────────────────────────────────────────────


class TestPreToolUse:
    def test_blocks_with_rendered_message(self, runner: HookRunner, project: Path):
        outcome = runner.run(
            HookEvent.PRE_TOOL_USE,
            _payload(
                tool_name="Write",
                tool_input={"file_path": str(project / "migrations" / "001.sql"), "content": ""},
            ),
        )
        assert outcome.exit_code == EXIT_BLOCK
        assert outcome.blocked
        assert "Review migrations/001.sql for schema safety" in outcome.stderr
        assert "database-verification" in outcome.stderr

    def test_block_shown_once_per_session(self, runner: HookRunner, project: Path):
        payload = _payload(
            tool_name="Write",
            tool_input={"file_path": str(project / "a.sql"), "content": ""},
        )
        assert runner.run(HookEvent.PRE_TOOL_USE, payload).exit_code == EXIT_BLOCK
        assert runner.run(HookEvent.PRE_TOOL_USE, payload).exit_code == EXIT_ALLOW

    def test_advisory_for_suggest(self, runner: HookRunner, project: Path):
        outcome = runner.run(
            HookEvent.PRE_TOOL_USE,
            _payload(
                tool_name="Write",
                tool_input={"file_path": str(project / "src" / "ui" / "Button.tsx"), "content": "x"},
            ),
        )
        assert outcome.exit_code == EXIT_ALLOW
        assert "Skill reminders for src/ui/Button.tsx" in outcome.stdout
        assert "frontend-guidelines (suggest)" in outcome.stdout

    def test_non_file_tool(self, runner: HookRunner):
        outcome = runner.run(HookEvent.PRE_TOOL_USE, _payload(tool_name="Bash", tool_input={"command": "ls"}))
        assert outcome == HookOutcome()

    def test_skill_tool_records_usage(self, runner: HookRunner, store: SessionStore):
        runner.run(HookEvent.PRE_TOOL_USE, _payload(tool_name="Skill", tool_input={"command": "error-tracking"}))
        assert store.load("s1").has_used("error-tracking")


# ── Tests: malformed payloads ─────────────────────────────────────────


class TestBadPayloads:
    @pytest.mark.parametrize(
        "event,raw",
        [
            (HookEvent.PROMPT_SUBMIT, "{not json"),
            (HookEvent.PROMPT_SUBMIT, "[]"),
            (HookEvent.PROMPT_SUBMIT, json.dumps({"session_id": "s"})),
            (HookEvent.PRE_TOOL_USE, json.dumps({"tool_name": "Write", "tool_input": "nope"})),
            (HookEvent.PRE_TOOL_USE, json.dumps({"tool_input": {}})),
            (HookEvent.SKILL_USED, json.dumps({"tool_name": "Skill", "tool_input": {}})),
        ],
    )
    def test_never_blocks(self, runner: HookRunner, event: HookEvent, raw: str):
        outcome = runner.run(event, raw)
        assert outcome.exit_code == EXIT_ALLOW
        assert outcome.stdout == ""

    def test_missing_session_id_uses_default(self, runner: HookRunner, store: SessionStore):
        runner.run(HookEvent.SKILL_USED, json.dumps({"tool_name": "Skill", "tool_input": {"skill": "x"}}))
        assert store.load("default").has_used("x")


# ── Tests: post tool use and stop ─────────────────────────────────────


class TestStop:
    def _edit(self, runner: HookRunner, project: Path, rel: str, content: str) -> None:
        target = project / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        runner.run(
            HookEvent.POST_TOOL_USE,
            _payload(tool_name="Write", tool_input={"file_path": str(target), "content": content}),
        )

    def test_post_tool_use_records_edit(self, runner: HookRunner, project: Path, store: SessionStore):
        self._edit(runner, project, "src/a.py", "x = 1\n")
        assert store.load("s1").edited_files == ["src/a.py"]

    def test_reminder_for_risky_code(self, runner: HookRunner, project: Path):
        self._edit(
            runner,
            project,
            "src/api/users.ts",
            "export async function load() {\n  try { await fetch(url) } catch (e) {}\n}\n",
        )
        outcome = runner.run(HookEvent.STOP, _payload())
        assert outcome.exit_code == EXIT_ALLOW
        assert "ERROR HANDLING SELF-CHECK" in outcome.stdout
        assert "Backend changes (1 file(s)):" in outcome.stdout
        assert "src/api/users.ts: try/catch block, async operation, HTTP request" in outcome.stdout
        assert "SKIP_ERROR_REMINDER" in outcome.stdout

    def test_no_reminder_for_plain_code(self, runner: HookRunner, project: Path):
        self._edit(runner, project, "README.md", "# Title\n")
        assert runner.run(HookEvent.STOP, _payload()).stdout == ""

    def test_skip_env(self, rule_set: RuleSet, store: SessionStore, project: Path):
        runner = HookRunner(rule_set, store, project, env={"SKIP_ERROR_REMINDER": "1"})
        self._edit(runner, project, "src/api/a.ts", "await x()")
        assert runner.run(HookEvent.STOP, _payload()).stdout == ""

    def test_disabled_in_config(self, rule_set: RuleSet, store: SessionStore, project: Path):
        runner = HookRunner(rule_set, store, project, reminder=ReminderConfig(enabled=False), env={})
        self._edit(runner, project, "src/api/a.ts", "await x()")
        assert runner.run(HookEvent.STOP, _payload()).stdout == ""

    def test_stop_hook_active(self, runner: HookRunner, project: Path):
        self._edit(runner, project, "src/api/a.ts", "await x()")
        assert runner.run(HookEvent.STOP, _payload(stop_hook_active=True)).stdout == ""


class TestReminderHelpers:
    @pytest.mark.parametrize(
        "path,category",
        [
            ("prisma/schema.prisma", "database"),
            ("db/migrations/001.sql", "database"),
            ("src/controllers/user.ts", "backend"),
            ("server/index.js", "backend"),
            ("src/components/Button.tsx", "frontend"),
            ("app/page.jsx", "frontend"),
            ("scripts/build.sh", "other"),
        ],
    )
    def test_classify_path(self, path: str, category: str):
        assert classify_path(path) == category

    def test_analyze_file_findings(self):
        risk = analyze_file("src/db.ts", "const users = await prisma.user.findMany()")
        assert risk.findings == ["async operation", "database call"]

    def test_build_reminder_unreadable_files_skipped(self):
        assert build_reminder(["gone.ts"], lambda path: None) is None

    def test_build_reminder_truncates(self):
        files = [f"src/api/f{i}.ts" for i in range(5)]
        text = build_reminder(files, lambda path: "await x()", max_files=2)
        assert "... and 3 more" in text
