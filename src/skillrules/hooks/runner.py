"""
Hook Runner: executes the host hooks on top of the rule matcher.

Each hook receives the host's JSON payload on stdin and answers with a
HookOutcome. Exit code protocol of the host:
- Exit 0 = ALLOW (stdout may be added to the assistant's context)
- Exit 2 = BLOCK (stderr is the reason, shown to the assistant)

Invariants:
- A malformed payload never blocks: it is logged and answered with exit 0.
- Session state is loaded from and saved to the SessionStore around each
  event; the matcher itself never touches it.
"""

import json
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import structlog

from ..config.schema import ReminderConfig
from ..core.matcher import blocking_matches, match_file_event, match_prompt
from ..core.session import SessionStore
from ..rules.models import RuleSet
from .files import display_path, file_event_from_tool
from .reminder import build_reminder, file_reader
from .render import format_activation_check, format_advisory, format_block

logger = structlog.get_logger()

__all__ = [
    "EXIT_ALLOW",
    "EXIT_BLOCK",
    "HookEvent",
    "HookOutcome",
    "HookPayloadError",
    "HookRunner",
]

EXIT_ALLOW = 0
EXIT_BLOCK = 2

DEFAULT_SESSION_ID = "default"


class HookEvent(Enum):
    """Host events handled by skillrules."""

    PROMPT_SUBMIT = "prompt-submit"
    PRE_TOOL_USE = "pre-tool-use"
    POST_TOOL_USE = "post-tool-use"
    SKILL_USED = "skill-used"
    STOP = "stop"


@dataclass(frozen=True)
class HookOutcome:
    exit_code: int = EXIT_ALLOW
    stdout: str = ""
    stderr: str = ""

    @property
    def blocked(self) -> bool:
        return self.exit_code == EXIT_BLOCK


class HookPayloadError(ValueError):
    """The payload on stdin is not what the hook expects."""


def parse_payload(raw: str) -> dict[str, Any]:
    try:
        payload = json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError as e:
        raise HookPayloadError(f"invalid JSON payload: {e.msg}") from e
    if not isinstance(payload, dict):
        raise HookPayloadError("payload must be a JSON object")
    return payload


def _require_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise HookPayloadError(f"payload field '{key}' must be a string")
    return value


def _tool_input(payload: dict[str, Any]) -> dict[str, Any]:
    tool_input = payload.get("tool_input") or {}
    if not isinstance(tool_input, dict):
        raise HookPayloadError("payload field 'tool_input' must be an object")
    return tool_input


class HookRunner:
    """Answers host hook events for one project."""

    def __init__(
        self,
        rule_set: RuleSet,
        store: SessionStore,
        project_dir: Path,
        reminder: ReminderConfig | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            rule_set: Validated rule set.
            store: Where per-session state is persisted.
            project_dir: Project root; file paths are shown relative to it.
            reminder: Stop hook configuration.
            env: Environment for envOverride and skip lookups (default: os.environ).
        """
        self.rule_set = rule_set
        self.store = store
        self.project_dir = Path(project_dir)
        self.reminder = reminder or ReminderConfig()
        self.env = os.environ if env is None else env
        self.log = logger.bind(component="hooks")

    def run(self, event: HookEvent, raw_payload: str) -> HookOutcome:
        """Parse raw_payload and dispatch it to the handler for event."""
        handlers = {
            HookEvent.PROMPT_SUBMIT: self.prompt_submit,
            HookEvent.PRE_TOOL_USE: self.pre_tool_use,
            HookEvent.POST_TOOL_USE: self.post_tool_use,
            HookEvent.SKILL_USED: self.skill_used,
            HookEvent.STOP: self.stop,
        }
        try:
            payload = parse_payload(raw_payload)
            return handlers[event](payload)
        except HookPayloadError as e:
            self.log.warning("hook.bad_payload", hook_event=event.value, error=str(e))
            return HookOutcome()

    def _session_id(self, payload: dict[str, Any]) -> str:
        session_id = payload.get("session_id")
        return session_id if isinstance(session_id, str) and session_id else DEFAULT_SESSION_ID

    def prompt_submit(self, payload: dict[str, Any]) -> HookOutcome:
        """UserPromptSubmit: suggest the skills relevant to the prompt."""
        prompt = _require_str(payload, "prompt")
        session = self.store.load(self._session_id(payload))
        matches = match_prompt(prompt, self.rule_set, session, env=self.env)
        self.log.info(
            "hook.prompt_matched",
            session_id=session.session_id,
            rules=[m.rule_name for m in matches],
        )
        if not matches:
            return HookOutcome()
        return HookOutcome(stdout=format_activation_check(matches))

    def pre_tool_use(self, payload: dict[str, Any]) -> HookOutcome:
        """PreToolUse: block or advise on file writes."""
        tool_name = _require_str(payload, "tool_name")
        if tool_name == "Skill":
            return self.skill_used(payload)

        event = file_event_from_tool(tool_name, _tool_input(payload), self.project_dir)
        if event is None:
            return HookOutcome()

        session = self.store.load(self._session_id(payload))
        matches = match_file_event(
            event.path,
            event.content,
            event.is_create,
            self.rule_set,
            session,
            env=self.env,
        )
        blocking = blocking_matches(matches)
        if blocking:
            # Shown once: the next attempt goes through if the rule skips used skills
            for match in blocking:
                session.record_used(match.rule_name)
            self.store.save(session)
            self.log.info(
                "hook.blocked",
                session_id=session.session_id,
                path=event.path,
                rules=[m.rule_name for m in blocking],
            )
            return HookOutcome(exit_code=EXIT_BLOCK, stderr=format_block(blocking))

        if matches:
            self.log.info(
                "hook.advised",
                session_id=session.session_id,
                path=event.path,
                rules=[m.rule_name for m in matches],
            )
            return HookOutcome(stdout=format_advisory(event.path, matches))
        return HookOutcome()

    def post_tool_use(self, payload: dict[str, Any]) -> HookOutcome:
        """PostToolUse: remember which files the session edited."""
        tool_name = _require_str(payload, "tool_name")
        if tool_name == "Skill":
            return self.skill_used(payload)
        file_path = _tool_input(payload).get("file_path")
        if tool_name not in ("Write", "Edit", "MultiEdit") or not isinstance(file_path, str):
            return HookOutcome()

        session = self.store.load(self._session_id(payload))
        session.record_edit(display_path(file_path, self.project_dir))
        self.store.save(session)
        return HookOutcome()

    def skill_used(self, payload: dict[str, Any]) -> HookOutcome:
        """Skill tool invocation: mark the skill as used for the session."""
        tool_input = _tool_input(payload)
        name = tool_input.get("skill") or tool_input.get("command")
        if not isinstance(name, str) or not name:
            raise HookPayloadError("Skill tool input has no skill name")

        session = self.store.load(self._session_id(payload))
        session.record_used(name)
        self.store.save(session)
        self.log.info("hook.skill_used", session_id=session.session_id, skill=name)
        return HookOutcome()

    def stop(self, payload: dict[str, Any]) -> HookOutcome:
        """Stop: error-handling self-check for the files edited this session."""
        if not self.reminder.enabled or self.env.get(self.reminder.skip_env):
            return HookOutcome()
        if payload.get("stop_hook_active"):
            return HookOutcome()

        session = self.store.load(self._session_id(payload))
        text = build_reminder(
            session.edited_files,
            file_reader(self.project_dir),
            skip_env=self.reminder.skip_env,
            max_files=self.reminder.max_files,
        )
        if text is None:
            return HookOutcome()
        self.log.info("hook.reminder", session_id=session.session_id, files=len(session.edited_files))
        return HookOutcome(stdout=text)
