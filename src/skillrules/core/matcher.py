"""
Rule Matcher: decides which rules apply to a prompt or a file event.

Two entry points:
- match_prompt: keywords (case-insensitive substring) or intent regexes
  against free-form user text.
- match_file_event: path globs, exclusions, optional content regexes and
  the create-only flag against a file write.

Invariants:
- Matching never mutates the RuleSet or the session; recording a skill as
  used is the caller's job.
- Every match is returned; precedence between guardrails and domain rules
  is left to the caller (see blocking_matches).
- Results are sorted by priority (critical first), then rule name.
- A rule that fails while being evaluated is skipped with a warning; the
  remaining rules are still evaluated.
"""

import os
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping

import structlog

from ..rules.models import Enforcement, Priority, Rule, RuleSet, RuleType
from .session import SessionContext

logger = structlog.get_logger()

__all__ = [
    "Match",
    "blocking_matches",
    "match_file_event",
    "match_prompt",
    "render_block_message",
]

FILE_PATH_PLACEHOLDER = "{file_path}"

# Errors a single rule may raise while evaluated; anything else is a bug
_RULE_ERRORS = (re.error, RecursionError, ValueError)


@dataclass(frozen=True)
class Match:
    """A rule that applies, and why.

    Attributes:
        rule_name: Name of the matching rule.
        rule_type: guardrail or domain.
        enforcement: What the caller should do.
        priority: Priority of the rule.
        trigger: What fired: 'keyword', 'intent', 'path' or 'content'.
        detail: The keyword, regex or glob that fired.
        description: Rule description, if any.
        message: Rendered block message; only set for block rules on file events.
    """

    rule_name: str
    rule_type: RuleType
    enforcement: Enforcement
    priority: Priority
    trigger: str
    detail: str
    description: str = ""
    message: str | None = None

    @property
    def is_blocking(self) -> bool:
        return self.enforcement is Enforcement.BLOCK

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule": self.rule_name,
            "type": self.rule_type.value,
            "enforcement": self.enforcement.value,
            "priority": self.priority.value,
            "trigger": self.trigger,
            "detail": self.detail,
            "description": self.description,
            "message": self.message,
        }


def render_block_message(template: str, file_path: str) -> str:
    """Replace every literal '{file_path}' in template with file_path."""
    return template.replace(FILE_PATH_PLACEHOLDER, file_path)


def blocking_matches(matches: list[Match]) -> list[Match]:
    """The block matches among matches, keeping their order."""
    return [m for m in matches if m.is_blocking]


def _skip_reason(
    rule: Rule, session: SessionContext | None, env: Mapping[str, str]
) -> str | None:
    skip = rule.skip_conditions
    if skip.session_skill_used and session is not None and session.has_used(rule.name):
        return "session_skill_used"
    if skip.env_override and env.get(skip.env_override):
        return "env_override"
    return None


def _sort_key(match: Match) -> tuple[int, str]:
    return (match.priority.rank, match.rule_name)


def _evaluate(
    rule_set: RuleSet,
    check: Callable[[Rule], Match | None],
    session: SessionContext | None,
    env: Mapping[str, str],
    kind: str,
) -> list[Match]:
    matches: list[Match] = []
    for rule in rule_set:
        try:
            match = check(rule)
        except _RULE_ERRORS as e:
            logger.warning("matcher.rule_error", kind=kind, rule=rule.name, error=str(e))
            continue
        if match is None:
            continue
        reason = _skip_reason(rule, session, env)
        if reason:
            logger.debug("matcher.rule_skipped", kind=kind, rule=rule.name, reason=reason)
            continue
        matches.append(match)
    matches.sort(key=_sort_key)
    logger.debug("matcher.done", kind=kind, matched=[m.rule_name for m in matches])
    return matches


def match_prompt(
    text: str,
    rule_set: RuleSet,
    session: SessionContext | None = None,
    env: Mapping[str, str] | None = None,
) -> list[Match]:
    """Rules whose prompt triggers fire for text.

    Args:
        text: The user prompt.
        rule_set: Validated rule set.
        session: Current session, None for an empty one.
        env: Environment for envOverride lookups (default: os.environ).

    Returns:
        Matches ordered by priority, then rule name.
    """
    env = os.environ if env is None else env
    folded = text.casefold()

    def check(rule: Rule) -> Match | None:
        triggers = rule.prompt_triggers
        if triggers is None:
            return None
        for keyword in triggers.keywords:
            if keyword.casefold() in folded:
                return _make_match(rule, "keyword", keyword)
        for pattern in triggers.intent_patterns:
            if pattern.search(text):
                return _make_match(rule, "intent", pattern.pattern)
        return None

    return _evaluate(
        rule_set,
        check,
        session,
        env,
        kind="prompt",
    )


def match_file_event(
    path: str,
    content: str | None,
    is_create: bool,
    rule_set: RuleSet,
    session: SessionContext | None = None,
    env: Mapping[str, str] | None = None,
) -> list[Match]:
    """Rules whose file triggers fire for a write to path.

    Args:
        path: Path of the file being written, as the caller wants it shown.
        content: Content being written (None is treated as empty).
        is_create: True if the file is being created.
        rule_set: Validated rule set.
        session: Current session, None for an empty one.
        env: Environment for envOverride lookups (default: os.environ).

    Returns:
        Matches ordered by priority, then rule name. Block matches carry
        the rendered block message.
    """
    env = os.environ if env is None else env
    content = content or ""

    def check(rule: Rule) -> Match | None:
        triggers = rule.file_triggers
        if triggers is None:
            return None
        if triggers.create_only and not is_create:
            return None
        glob = next((g for g in triggers.path_patterns if g.matches(path)), None)
        if glob is None:
            return None
        if any(g.matches(path) for g in triggers.path_exclusions):
            return None
        if any(marker in content for marker in rule.skip_conditions.file_markers):
            logger.debug("matcher.rule_skipped", kind="file", rule=rule.name, reason="file_marker")
            return None
        if triggers.content_patterns is None:
            return _make_match(rule, "path", glob.pattern, path)
        for pattern in triggers.content_patterns:
            if pattern.search(content):
                return _make_match(rule, "content", pattern.pattern, path)
        return None

    return _evaluate(
        rule_set,
        check,
        session,
        env,
        kind="file",
    )


def _make_match(rule: Rule, trigger: str, detail: str, file_path: str | None = None) -> Match:
    message = None
    if file_path is not None and rule.enforcement is Enforcement.BLOCK and rule.block_message:
        message = render_block_message(rule.block_message, file_path)
    return Match(
        rule_name=rule.name,
        rule_type=rule.type,
        enforcement=rule.enforcement,
        priority=rule.priority,
        trigger=trigger,
        detail=detail,
        description=rule.description,
        message=message,
    )
