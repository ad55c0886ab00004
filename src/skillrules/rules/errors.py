"""
Errors raised while loading a rule set.

Every load-time problem is reported as a RuleIssue that names the offending
rule and field, so a broken skill-rules.json can be fixed without guessing.
"""

from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "GlobSyntaxError",
    "RuleIssue",
    "RuleSetNotFoundError",
    "RuleSetValidationError",
    "SkillRulesError",
]


class SkillRulesError(Exception):
    """Base error for skillrules."""


class GlobSyntaxError(ValueError):
    """A glob pattern could not be compiled."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"invalid glob {pattern!r}: {reason}")


@dataclass(frozen=True)
class RuleIssue:
    """A single validation problem.

    Attributes:
        rule_name: Rule the problem belongs to, None for document-level issues.
        field: Dotted path inside the rule (e.g. 'fileTriggers.pathPatterns[0]').
        message: Human readable description.
    """

    rule_name: str | None
    field: str
    message: str

    def __str__(self) -> str:
        location = ".".join(p for p in (self.rule_name, self.field) if p)
        return f"{location or '<document>'}: {self.message}"


class RuleSetValidationError(SkillRulesError):
    """The rule set document is not valid. Nothing was installed."""

    def __init__(self, issues: list[RuleIssue], source: Path | None = None) -> None:
        self.issues = issues
        self.source = source
        where = f" ({source})" if source else ""
        lines = "\n".join(f"  - {issue}" for issue in issues)
        super().__init__(f"Invalid rule set{where}:\n{lines}")


class RuleSetNotFoundError(SkillRulesError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Rule set not found: {path}")
