"""
Runtime rule types.

A validated RuleSetDoc is mapped once to these frozen types: closed enums
instead of strings, compiled regexes and globs instead of raw patterns.
The matcher only ever sees these.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping

from .globs import CompiledGlob, compile_glob
from .schema import FileTriggersDoc, PromptTriggersDoc, RuleDoc, RuleSetDoc, SkipConditionsDoc

__all__ = [
    "Enforcement",
    "FileTriggers",
    "Priority",
    "PromptTriggers",
    "Rule",
    "RuleSet",
    "RuleType",
    "SkipConditions",
]


class RuleType(Enum):
    GUARDRAIL = "guardrail"
    DOMAIN = "domain"


class Enforcement(Enum):
    BLOCK = "block"
    SUGGEST = "suggest"
    WARN = "warn"


class Priority(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """0 for critical up to 3 for low. Lower ranks sort first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


@dataclass(frozen=True)
class PromptTriggers:
    keywords: tuple[str, ...] = ()
    intent_patterns: tuple[re.Pattern[str], ...] = ()

    @classmethod
    def from_document(cls, doc: PromptTriggersDoc) -> "PromptTriggers":
        return cls(
            keywords=tuple(doc.keywords),
            intent_patterns=tuple(re.compile(p, re.IGNORECASE) for p in doc.intent_patterns),
        )


@dataclass(frozen=True)
class FileTriggers:
    """File triggers.

    content_patterns is None when the document has no (or an empty)
    contentPatterns list: the file content is then not examined at all.
    """

    path_patterns: tuple[CompiledGlob, ...]
    path_exclusions: tuple[CompiledGlob, ...] = ()
    content_patterns: tuple[re.Pattern[str], ...] | None = None
    create_only: bool = False

    @classmethod
    def from_document(cls, doc: FileTriggersDoc) -> "FileTriggers":
        return cls(
            path_patterns=tuple(compile_glob(p) for p in doc.path_patterns),
            path_exclusions=tuple(compile_glob(p) for p in doc.path_exclusions),
            content_patterns=(
                tuple(re.compile(p) for p in doc.content_patterns)
                if doc.content_patterns
                else None
            ),
            create_only=doc.create_only,
        )


@dataclass(frozen=True)
class SkipConditions:
    session_skill_used: bool = False
    file_markers: tuple[str, ...] = ()
    env_override: str | None = None

    @classmethod
    def from_document(cls, doc: SkipConditionsDoc | None) -> "SkipConditions":
        if doc is None:
            return cls()
        return cls(
            session_skill_used=doc.session_skill_used,
            file_markers=tuple(doc.file_markers),
            env_override=doc.env_override,
        )


@dataclass(frozen=True)
class Rule:
    """A single named rule.

    block_message is always set for Enforcement.BLOCK rules and is the raw
    template, still containing '{file_path}'.
    """

    name: str
    type: RuleType
    enforcement: Enforcement
    priority: Priority
    description: str = ""
    prompt_triggers: PromptTriggers | None = None
    file_triggers: FileTriggers | None = None
    block_message: str | None = None
    skip_conditions: SkipConditions = field(default_factory=SkipConditions)

    @property
    def is_guardrail(self) -> bool:
        return self.type is RuleType.GUARDRAIL

    @classmethod
    def from_document(cls, name: str, doc: RuleDoc) -> "Rule":
        return cls(
            name=name,
            type=RuleType(doc.type),
            enforcement=Enforcement(doc.enforcement),
            priority=Priority(doc.priority),
            description=doc.description,
            prompt_triggers=(
                PromptTriggers.from_document(doc.prompt_triggers)
                if doc.prompt_triggers
                else None
            ),
            file_triggers=(
                FileTriggers.from_document(doc.file_triggers) if doc.file_triggers else None
            ),
            block_message=doc.block_message,
            skip_conditions=SkipConditions.from_document(doc.skip_conditions),
        )


@dataclass(frozen=True, eq=False)
class RuleSet:
    """Read-only collection of rules keyed by name.

    Safe to share between sessions: nothing mutates it after construction.
    """

    rules: Mapping[str, Rule] = field(default_factory=lambda: MappingProxyType({}))
    version: str = "1.0"
    description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.rules, MappingProxyType):
            object.__setattr__(self, "rules", MappingProxyType(dict(self.rules)))

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules.values())

    def __contains__(self, name: object) -> bool:
        return name in self.rules

    def get(self, name: str) -> Rule | None:
        return self.rules.get(name)

    @property
    def names(self) -> list[str]:
        return sorted(self.rules)

    @classmethod
    def empty(cls) -> "RuleSet":
        return cls()

    @classmethod
    def from_rules(cls, rules: list[Rule], version: str = "1.0") -> "RuleSet":
        return cls(rules={rule.name: rule for rule in rules}, version=version)

    @classmethod
    def from_document(cls, doc: RuleSetDoc) -> "RuleSet":
        return cls(
            rules={name: Rule.from_document(name, rule) for name, rule in doc.skills.items()},
            version=doc.version,
            description=doc.description,
        )
