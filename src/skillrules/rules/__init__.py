"""
Rule sets: the skill-rules.json document, its validation and runtime types.
"""

from .errors import (
    GlobSyntaxError,
    RuleIssue,
    RuleSetNotFoundError,
    RuleSetValidationError,
    SkillRulesError,
)
from .globs import CompiledGlob, compile_glob, normalize_path
from .loader import RuleSetStore, build_rule_set, load_rule_set, parse_rule_set
from .models import (
    Enforcement,
    FileTriggers,
    Priority,
    PromptTriggers,
    Rule,
    RuleSet,
    RuleType,
    SkipConditions,
)

__all__ = [
    "CompiledGlob",
    "Enforcement",
    "FileTriggers",
    "GlobSyntaxError",
    "Priority",
    "PromptTriggers",
    "Rule",
    "RuleIssue",
    "RuleSet",
    "RuleSetNotFoundError",
    "RuleSetStore",
    "RuleSetValidationError",
    "RuleType",
    "SkillRulesError",
    "SkipConditions",
    "build_rule_set",
    "compile_glob",
    "load_rule_set",
    "normalize_path",
    "parse_rule_set",
]
