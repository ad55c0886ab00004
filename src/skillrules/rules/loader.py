"""
Rule set loader.

Load pipeline:
1. Parse JSON (duplicate keys in `skills` are detected, not silently merged)
2. Validate structure, enums, regexes and globs with pydantic
3. Map to the frozen runtime types

Any failure raises RuleSetValidationError listing every issue found, each
naming the rule and field. RuleSetStore keeps the previously installed set
active when a reload fails.
"""

import json
import threading
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from .errors import RuleIssue, RuleSetNotFoundError, RuleSetValidationError
from .models import RuleSet
from .schema import FileTriggersDoc, PromptTriggersDoc, RuleDoc, RuleSetDoc, SkipConditionsDoc

logger = structlog.get_logger()

# Errors raised while validating a default value are located by attribute
# name, not by the document key; map them back.
_DOCUMENT_KEYS = {
    name: info.alias
    for model in (RuleDoc, PromptTriggersDoc, FileTriggersDoc, SkipConditionsDoc)
    for name, info in model.model_fields.items()
    if info.alias
}

__all__ = [
    "RuleSetStore",
    "build_rule_set",
    "load_rule_set",
    "parse_rule_set",
]


class _JsonObject(dict):
    """dict that remembers which keys appeared more than once in the source."""

    duplicate_keys: tuple[str, ...] = ()


def _object_pairs(pairs: list[tuple[str, Any]]) -> _JsonObject:
    obj = _JsonObject(pairs)
    seen: set[str] = set()
    duplicates: list[str] = []
    for key, _ in pairs:
        if key in seen and key not in duplicates:
            duplicates.append(key)
        seen.add(key)
    obj.duplicate_keys = tuple(duplicates)
    return obj


def _format_loc(loc: tuple[int | str, ...]) -> str:
    """('fileTriggers', 'pathPatterns', 0) -> 'fileTriggers.pathPatterns[0]'."""
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out


def _clean_message(msg: str) -> str:
    prefix = "Value error, "
    return msg[len(prefix):] if msg.startswith(prefix) else msg


def _issues_from_validation(exc: ValidationError) -> list[RuleIssue]:
    issues: list[RuleIssue] = []
    for err in exc.errors():
        loc = tuple(err["loc"])
        if len(loc) >= 2 and loc[0] == "skills":
            rule_name: str | None = str(loc[1])
            rest = tuple(
                _DOCUMENT_KEYS.get(part, part) if isinstance(part, str) else part
                for part in loc[2:]
            )
        else:
            rule_name = None
            rest = loc
        issues.append(
            RuleIssue(rule_name=rule_name, field=_format_loc(rest), message=_clean_message(err["msg"]))
        )
    return issues


def build_rule_set(data: Any, source: Path | None = None) -> RuleSet:
    """Validate an already-decoded document and build the RuleSet.

    Args:
        data: Decoded JSON document (usually a dict).
        source: Where the document came from, for error messages.

    Raises:
        RuleSetValidationError: The document does not conform.
    """
    issues: list[RuleIssue] = []
    skills = data.get("skills") if isinstance(data, dict) else None
    for name in getattr(skills, "duplicate_keys", ()):
        issues.append(RuleIssue(rule_name=name, field="", message="duplicate rule name"))

    try:
        doc = RuleSetDoc.model_validate(data)
    except ValidationError as e:
        issues.extend(_issues_from_validation(e))
        doc = None

    if issues or doc is None:
        raise RuleSetValidationError(issues, source=source)

    rule_set = RuleSet.from_document(doc)
    logger.info(
        "rules.loaded",
        source=str(source) if source else None,
        count=len(rule_set),
        version=rule_set.version,
    )
    return rule_set


def parse_rule_set(text: str, source: Path | None = None) -> RuleSet:
    """Parse and validate a skill-rules.json document from a string."""
    try:
        data = json.loads(text, object_pairs_hook=_object_pairs)
    except json.JSONDecodeError as e:
        issue = RuleIssue(
            rule_name=None,
            field="",
            message=f"invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})",
        )
        raise RuleSetValidationError([issue], source=source) from e
    return build_rule_set(data, source=source)


def load_rule_set(path: Path) -> RuleSet:
    """Load a skill-rules.json document from disk.

    Raises:
        RuleSetNotFoundError: The file does not exist.
        RuleSetValidationError: The document cannot be read as UTF-8 or
            does not conform.
    """
    path = Path(path)
    if not path.is_file():
        raise RuleSetNotFoundError(path)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        issue = RuleIssue(
            rule_name=None,
            field="",
            message=f"not valid UTF-8: byte {e.object[e.start]:#04x} at offset {e.start}",
        )
        raise RuleSetValidationError([issue], source=path) from e
    except OSError as e:
        issue = RuleIssue(rule_name=None, field="", message=f"cannot read file: {e.strerror or e}")
        raise RuleSetValidationError([issue], source=path) from e
    return parse_rule_set(text, source=path)


class RuleSetStore:
    """Holds the active rule set for a host process.

    Starts empty. A reload replaces the active set only if the new document
    validates; otherwise the previous set stays in place and the error is
    raised to the caller.
    """

    def __init__(self, rule_set: RuleSet | None = None) -> None:
        self._rule_set = rule_set or RuleSet.empty()
        self._source: Path | None = None
        self._lock = threading.Lock()
        self.log = logger.bind(component="rules")

    @property
    def current(self) -> RuleSet:
        return self._rule_set

    @property
    def source(self) -> Path | None:
        return self._source

    def reload(self, path: Path) -> RuleSet:
        try:
            rule_set = load_rule_set(path)
        except (RuleSetNotFoundError, RuleSetValidationError) as e:
            self.log.warning(
                "rules.reload_failed",
                path=str(path),
                error=str(e),
                kept=len(self._rule_set),
            )
            raise
        with self._lock:
            self._rule_set = rule_set
            self._source = Path(path)
        return rule_set
