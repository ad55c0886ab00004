"""
Pydantic models for the skill-rules.json document.

These models only describe and validate the JSON as written (camelCase keys,
string enums, raw patterns). Every regex and glob is test-compiled here so a
malformed pattern is rejected at load time with its exact location; the
runtime types in models.py are built from a validated document.
"""

import re
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, Field, ValidationInfo, field_validator

from .globs import compile_glob


def _check_regex(pattern: str) -> str:
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"invalid regular expression {pattern!r}: {e}") from e
    return pattern


def _check_glob(pattern: str) -> str:
    compile_glob(pattern)
    return pattern


NonEmptyStr = Annotated[str, Field(min_length=1)]
RegexStr = Annotated[str, AfterValidator(_check_regex)]
GlobStr = Annotated[str, AfterValidator(_check_glob)]


class PromptTriggersDoc(BaseModel):
    """Triggers evaluated against the text of a user prompt."""

    keywords: list[NonEmptyStr] = Field(default_factory=list)
    intent_patterns: list[RegexStr] = Field(default_factory=list, alias="intentPatterns")

    model_config = {"extra": "forbid", "populate_by_name": True}


class FileTriggersDoc(BaseModel):
    """Triggers evaluated against a file event (path + content)."""

    path_patterns: list[GlobStr] = Field(alias="pathPatterns", min_length=1)
    path_exclusions: list[GlobStr] = Field(default_factory=list, alias="pathExclusions")
    content_patterns: list[RegexStr] | None = Field(default=None, alias="contentPatterns")
    create_only: bool = Field(default=False, alias="createOnly")

    model_config = {"extra": "forbid", "populate_by_name": True}


class SkipConditionsDoc(BaseModel):
    """Conditions that suppress a rule even when its triggers fire."""

    session_skill_used: bool = Field(default=False, alias="sessionSkillUsed")
    file_markers: list[NonEmptyStr] = Field(default_factory=list, alias="fileMarkers")
    env_override: NonEmptyStr | None = Field(default=None, alias="envOverride")

    model_config = {"extra": "forbid", "populate_by_name": True}


class RuleDoc(BaseModel):
    """One entry of the `skills` object."""

    type: Literal["guardrail", "domain"]
    enforcement: Literal["block", "suggest", "warn"]
    priority: Literal["critical", "high", "medium", "low"]
    description: str = ""
    prompt_triggers: PromptTriggersDoc | None = Field(default=None, alias="promptTriggers")
    file_triggers: FileTriggersDoc | None = Field(default=None, alias="fileTriggers")
    block_message: str | None = Field(
        default=None,
        alias="blockMessage",
        validate_default=True,
        description="Shown when a block rule fires. '{file_path}' is replaced by the path.",
    )
    skip_conditions: SkipConditionsDoc | None = Field(default=None, alias="skipConditions")

    model_config = {"extra": "forbid", "populate_by_name": True}

    @field_validator("block_message")
    @classmethod
    def _required_for_block(cls, v: str | None, info: ValidationInfo) -> str | None:
        if info.data.get("enforcement") == "block" and not (v or "").strip():
            raise ValueError("blockMessage is required when enforcement is 'block'")
        return v


class RuleSetDoc(BaseModel):
    """The whole skill-rules.json document.

    Unknown top-level keys (notes, $schema, ...) are documentation and are
    ignored; unknown keys inside a rule are rejected.
    """

    version: str = "1.0"
    description: str = ""
    skills: dict[str, RuleDoc]

    model_config = {"extra": "ignore", "coerce_numbers_to_str": True}

    @field_validator("skills")
    @classmethod
    def _names_not_blank(cls, v: dict[str, RuleDoc]) -> dict[str, RuleDoc]:
        for name in v:
            if not name.strip():
                raise ValueError("rule names must not be empty")
        return v
