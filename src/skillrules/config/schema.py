"""
Pydantic models for skillrules configuration.

Covers where the rule set and session state live, the error-handling
reminder and logging. The rule set document itself has its own schema in
skillrules.rules.schema.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class LoggingConfig(BaseModel):
    """Logging system configuration."""

    level: Literal["debug", "info", "warn", "error"] = "warn"
    file: Path | None = None
    verbose: int = 0

    model_config = {"extra": "forbid"}


class SessionsConfig(BaseModel):
    """Where hook processes keep per-session state."""

    state_dir: Path = Field(
        default=Path(".claude/hooks/state"),
        description="Directory for <session_id>.json files. Relative to project_dir.",
    )
    retention_days: int = Field(
        default=7,
        ge=1,
        description="Sessions not updated for this many days are removed by 'sessions cleanup'.",
    )

    model_config = {"extra": "forbid"}


class ReminderConfig(BaseModel):
    """Error-handling reminder shown by the stop hook."""

    enabled: bool = True
    skip_env: str = Field(
        default="SKIP_ERROR_REMINDER",
        description="If this environment variable is non-empty the reminder is skipped.",
    )
    max_files: int = Field(
        default=20,
        ge=1,
        description="Edited files listed at most per area in the reminder.",
    )

    model_config = {"extra": "forbid"}


class AppConfig(BaseModel):
    """Root configuration."""

    project_dir: Path = Path(".")
    rules_file: Path = Field(
        default=Path(".claude/skills/skill-rules.json"),
        description="skill-rules.json document. Relative to project_dir.",
    )
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    reminder: ReminderConfig = Field(default_factory=ReminderConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"extra": "forbid"}

    def resolve(self, path: Path) -> Path:
        """Resolve a configured path against project_dir."""
        path = Path(path).expanduser()
        return path if path.is_absolute() else self.project_dir / path

    @property
    def rules_path(self) -> Path:
        return self.resolve(self.rules_file)

    @property
    def state_path(self) -> Path:
        return self.resolve(self.sessions.state_dir)
