"""
Main CLI for skillrules using Click.

Two kinds of commands:
- Interactive: validate, rules, match, sessions. Log to stderr per -v.
- Hooks: `skillrules hook <event>` reads the host payload on stdin and
  answers on stdout/stderr with the host's exit code protocol. Hooks never
  log to the console; use --log-file to trace them.
"""

import json
import sys
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from .config.loader import load_config
from .config.schema import AppConfig
from .core.matcher import Match, match_file_event, match_prompt
from .core.session import SessionStore
from .hooks.runner import HookEvent, HookRunner
from .logging import configure_logging
from .rules.errors import RuleSetNotFoundError, RuleSetValidationError
from .rules.loader import load_rule_set
from .rules.models import RuleSet

# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILED = 1
EXIT_BLOCKED = 2
EXIT_CONFIG_ERROR = 3

_VERSION = "0.3.0"


def _load_app_config(ctx: click.Context, quiet: bool = False) -> AppConfig:
    """Load the configuration from the group options and configure logging."""
    opts: dict[str, Any] = ctx.obj or {}
    try:
        config = load_config(config_path=opts.get("config"), cli_args=opts)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)
    except (ValidationError, ValueError) as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)
    configure_logging(config.logging, quiet=quiet)
    return config


def _load_rules_or_exit(path: Path) -> RuleSet:
    try:
        return load_rule_set(path)
    except RuleSetNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)
    except RuleSetValidationError as e:
        click.echo(str(e), err=True)
        sys.exit(EXIT_CONFIG_ERROR)


def _echo_matches(matches: list[Match], as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps([m.to_dict() for m in matches], indent=2))
        return
    if not matches:
        click.echo("No rules matched")
        return
    for m in matches:
        click.echo(
            f"{m.rule_name}  [{m.rule_type.value}/{m.enforcement.value}/{m.priority.value}]"
            f"  {m.trigger}: {m.detail}"
        )
        if m.message:
            click.echo(f"    {m.message}")


@click.group()
@click.version_option(version=_VERSION, prog_name="skillrules")
@click.option(
    "-c",
    "--config",
    type=click.Path(path_type=Path),
    help="Path to a YAML configuration file",
)
@click.option(
    "--rules",
    "rules_file",
    type=click.Path(path_type=Path),
    help="skill-rules.json to use (default: .claude/skills/skill-rules.json)",
)
@click.option(
    "--project-dir",
    type=click.Path(path_type=Path),
    help="Project root (default: $CLAUDE_PROJECT_DIR or the current directory)",
)
@click.option(
    "--state-dir",
    type=click.Path(path_type=Path),
    help="Directory for per-session state",
)
@click.option("--log-file", type=click.Path(path_type=Path), help="Write JSON logs to this file")
@click.option("-v", "--verbose", count=True, help="Increase console log detail (-v, -vv)")
@click.pass_context
def main(ctx: click.Context, **kwargs: Any) -> None:
    """skillrules - skill activation rules and guardrails for coding assistants.

    Matches prompts and file edits against a skill-rules.json document.
    """
    ctx.obj = {k: v for k, v in kwargs.items() if v is not None}
    if not kwargs.get("verbose"):
        ctx.obj.pop("verbose", None)


@main.command()
@click.argument("rules_path", required=False, type=click.Path(path_type=Path))
@click.pass_context
def validate(ctx: click.Context, rules_path: Path | None) -> None:
    """Validate a skill-rules.json document."""
    config = _load_app_config(ctx)
    path = rules_path or config.rules_path
    rule_set = _load_rules_or_exit(path)
    guardrails = sum(1 for r in rule_set if r.is_guardrail)
    click.echo(f"Valid rule set: {path}")
    click.echo(f"  Version: {rule_set.version}")
    click.echo(f"  Rules: {len(rule_set)} ({guardrails} guardrails, {len(rule_set) - guardrails} domain)")


@main.command("rules")
@click.pass_context
def rules_cmd(ctx: click.Context) -> None:
    """List the rules of the configured rule set."""
    config = _load_app_config(ctx)
    rule_set = _load_rules_or_exit(config.rules_path)
    if not len(rule_set):
        click.echo("No rules defined")
        return
    for name in rule_set.names:
        rule = rule_set.rules[name]
        triggers = []
        if rule.prompt_triggers:
            triggers.append("prompt")
        if rule.file_triggers:
            triggers.append("file")
        click.echo(
            f"{name:<30} {rule.type.value:<10} {rule.enforcement.value:<8} "
            f"{rule.priority.value:<9} {','.join(triggers) or '-'}"
        )


@main.group()
def match() -> None:
    """Try the rule set against a prompt or a file."""


@match.command("prompt")
@click.argument("text")
@click.option("--session", "session_id", default=None, help="Session whose used skills apply")
@click.option("--json", "as_json", is_flag=True, help="JSON output")
@click.pass_context
def match_prompt_cmd(ctx: click.Context, text: str, session_id: str | None, as_json: bool) -> None:
    """Show the rules a prompt would trigger."""
    config = _load_app_config(ctx)
    rule_set = _load_rules_or_exit(config.rules_path)
    session = SessionStore(config.state_path).load(session_id) if session_id else None
    _echo_matches(match_prompt(text, rule_set, session), as_json)


@match.command("file")
@click.argument("path")
@click.option(
    "--content-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read the content from this file (default: PATH itself, if it exists)",
)
@click.option("--create", "is_create", is_flag=True, help="Treat the event as a file creation")
@click.option("--session", "session_id", default=None, help="Session whose used skills apply")
@click.option("--json", "as_json", is_flag=True, help="JSON output")
@click.pass_context
def match_file_cmd(
    ctx: click.Context,
    path: str,
    content_file: Path | None,
    is_create: bool,
    session_id: str | None,
    as_json: bool,
) -> None:
    """Show the rules a write to PATH would trigger. Exits 2 if one blocks."""
    config = _load_app_config(ctx)
    rule_set = _load_rules_or_exit(config.rules_path)
    session = SessionStore(config.state_path).load(session_id) if session_id else None

    source = content_file or config.resolve(Path(path))
    content = source.read_text(encoding="utf-8") if source.is_file() else ""
    matches = match_file_event(path, content, is_create, rule_set, session)
    _echo_matches(matches, as_json)
    if any(m.is_blocking for m in matches):
        sys.exit(EXIT_BLOCKED)


@main.command()
@click.argument("event", type=click.Choice([e.value for e in HookEvent]))
@click.pass_context
def hook(ctx: click.Context, event: str) -> None:
    """Run a host hook. Reads the JSON payload from stdin."""
    config = _load_app_config(ctx, quiet=True)
    hook_event = HookEvent(event)

    rule_set = RuleSet.empty()
    if hook_event in (HookEvent.PROMPT_SUBMIT, HookEvent.PRE_TOOL_USE):
        try:
            rule_set = load_rule_set(config.rules_path)
        except RuleSetNotFoundError:
            # No rule set in this project: nothing to match
            pass
        except RuleSetValidationError as e:
            click.echo(f"skillrules: {e}", err=True)
            sys.exit(EXIT_FAILED)

    runner = HookRunner(
        rule_set=rule_set,
        store=SessionStore(config.state_path),
        project_dir=config.project_dir,
        reminder=config.reminder,
    )
    outcome = runner.run(hook_event, sys.stdin.read())
    if outcome.stdout:
        click.echo(outcome.stdout)
    if outcome.stderr:
        click.echo(outcome.stderr, err=True)
    sys.exit(outcome.exit_code)


@main.group()
def sessions() -> None:
    """Inspect and clean up per-session state."""


@sessions.command("list")
@click.pass_context
def sessions_list(ctx: click.Context) -> None:
    """List stored sessions."""
    config = _load_app_config(ctx)
    stored = SessionStore(config.state_path).list_sessions()
    if not stored:
        click.echo("No sessions stored")
        return
    for session in stored:
        click.echo(
            f"{session.session_id}  skills={','.join(sorted(session.used_skills)) or '-'}"
            f"  edited={len(session.edited_files)}"
        )


@sessions.command("cleanup")
@click.option(
    "--older-than-days",
    type=click.IntRange(min=0),
    default=None,
    help="Remove sessions older than this (default: sessions.retention_days)",
)
@click.pass_context
def sessions_cleanup(ctx: click.Context, older_than_days: int | None) -> None:
    """Remove stale session state."""
    config = _load_app_config(ctx)
    days = older_than_days if older_than_days is not None else config.sessions.retention_days
    removed = SessionStore(config.state_path).cleanup(older_than_days=days)
    click.echo(f"Removed {removed} session(s) older than {days} day(s)")


if __name__ == "__main__":
    main()
