"""
Text shown to the assistant by the hooks.
"""

from ..core.matcher import Match
from ..rules.models import Priority

RULE = "━" * 50

_SECTIONS = [
    (Priority.CRITICAL, "CRITICAL SKILLS (REQUIRED)"),
    (Priority.HIGH, "RECOMMENDED SKILLS"),
    (Priority.MEDIUM, "SUGGESTED SKILLS"),
    (Priority.LOW, "OPTIONAL SKILLS"),
]


def _line(match: Match) -> str:
    if match.description:
        return f"  → {match.rule_name}: {match.description}"
    return f"  → {match.rule_name}"


def format_activation_check(matches: list[Match]) -> str:
    """Skill activation check for a prompt, grouped by priority."""
    lines = [RULE, "SKILL ACTIVATION CHECK", RULE, ""]
    for priority, title in _SECTIONS:
        group = [m for m in matches if m.priority is priority]
        if not group:
            continue
        lines.append(f"{title}:")
        lines.extend(_line(m) for m in group)
        lines.append("")
    lines.append("ACTION: Use the Skill tool BEFORE responding")
    lines.append(RULE)
    return "\n".join(lines)


def format_block(matches: list[Match]) -> str:
    """Block notice for stderr: every rendered block message, in order."""
    parts = []
    for match in matches:
        header = f"BLOCKED by {match.rule_type.value} '{match.rule_name}'"
        parts.append(f"{header}\n\n{match.message}")
    return "\n\n".join(parts)


def format_advisory(path: str, matches: list[Match]) -> str:
    """Non-blocking reminders (warn/suggest) for a file event."""
    lines = [f"Skill reminders for {path}:"]
    for match in matches:
        line = f"  → {match.rule_name} ({match.enforcement.value})"
        if match.description:
            line += f": {match.description}"
        lines.append(line)
    return "\n".join(lines)
