"""
Error-handling reminder for the stop hook.

Looks at the files edited during the session and, when they contain
constructs that usually need error handling (try/catch, async code,
database or HTTP calls), builds a short self-check grouped by area.
Files without such constructs produce no reminder.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from .render import RULE

__all__ = [
    "FileRisk",
    "analyze_file",
    "build_reminder",
    "classify_path",
    "file_reader",
]

_CATEGORIES = [
    (
        "database",
        re.compile(
            r"(^|/)(prisma|migrations?|db|database|repositor(y|ies))(/|$)|\.sql$|\.prisma$",
            re.IGNORECASE,
        ),
    ),
    (
        "backend",
        re.compile(
            r"(^|/)(controllers?|services?|routes?|api|server|middlewares?|handlers?)(/|$)",
            re.IGNORECASE,
        ),
    ),
    (
        "frontend",
        re.compile(
            r"\.(tsx|jsx|vue|svelte)$|(^|/)(components?|pages|hooks|features)(/|$)",
            re.IGNORECASE,
        ),
    ),
]

_RISKY_CONSTRUCTS = [
    ("try/catch block", re.compile(r"\btry\s*[{:]|\bcatch\s*\(|\bexcept\b")),
    ("async operation", re.compile(r"\basync\b|\bawait\b|\.then\(")),
    (
        "database call",
        re.compile(r"\bprisma\.|\.query\(|\.execute\(|\b(SELECT|INSERT|UPDATE|DELETE)\b"),
    ),
    ("HTTP request", re.compile(r"\bfetch\(|\baxios\b|\brequests\.|\bhttpx\.")),
]

_QUESTIONS = {
    "backend": [
        "Are errors caught, logged and mapped to the right response status?",
        "Do async failures propagate instead of being swallowed?",
    ],
    "database": [
        "Do failed writes roll back (transactions)?",
        "Are constraint violations and missing rows handled?",
    ],
    "frontend": [
        "Are failed requests shown to the user?",
        "Do loading and error states render?",
    ],
    "other": [
        "Are new failure paths handled and logged?",
    ],
}

_TITLES = {
    "backend": "Backend changes",
    "database": "Database changes",
    "frontend": "Frontend changes",
    "other": "Other changes",
}


@dataclass
class FileRisk:
    path: str
    category: str
    findings: list[str] = field(default_factory=list)


def classify_path(path: str) -> str:
    """'database', 'backend', 'frontend' or 'other'."""
    normalized = path.replace("\\", "/")
    for category, pattern in _CATEGORIES:
        if pattern.search(normalized):
            return category
    return "other"


def analyze_file(path: str, content: str) -> FileRisk:
    findings = [label for label, pattern in _RISKY_CONSTRUCTS if pattern.search(content)]
    return FileRisk(path=path, category=classify_path(path), findings=findings)


def build_reminder(
    edited_files: list[str],
    read: Callable[[str], str | None],
    skip_env: str = "SKIP_ERROR_REMINDER",
    max_files: int = 20,
) -> str | None:
    """Build the reminder text, or None if no edited file needs one.

    Args:
        edited_files: Files edited during the session, in edit order.
        read: Returns a file's content, or None if it cannot be read.
        skip_env: Variable named in the closing tip.
        max_files: Files listed at most per area.
    """
    risks: list[FileRisk] = []
    for path in edited_files:
        content = read(path)
        if content is None:
            continue
        risk = analyze_file(path, content)
        if risk.findings:
            risks.append(risk)
    if not risks:
        return None

    lines = [RULE, "ERROR HANDLING SELF-CHECK", RULE, ""]
    for category in ("backend", "database", "frontend", "other"):
        group = [r for r in risks if r.category == category]
        if not group:
            continue
        lines.append(f"{_TITLES[category]} ({len(group)} file(s)):")
        for risk in group[:max_files]:
            lines.append(f"  - {risk.path}: {', '.join(risk.findings)}")
        if len(group) > max_files:
            lines.append(f"  ... and {len(group) - max_files} more")
        lines.extend(f"  ? {q}" for q in _QUESTIONS[category])
        lines.append("")
    lines.append(f"TIP: set {skip_env}=1 to disable this reminder")
    lines.append(RULE)
    return "\n".join(lines)


def file_reader(project_dir: Path) -> Callable[[str], str | None]:
    """read() for build_reminder resolving relative paths against project_dir."""

    def read(path: str) -> str | None:
        target = Path(path)
        if not target.is_absolute():
            target = project_dir / target
        try:
            return target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

    return read
