"""
File events from host tool calls.

Only the file-writing tools produce file events:
- Write:     tool_input.file_path + tool_input.content. A create when the
             file does not exist yet.
- Edit:      tool_input.old_string / new_string / replace_all.
- MultiEdit: tool_input.edits = [{old_string, new_string, replace_all}, ...].

For edits the content matched against contentPatterns is the file as it
will look after the edit; replacements whose old_string is not found are
appended so their text is still examined.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger()

__all__ = [
    "FILE_TOOLS",
    "FileEvent",
    "display_path",
    "file_event_from_tool",
]

FILE_TOOLS = ("Write", "Edit", "MultiEdit")


@dataclass(frozen=True)
class FileEvent:
    path: str
    content: str
    is_create: bool


def display_path(file_path: str, project_dir: Path) -> str:
    """Path relative to project_dir when it lives under it, else unchanged."""
    path = Path(file_path)
    if not path.is_absolute():
        return file_path
    try:
        return path.resolve().relative_to(project_dir.resolve()).as_posix()
    except ValueError:
        return file_path


def _read_current(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("hook.read_failed", path=str(path), error=str(e))
        return ""


def _apply_edits(current: str, edits: list[dict[str, Any]]) -> str:
    result = current
    for edit in edits:
        old = str(edit.get("old_string") or "")
        new = str(edit.get("new_string") or "")
        if old and old in result:
            count = -1 if edit.get("replace_all") else 1
            result = result.replace(old, new, count)
        elif new:
            result = f"{result}\n{new}" if result else new
    return result


def file_event_from_tool(
    tool_name: str, tool_input: dict[str, Any], project_dir: Path
) -> FileEvent | None:
    """Build the FileEvent for a tool call, or None if it is not a file write."""
    if tool_name not in FILE_TOOLS:
        return None
    file_path = tool_input.get("file_path")
    if not isinstance(file_path, str) or not file_path:
        return None

    on_disk = Path(file_path)
    if not on_disk.is_absolute():
        on_disk = project_dir / on_disk
    exists = on_disk.exists()

    if tool_name == "Write":
        content = str(tool_input.get("content") or "")
        is_create = not exists
    elif tool_name == "Edit":
        content = _apply_edits(_read_current(on_disk) if exists else "", [tool_input])
        is_create = False
    else:
        edits = [e for e in tool_input.get("edits") or [] if isinstance(e, dict)]
        content = _apply_edits(_read_current(on_disk) if exists else "", edits)
        is_create = False

    return FileEvent(
        path=display_path(file_path, project_dir),
        content=content,
        is_create=is_create,
    )
