"""
Host hooks: prompt submit, pre/post tool use, skill use and stop.
"""

from .files import FileEvent, file_event_from_tool
from .runner import EXIT_ALLOW, EXIT_BLOCK, HookEvent, HookOutcome, HookPayloadError, HookRunner

__all__ = [
    "EXIT_ALLOW",
    "EXIT_BLOCK",
    "FileEvent",
    "HookEvent",
    "HookOutcome",
    "HookPayloadError",
    "HookRunner",
    "file_event_from_tool",
]
