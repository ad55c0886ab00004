"""
Core module - rule matching and session state.
"""

from .matcher import Match, blocking_matches, match_file_event, match_prompt, render_block_message
from .session import SessionContext, SessionRegistry, SessionStore

__all__ = [
    "Match",
    "SessionContext",
    "SessionRegistry",
    "SessionStore",
    "blocking_matches",
    "match_file_event",
    "match_prompt",
    "render_block_message",
]
