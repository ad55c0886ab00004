"""
skillrules - skill activation rules and guardrails for coding assistants.

Loads a skill-rules.json document and decides which skills to surface for a
user prompt and which guardrails to raise for a file edit.
"""

from .core.matcher import Match, match_file_event, match_prompt, render_block_message
from .core.session import SessionContext, SessionRegistry
from .rules.errors import RuleSetValidationError
from .rules.loader import RuleSetStore, load_rule_set, parse_rule_set
from .rules.models import RuleSet

__version__ = "0.3.0"

__all__ = [
    "Match",
    "RuleSet",
    "RuleSetStore",
    "RuleSetValidationError",
    "SessionContext",
    "SessionRegistry",
    "load_rule_set",
    "match_file_event",
    "match_prompt",
    "parse_rule_set",
    "render_block_message",
]
