"""Data models for the Carl assistant orchestrator."""
from .conversation import ConversationTurn, recent_turns
from .intent import Intent, IntentParseResult
from .program import ProgramRecord
from .profile import ProfileContext
from .quick_answer import CrisisType, QuickAnswer, QuickAnswerResource
from .result import SearchResult

__all__ = [
    "ConversationTurn",
    "recent_turns",
    "Intent",
    "IntentParseResult",
    "ProgramRecord",
    "ProfileContext",
    "CrisisType",
    "QuickAnswer",
    "QuickAnswerResource",
    "SearchResult",
]
