"""Intent data models."""
from dataclasses import dataclass
from typing import Optional

from config import CATEGORY_FACETS

GENERAL = "general"
CATEGORIES = tuple(CATEGORY_FACETS)
MAX_QUERY_KEYWORDS = 5


@dataclass(frozen=True)
class Intent:
    """
    Structured interpretation of a user message.

    Attributes:
        query: Up to five search keywords; empty only for greetings
        category: One of CATEGORIES
        needs_location: Whether the answer depends on where the user lives
        is_greeting: Message is only a greeting
        is_crisis: Model flagged the message as a crisis
    """
    query: str
    category: str = GENERAL
    needs_location: bool = False
    is_greeting: bool = False
    is_crisis: bool = False

    def __post_init__(self):
        if self.category not in CATEGORIES:
            raise ValueError(f"Unknown intent category: {self.category}")
        if not self.query.strip() and not self.is_greeting:
            raise ValueError("Intent query may only be empty for greetings")


@dataclass(frozen=True)
class IntentParseResult:
    """Outcome of asking the intent model: either an intent or the reason it failed."""
    intent: Optional[Intent] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.intent is not None

    @classmethod
    def success(cls, intent: Intent) -> "IntentParseResult":
        return cls(intent=intent)

    @classmethod
    def failure(cls, error: str) -> "IntentParseResult":
        return cls(error=error)
