"""Conversation data models."""
from dataclasses import dataclass
from typing import Dict, List, Sequence

USER = "user"
ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    """Represents a single turn in a conversation."""
    role: str
    text: str

    def __post_init__(self):
        if self.role not in (USER, ASSISTANT):
            raise ValueError(f"Invalid conversation role: {self.role}")

    def to_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.text}


def recent_turns(history: Sequence[ConversationTurn], limit: int) -> List[ConversationTurn]:
    """Return the last `limit` turns of a caller-owned history, oldest first."""
    if limit <= 0 or not history:
        return []
    return list(history[-limit:])
