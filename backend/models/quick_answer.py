"""Quick answer data models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class CrisisType(str, Enum):
    """Tag on a detected crisis."""
    EMERGENCY = "emergency"
    MENTAL_HEALTH = "mentalHealth"
    DOMESTIC_VIOLENCE = "domesticViolence"


INFO = "info"
CRISIS = "crisis"
CLARIFY = "clarify"
QUICK_ANSWER_TYPES = (INFO, CRISIS, CLARIFY)


@dataclass(frozen=True)
class QuickAnswerResource:
    """A phone line or service attached to a quick answer."""
    name: str
    phone: Optional[str] = None
    description: Optional[str] = None
    action: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["QuickAnswerResource"]:
        if not data:
            return None
        return cls(
            name=data["name"],
            phone=data.get("phone"),
            description=data.get("description"),
            action=data.get("action"),
        )


@dataclass(frozen=True)
class QuickAnswer:
    """Pre-authored response that bypasses all inference calls."""
    type: str
    title: Optional[str] = None
    message: Optional[str] = None
    summary: Optional[str] = None
    resource: Optional[QuickAnswerResource] = None
    secondary: Optional[QuickAnswerResource] = None
    guide_url: Optional[str] = None
    guide_text: Optional[str] = None
    apply_url: Optional[str] = None
    apply_text: Optional[str] = None
    links: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.type not in QUICK_ANSWER_TYPES:
            raise ValueError(f"Unknown quick answer type: {self.type}")

    @property
    def is_crisis(self) -> bool:
        return self.type == CRISIS

    @property
    def needs_clarification(self) -> bool:
        return self.type == CLARIFY

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuickAnswer":
        return cls(
            type=data["type"],
            title=data.get("title"),
            message=data.get("message"),
            summary=data.get("summary"),
            resource=QuickAnswerResource.from_dict(data.get("resource")),
            secondary=QuickAnswerResource.from_dict(data.get("secondary")),
            guide_url=data.get("guideUrl"),
            guide_text=data.get("guideText"),
            apply_url=data.get("applyUrl"),
            apply_text=data.get("applyText"),
            links=list(data.get("links", [])),
        )
