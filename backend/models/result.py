"""Search result returned by the orchestrator."""
from dataclasses import dataclass, field
from typing import List, Optional

from models.intent import Intent
from models.program import ProgramRecord
from models.quick_answer import CrisisType, QuickAnswer

TIER_QUICK_ANSWER = "quick_answer"
TIER_GREETING = "greeting"
TIER_CRISIS = "crisis"
TIER_LLM = "llm"
TIER_LLM_TOR = "llm_tor"
LLM_TIERS = (TIER_LLM, TIER_LLM_TOR)
TIERS = (TIER_QUICK_ANSWER, TIER_GREETING, TIER_CRISIS) + LLM_TIERS

MAX_PROGRAMS = 5


@dataclass
class SearchResult:
    """Final payload of one orchestrator call."""
    message: str
    tier: str
    programs: List[ProgramRecord] = field(default_factory=list)
    quick_answer: Optional[QuickAnswer] = None
    crisis_type: Optional[CrisisType] = None
    intent: Optional[Intent] = None
    flags: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.tier not in TIERS:
            raise ValueError(f"Unknown tier: {self.tier}")
        if self.programs and self.tier not in LLM_TIERS:
            raise ValueError(f"Programs are only returned on LLM tiers, not {self.tier}")
        self.programs = self.programs[:MAX_PROGRAMS]

    @property
    def programs_found(self) -> int:
        return len(self.programs)
