"""API request and response models."""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

from models.conversation import ConversationTurn
from models.profile import ProfileContext
from models.quick_answer import QuickAnswer, QuickAnswerResource
from models.result import SearchResult
from services.privacy_resolver import PrivacyMode


class TurnModel(BaseModel):
    """One exchange of caller-owned history."""
    role: Literal["user", "assistant"]
    text: str

    def to_turn(self) -> ConversationTurn:
        return ConversationTurn(role=self.role, text=self.text)


class ProfileModel(BaseModel):
    """Opt-in profile summary; bucketed and categorical only."""
    county: Optional[str] = None
    city: Optional[str] = None
    age_range: Optional[str] = Field(None, description="Bucket such as '18-25' or '65+'")
    is_military_or_veteran: bool = False
    qualifications: List[str] = Field(default_factory=list)

    def to_profile(self) -> ProfileContext:
        return ProfileContext(
            county=self.county,
            city=self.city,
            age_range=self.age_range,
            is_military_or_veteran=self.is_military_or_veteran,
            qualifications=list(self.qualifications),
        )


class SearchRequest(BaseModel):
    """Request body for POST /sessions/{id}/search."""
    query: str = Field(..., min_length=1)
    history: List[TurnModel] = Field(default_factory=list)
    privacy_mode: PrivacyMode = PrivacyMode.STANDARD
    tor_requested: bool = False
    profile: Optional[ProfileModel] = None


class TorConfigRequest(BaseModel):
    """Request body for POST /sessions/{id}/tor."""
    enabled: bool
    proxy_url: Optional[str] = None


class ResourceModel(BaseModel):
    name: str
    phone: Optional[str] = None
    description: Optional[str] = None
    action: Optional[str] = None

    @classmethod
    def from_resource(cls, resource: Optional[QuickAnswerResource]) -> Optional["ResourceModel"]:
        if resource is None:
            return None
        return cls(
            name=resource.name,
            phone=resource.phone,
            description=resource.description,
            action=resource.action,
        )


class QuickAnswerModel(BaseModel):
    type: str
    title: Optional[str] = None
    message: Optional[str] = None
    resource: Optional[ResourceModel] = None
    secondary: Optional[ResourceModel] = None
    links: List[str] = Field(default_factory=list)

    @classmethod
    def from_quick_answer(cls, answer: Optional[QuickAnswer]) -> Optional["QuickAnswerModel"]:
        if answer is None:
            return None
        return cls(
            type=answer.type,
            title=answer.title,
            message=answer.message or answer.summary,
            resource=ResourceModel.from_resource(answer.resource),
            secondary=ResourceModel.from_resource(answer.secondary),
            links=list(answer.links),
        )


class ProgramModel(BaseModel):
    id: str
    name: str
    category: str = ""
    description: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    areas: List[str] = Field(default_factory=list)


class IntentModel(BaseModel):
    query: str
    category: str
    needs_location: bool
    is_greeting: bool
    is_crisis: bool


class SearchResponse(BaseModel):
    """Response body for a search call."""
    message: str
    tier: str
    programs: List[ProgramModel] = Field(default_factory=list)
    programs_found: int = 0
    quick_answer: Optional[QuickAnswerModel] = None
    crisis_type: Optional[str] = None
    intent: Optional[IntentModel] = None
    flags: List[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResponse":
        intent = result.intent
        return cls(
            message=result.message,
            tier=result.tier,
            programs=[ProgramModel(**vars(p)) for p in result.programs],
            programs_found=result.programs_found,
            quick_answer=QuickAnswerModel.from_quick_answer(result.quick_answer),
            crisis_type=result.crisis_type.value if result.crisis_type else None,
            intent=IntentModel(**vars(intent)) if intent else None,
            flags=list(result.flags),
        )


class SessionResponse(BaseModel):
    session_id: str
    warm_up_done: bool = False
    tor_ready: bool = False


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)
