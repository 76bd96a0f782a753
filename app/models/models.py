from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime, timezone
from enum import Enum


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class IntentType(str, Enum):
    """Closed set of chat intents"""
    SEARCH_JOBS = "search_jobs"
    UPDATE_FILTERS = "update_filters"
    HELP = "help"
    GENERAL_CHAT = "general_chat"


DatePosted = Literal["24h", "week", "month", "anytime"]
MatchBand = Literal["high", "medium", "all"]


class FilterUpdate(BaseModel):
    """Partial patch for a user's job filters.

    Only fields explicitly set by a turn are serialised (exclude_unset), so
    merging a dump into the current filters overwrites exactly those keys.
    work_mode and job_type stay plain strings: unknown tokens pass through.
    """
    model_config = ConfigDict(populate_by_name=True)

    role: Optional[str] = None
    skills: Optional[List[str]] = None
    date_posted: Optional[DatePosted] = Field(default=None, alias="datePosted")
    job_type: Optional[List[str]] = Field(default=None, alias="jobType")
    work_mode: Optional[List[str]] = Field(default=None, alias="workMode")
    location: Optional[str] = None
    match_score: Optional[MatchBand] = Field(default=None, alias="matchScore")

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)

    def is_empty(self) -> bool:
        return not self.model_fields_set


def merge_filters(current: Dict[str, Any], update: Optional[FilterUpdate]) -> Dict[str, Any]:
    """Shallow overwrite; lists replace wholesale."""
    merged = dict(current or {})
    if update is not None:
        merged.update(update.changes())
    return merged


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: Literal["user", "assistant"]
    content: str
    timestamp: str = Field(default_factory=utcnow_iso)
    filter_update: Optional[Dict[str, Any]] = Field(default=None, alias="filterUpdate")


class ConversationState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    messages: List[Message] = Field(default_factory=list)
    current_filters: Dict[str, Any] = Field(default_factory=dict, alias="currentFilters")


class Intent(BaseModel):
    # None when the model named a type outside IntentType
    type: Optional[IntentType] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    confidence: float = 0.8

    @field_validator("type", mode="before")
    @classmethod
    def known_type_or_none(cls, v):
        if isinstance(v, IntentType):
            return v
        try:
            return IntentType(str(v).strip().lower())
        except ValueError:
            return None

    @field_validator("parameters", mode="before")
    @classmethod
    def parameters_mapping(cls, v):
        return v if isinstance(v, dict) else {}

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        # missing or zero confidence reads as the default
        try:
            v = float(v)
        except (TypeError, ValueError):
            return 0.8
        if not v:
            return 0.8
        return max(0.0, min(1.0, v))


class AssistantReply(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    filter_update: Optional[FilterUpdate] = Field(default=None, alias="filterUpdate")


class ResumeProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    extracted_text: str = Field(default="", alias="extractedText")
    skills: List[str] = Field(default_factory=list)
    experience: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    filename: Optional[str] = None
    uploaded_at: str = Field(default_factory=utcnow_iso, alias="uploadedAt")


class JobPosting(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    company: str = ""
    skills: List[str] = Field(default_factory=list)
    description: str = ""
    requirements: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    job_type: Optional[str] = Field(default=None, alias="jobType")
    work_mode: Optional[str] = Field(default=None, alias="workMode")
    posted_at: Optional[str] = Field(default=None, alias="postedAt")


class MatchExplanation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    matching_skills: List[str] = Field(default_factory=list, alias="matchingSkills")
    relevant_experience: List[str] = Field(default_factory=list, alias="relevantExperience")
    keyword_alignment: List[str] = Field(default_factory=list, alias="keywordAlignment")
    overall_reason: str = Field(default="", alias="overallReason")


class MatchScore(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    user_id: str = Field(alias="userId")
    score: int = Field(ge=0, le=100)
    explanation: MatchExplanation
    calculated_at: str = Field(default_factory=utcnow_iso, alias="calculatedAt")
