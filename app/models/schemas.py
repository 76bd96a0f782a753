from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from app.models.models import ConversationState, FilterUpdate, JobPosting, MatchScore


# -------- Assistant --------
class ChatRequest(BaseModel):
    message: str = ""


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    filter_update: Optional[FilterUpdate] = Field(default=None, alias="filterUpdate")


class ConversationResponse(BaseModel):
    conversation: ConversationState


# -------- Resume --------
class ResumeUpload(BaseModel):
    filename: str
    base64_content: str


# -------- Matches --------
class CalculateMatchesRequest(BaseModel):
    jobs: List[JobPosting] = Field(default_factory=list)


class MatchListResponse(BaseModel):
    matches: List[MatchScore]
    count: int
    message: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class ReportResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    csv_path: str = Field(alias="csvPath")
    markdown_path: str = Field(alias="markdownPath")
    message: str = "Report generated"
