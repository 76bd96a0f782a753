from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request

from app.models.models import MatchScore
from app.models.schemas import CalculateMatchesRequest, MatchListResponse, ReportResponse
from app.routers.deps import match_service, resume_store, get_user_id
from app.utils.exceptions import NotFoundError
from app.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("", response_model=MatchListResponse)
async def list_matches(
    user_id: str = Depends(get_user_id),
    job_ids: Optional[str] = Query(default=None, alias="jobIds"),
    match_score: Literal["high", "medium", "all"] = Query(default="all", alias="matchScore"),
):
    """Stored matches, optionally restricted to job ids and a score band"""
    ids = [j for j in job_ids.split(",") if j] if job_ids else None
    matches = await match_service.get_matches(user_id, ids, match_score)
    return MatchListResponse(matches=matches, count=len(matches))


@router.get("/best", response_model=MatchListResponse)
async def best_matches(user_id: str = Depends(get_user_id), limit: int = Query(default=8, ge=1, le=100)):
    matches = await match_service.get_best_matches(user_id, limit)
    return MatchListResponse(matches=matches, count=len(matches))


@router.post("/calculate", response_model=MatchListResponse)
async def calculate_matches(body: CalculateMatchesRequest, request: Request, user_id: str = Depends(get_user_id)):
    """Score the caller's resume against the supplied jobs"""
    request_id = getattr(request.state, 'request_id', 'unknown')

    resume = await resume_store.get(user_id)
    if not resume:
        logger.warning("Match calculation without resume", extra={"request_id": request_id, "user_id": user_id})
        raise NotFoundError("Resume not found. Please upload a resume first.", resource="resume")

    matches = await match_service.calculate_matches(user_id, resume, body.jobs)
    return MatchListResponse(matches=matches, count=len(matches), message="Matches calculated successfully")


@router.get("/report", response_model=ReportResponse)
async def export_report(user_id: str = Depends(get_user_id)):
    """Write CSV and markdown reports of the caller's stored matches"""
    csv_path, md_path = await match_service.export_report(user_id)
    return ReportResponse(csv_path=csv_path, markdown_path=md_path)


@router.get("/{job_id}", response_model=MatchScore)
async def match_for_job(job_id: str, user_id: str = Depends(get_user_id)):
    match = await match_service.get_match_for_job(user_id, job_id)
    if not match:
        raise NotFoundError("Match not found", resource="match", details={"job_id": job_id})
    return match
