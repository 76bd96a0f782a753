import base64
import binascii

from fastapi import APIRouter, Depends, Request

from app.helpers.parsing import build_resume_profile
from app.models.models import ResumeProfile
from app.models.schemas import MessageResponse, ResumeUpload
from app.routers.deps import resume_store, get_user_id
from app.utils.exceptions import NotFoundError, ValidationError
from app.utils.logging_config import get_logger, PerformanceMonitor

router = APIRouter()
logger = get_logger(__name__)


def decode_base64(b64_string: str) -> bytes:
    try:
        return base64.b64decode(b64_string, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid base64 resume: {e}", field="base64_content", cause=e)


@router.post("", response_model=ResumeProfile)
async def upload_resume(body: ResumeUpload, request: Request, user_id: str = Depends(get_user_id)):
    """Parse and store the caller's resume, replacing any previous one"""
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.info(f"Uploading resume {body.filename}", extra={"request_id": request_id, "user_id": user_id})

    data = decode_base64(body.base64_content)
    with PerformanceMonitor("parse_resume", logger):
        profile = build_resume_profile(user_id, body.filename, data)

    await resume_store.save(profile)
    return profile


@router.get("", response_model=ResumeProfile)
async def get_resume(user_id: str = Depends(get_user_id)):
    profile = await resume_store.get(user_id)
    if not profile:
        raise NotFoundError("Resume not found", resource="resume")
    return profile


@router.delete("", response_model=MessageResponse)
async def delete_resume(user_id: str = Depends(get_user_id)):
    if not await resume_store.delete(user_id):
        raise NotFoundError("Resume not found", resource="resume")
    return MessageResponse(message="Resume deleted")
