from fastapi import APIRouter, Depends, Request

from app.models.schemas import ChatRequest, ChatResponse, ConversationResponse, MessageResponse
from app.routers.deps import assistant_service, get_user_id
from app.utils.exceptions import ValidationError, ExceptionContext
from app.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(body: ChatRequest, request: Request, user_id: str = Depends(get_user_id)):
    """Run one assistant turn for the caller"""
    request_id = getattr(request.state, 'request_id', 'unknown')

    if not body.message or not body.message.strip():
        logger.warning("Empty chat message", extra={"request_id": request_id, "user_id": user_id})
        raise ValidationError("Message required", field="message")

    with ExceptionContext("assistant_chat", logger, request_id=request_id, user_id=user_id):
        result = await assistant_service.process_message(user_id, body.message)

    return ChatResponse(response=result.response, filter_update=result.filter_update)


@router.get("/conversation", response_model=ConversationResponse)
async def get_conversation(user_id: str = Depends(get_user_id)):
    """Fetch the caller's conversation"""
    conversation = await assistant_service.get_conversation(user_id)
    return ConversationResponse(conversation=conversation)


@router.delete("/conversation", response_model=MessageResponse)
async def clear_conversation(user_id: str = Depends(get_user_id)):
    """Reset the caller's messages and filters"""
    await assistant_service.clear_conversation(user_id)
    return MessageResponse(message="Conversation cleared")
