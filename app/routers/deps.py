from typing import Optional
from fastapi import Header

from app.services.assistant_service import AssistantService
from app.services.db import make_stores
from app.services.match_service import MatchService
from app.utils.exceptions import AuthenticationError

conversation_store, resume_store, match_store = make_stores()
assistant_service = AssistantService(conversation_store)
match_service = MatchService(match_store)


def get_user_id(authorization: Optional[str] = Header(default=None)) -> str:
    """Auth stub: the bearer token is the user id."""
    user_id = (authorization or "").replace("Bearer ", "").strip()
    if not user_id:
        raise AuthenticationError()
    return user_id
