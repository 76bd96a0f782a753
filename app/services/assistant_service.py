"""
Assistant Service: conversation persistence around the intent router
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Callable, Dict, List, Optional

from app.models.models import AssistantReply, ConversationState, Message, merge_filters
from app.services.db import ConversationStore
from app.services.graph import process_message
from app.utils.logging_config import get_logger, PerformanceMonitor

logger = get_logger(__name__)


class AssistantService:
    """Loads a user's conversation, runs one turn, saves the result.

    Turns for the same user are serialised; different users run concurrently.
    """

    def __init__(self, store: ConversationStore, llm: Optional[Callable[..., str]] = None):
        self.store = store
        self.llm = llm
        # user id -> [lock, turns holding or waiting on it]
        self._locks: Dict[str, List] = {}

    @asynccontextmanager
    async def _user_lock(self, user_id: str):
        entry = self._locks.setdefault(user_id, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[user_id]

    async def process_message(self, user_id: str, message: str) -> AssistantReply:
        async with self._user_lock(user_id):
            state = await self.store.load(user_id) or ConversationState(user_id=user_id)

            with PerformanceMonitor(f"assistant turn for {user_id}", logger, threshold_ms=5000):
                loop = asyncio.get_running_loop()
                result = await loop.run_in_executor(None, process_message, user_id, message, state, self.llm)

            update = result.filter_update
            user_message = Message(role="user", content=message)
            assistant_message = Message(
                role="assistant",
                content=result.response,
                filter_update=update.changes() if update else None,
            )
            updated = ConversationState(
                user_id=user_id,
                messages=[*state.messages, user_message, assistant_message],
                current_filters=merge_filters(state.current_filters, update),
            )
            await self.store.save(user_id, updated)

        logger.info(f"Processed assistant message for {user_id}", extra={"user_id": user_id})
        return result

    async def get_conversation(self, user_id: str) -> ConversationState:
        return await self.store.load(user_id) or ConversationState(user_id=user_id)

    async def clear_conversation(self, user_id: str) -> None:
        async with self._user_lock(user_id):
            await self.store.clear(user_id)
        logger.info(f"Cleared conversation for {user_id}")
