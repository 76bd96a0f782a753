import motor.motor_asyncio
from pymongo import ASCENDING, ReplaceOne
import os
from typing import Dict, List, Optional
from dotenv import load_dotenv

from app.models.models import ConversationState, MatchScore, ResumeProfile
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

load_dotenv()

MONGO_DETAILS = os.getenv("MONGO_DETAILS", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "job_assistant_db")
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory").lower()

_client = None


def get_db():
    """Lazily create the motor client; nothing connects until first use."""
    global _client
    if _client is None:
        logger.info(f"Initializing MongoDB connection to database: {DB_NAME}")
        _client = motor.motor_asyncio.AsyncIOMotorClient(MONGO_DETAILS)
    return _client[DB_NAME]


async def init_indexes():
    """Index initialization for collections."""
    db = get_db()
    for name, key in [("conversations", "userId"), ("resumes", "userId")]:
        try:
            await db[name].create_index([(key, ASCENDING)], unique=True)
            logger.debug(f"Created unique index on {name}.{key}")
        except Exception as e:
            logger.warning(f"Could not create unique index on {name}.{key}: {e}")
    try:
        await db["matches"].create_index([("userId", ASCENDING), ("jobId", ASCENDING)], unique=True)
        logger.debug("Created compound unique index on matches.(userId, jobId)")
    except Exception as e:
        logger.warning(f"Could not create compound index on matches.(userId, jobId): {e}")


def _strip_id(doc):
    if not doc:
        return None
    doc.pop("_id", None)
    return doc


# -------- Conversations --------

class ConversationStore:
    async def load(self, user_id: str) -> Optional[ConversationState]:
        raise NotImplementedError

    async def save(self, user_id: str, state: ConversationState) -> None:
        raise NotImplementedError

    async def clear(self, user_id: str) -> None:
        raise NotImplementedError


class InMemoryConversationStore(ConversationStore):
    def __init__(self):
        self._data: Dict[str, dict] = {}

    async def load(self, user_id):
        doc = self._data.get(user_id)
        return ConversationState.model_validate(doc) if doc else None

    async def save(self, user_id, state):
        self._data[user_id] = state.model_dump(by_alias=True)

    async def clear(self, user_id):
        if user_id in self._data:
            self._data[user_id] = ConversationState(user_id=user_id).model_dump(by_alias=True)


class MongoConversationStore(ConversationStore):
    def __init__(self, coll=None):
        self.coll = coll if coll is not None else get_db()["conversations"]

    async def load(self, user_id):
        doc = _strip_id(await self.coll.find_one({"userId": user_id}))
        return ConversationState.model_validate(doc) if doc else None

    async def save(self, user_id, state):
        await self.coll.replace_one({"userId": user_id}, state.model_dump(by_alias=True), upsert=True)

    async def clear(self, user_id):
        await self.coll.update_one(
            {"userId": user_id},
            {"$set": {"messages": [], "currentFilters": {}}},
        )


# -------- Resumes --------

class ResumeStore:
    async def get(self, user_id: str) -> Optional[ResumeProfile]:
        raise NotImplementedError

    async def save(self, profile: ResumeProfile) -> None:
        raise NotImplementedError

    async def delete(self, user_id: str) -> bool:
        raise NotImplementedError


class InMemoryResumeStore(ResumeStore):
    def __init__(self):
        self._data: Dict[str, dict] = {}

    async def get(self, user_id):
        doc = self._data.get(user_id)
        return ResumeProfile.model_validate(doc) if doc else None

    async def save(self, profile):
        self._data[profile.user_id] = profile.model_dump(by_alias=True)

    async def delete(self, user_id):
        return self._data.pop(user_id, None) is not None


class MongoResumeStore(ResumeStore):
    def __init__(self, coll=None):
        self.coll = coll if coll is not None else get_db()["resumes"]

    async def get(self, user_id):
        doc = _strip_id(await self.coll.find_one({"userId": user_id}))
        return ResumeProfile.model_validate(doc) if doc else None

    async def save(self, profile):
        await self.coll.replace_one({"userId": profile.user_id}, profile.model_dump(by_alias=True), upsert=True)

    async def delete(self, user_id):
        result = await self.coll.delete_one({"userId": user_id})
        return result.deleted_count > 0


# -------- Matches --------

class MatchStore:
    async def replace_for_user(self, user_id: str, matches: List[MatchScore]) -> None:
        raise NotImplementedError

    async def list_for_user(self, user_id: str) -> List[MatchScore]:
        raise NotImplementedError


class InMemoryMatchStore(MatchStore):
    def __init__(self):
        self._data: Dict[str, List[dict]] = {}

    async def replace_for_user(self, user_id, matches):
        by_job = {m.job_id: m.model_dump(by_alias=True) for m in matches}
        self._data[user_id] = list(by_job.values())

    async def list_for_user(self, user_id):
        return [MatchScore.model_validate(d) for d in self._data.get(user_id, [])]


class MongoMatchStore(MatchStore):
    def __init__(self, coll=None):
        self.coll = coll if coll is not None else get_db()["matches"]

    async def replace_for_user(self, user_id, matches):
        # upsert first so a failed write leaves the previous matches in place
        if matches:
            await self.coll.bulk_write([
                ReplaceOne({"userId": user_id, "jobId": m.job_id}, m.model_dump(by_alias=True), upsert=True)
                for m in matches
            ])
        await self.coll.delete_many({"userId": user_id, "jobId": {"$nin": [m.job_id for m in matches]}})

    async def list_for_user(self, user_id):
        docs = await self.coll.find({"userId": user_id}).to_list(length=None)
        return [MatchScore.model_validate(_strip_id(d)) for d in docs]


def make_stores():
    """(conversations, resumes, matches) for the configured backend."""
    if STORAGE_BACKEND == "mongo":
        return MongoConversationStore(), MongoResumeStore(), MongoMatchStore()
    return InMemoryConversationStore(), InMemoryResumeStore(), InMemoryMatchStore()
