import os
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional

from dotenv import load_dotenv

from app.helpers.prompts import INTENT_PROMPT, CHAT_PROMPT, HELP_TOPICS, HELP_GENERIC
from app.models.models import (
    AssistantReply, ConversationState, FilterUpdate, Intent, IntentType, Message,
)
from app.utils.exceptions import CompletionError
from app.utils.logging_config import get_logger
from app.utils.utils import complete, safe_json

load_dotenv()
INTENT_TEMPERATURE = float(os.getenv("INTENT_TEMPERATURE", "0.7"))

logger = get_logger(__name__)

Completion = Callable[..., str]

FALLBACK_INTENT = Intent(type=IntentType.GENERAL_CHAT, parameters={}, confidence=0.5)
CHAT_FALLBACK = "I'm here to help! Try asking me to search for jobs, update filters, or answer questions about the platform."
PROCESSING_RESPONSE = "I'm processing your request..."
NO_RESPONSE = "I'm not sure how to help with that. Try asking about jobs, filters, or features!"
APOLOGY = "I encountered an error processing your request. Please try again!"

CLEARED_FILTERS = {
    "role": "",
    "skills": [],
    "date_posted": "anytime",
    "job_type": [],
    "work_mode": [],
    "location": "",
    "match_score": "all",
}


@dataclass(frozen=True)
class RouterState:
    """Accumulator threaded through the pipeline; stages return deltas."""
    messages: List[Message]
    current_filters: Dict[str, Any]
    user_id: str
    llm: Completion = complete
    intent: Optional[Intent] = None
    handler: Optional[str] = None
    response: Optional[str] = None
    filter_update: Optional[FilterUpdate] = None

    @property
    def last_message(self) -> str:
        return self.messages[-1].content if self.messages else ""


def _param(params: Dict[str, Any], *names: str) -> Any:
    for n in names:
        if params.get(n) not in (None, "", []):
            return params[n]
    return None


def _as_list(x: Any) -> List[str]:
    if x is None:
        return []
    if isinstance(x, (list, tuple)):
        return [str(t).strip() for t in x if str(t).strip()]
    return [str(x).strip()] if str(x).strip() else []


def _normalize_work_mode(token: str) -> str:
    lower = token.lower()
    if "remote" in lower:
        return "remote"
    if "hybrid" in lower:
        return "hybrid"
    if "onsite" in lower or "office" in lower:
        return "onsite"
    return token


def _normalize_job_type(token: str) -> str:
    lower = token.lower()
    if "full" in lower:
        return "full-time"
    if "part" in lower:
        return "part-time"
    if "contract" in lower:
        return "contract"
    if "intern" in lower:
        return "internship"
    return token


def _normalize_match_score(value: Any) -> str:
    lower = str(value).lower()
    if "high" in lower or "best" in lower:
        return "high"
    if "medium" in lower or "moderate" in lower:
        return "medium"
    return "all"


def _normalize_date_posted(value: Any) -> str:
    lower = str(value).lower()
    if "week" in lower or "7 day" in lower:
        return "week"
    if "month" in lower or "30 day" in lower:
        return "month"
    if "24" in lower or "today" in lower or "day" in lower:
        return "24h"
    return "anytime"


# Stages

def node_detect_intent(state: RouterState) -> Dict[str, Any]:
    prompt = INTENT_PROMPT.format(message=state.last_message)
    try:
        resp = state.llm(prompt, temperature=INTENT_TEMPERATURE)
    except CompletionError as e:
        logger.warning(f"Intent detection failed, falling back to general chat: {e}")
        return {"intent": FALLBACK_INTENT}

    data = safe_json(resp, fallback=None)
    if data is None:
        logger.warning("Intent detection returned unparsable output, falling back to general chat")
        return {"intent": FALLBACK_INTENT}

    intent = Intent(
        type=data.get("type"),
        parameters=data.get("parameters") or {},
        confidence=data.get("confidence", 0.8),
    )
    logger.debug(f"Detected intent {intent.type} (confidence {intent.confidence:.2f})")
    return {"intent": intent}


def node_route(state: RouterState) -> Dict[str, Any]:
    intent_type = state.intent.type if state.intent else None
    if intent_type is IntentType.SEARCH_JOBS:
        return {"handler": "search_jobs"}
    elif intent_type is IntentType.UPDATE_FILTERS:
        return {"handler": "update_filters"}
    elif intent_type is IntentType.HELP:
        return {"handler": "help"}
    elif intent_type is IntentType.GENERAL_CHAT:
        return {"handler": "general_chat"}
    # missing or unrecognised type
    return {"handler": "general_chat"}


def node_search_jobs(state: RouterState) -> Dict[str, Any]:
    params = state.intent.parameters if state.intent else {}
    update: Dict[str, Any] = {}

    role = _param(params, "role")
    if role:
        update["role"] = str(role)
    skills = _param(params, "skills")
    if skills:
        update["skills"] = _as_list(skills)
    location = _param(params, "location")
    if location:
        update["location"] = str(location)
    if params.get("remote"):
        update["work_mode"] = ["remote"]

    return {
        "filter_update": FilterUpdate(**update),
        "response": f"Searching for {role or 'jobs'}...",
    }


def node_update_filters(state: RouterState) -> Dict[str, Any]:
    params = state.intent.parameters if state.intent else {}

    if params.get("action") == "clear" or params.get("clear") is True:
        return {
            "filter_update": FilterUpdate(**CLEARED_FILTERS),
            "response": "All filters cleared!",
        }

    update: Dict[str, Any] = {}

    work_mode = _param(params, "workMode", "work_mode")
    if work_mode:
        update["work_mode"] = [_normalize_work_mode(m) for m in _as_list(work_mode)]

    match_score = _param(params, "matchScore", "match_score")
    if match_score:
        update["match_score"] = _normalize_match_score(match_score)

    job_type = _param(params, "jobType", "job_type")
    if job_type:
        update["job_type"] = [_normalize_job_type(t) for t in _as_list(job_type)]

    date_posted = _param(params, "datePosted", "date_posted")
    if date_posted:
        update["date_posted"] = _normalize_date_posted(date_posted)

    skills = _param(params, "skills")
    if skills:
        update["skills"] = _as_list(skills)

    location = _param(params, "location")
    if location:
        update["location"] = str(location)

    role = _param(params, "role")
    if role:
        update["role"] = str(role)

    return {"filter_update": FilterUpdate(**update)}


def node_help(state: RouterState) -> Dict[str, Any]:
    question = state.last_message.lower()
    for keywords, answer in HELP_TOPICS:
        if any(k in question for k in keywords):
            return {"response": answer}
    return {"response": HELP_GENERIC}


def node_general_chat(state: RouterState) -> Dict[str, Any]:
    try:
        resp = state.llm(CHAT_PROMPT.format(message=state.last_message), temperature=INTENT_TEMPERATURE)
    except CompletionError as e:
        logger.warning(f"General chat completion failed: {e}")
        return {"response": CHAT_FALLBACK}
    return {"response": resp.strip() or CHAT_FALLBACK}


def render_filter_summary(update: FilterUpdate) -> Optional[str]:
    parts = []
    for key, value in update.changes().items():
        if value is None or value == "" or value == []:
            continue
        if isinstance(value, list):
            parts.append(f"{key}: {', '.join(str(v) for v in value)}")
        else:
            parts.append(f"{key}: {value}")
    if not parts:
        return None
    return f"Filters updated: {', '.join(parts)}"


def node_generate_response(state: RouterState) -> Dict[str, Any]:
    if state.filter_update is not None and not state.filter_update.is_empty():
        summary = render_filter_summary(state.filter_update)
        if summary:
            return {"response": f"{state.response}\n\n{summary}" if state.response else summary}
    return {"response": state.response or PROCESSING_RESPONSE}


HANDLERS = {
    "search_jobs": node_search_jobs,
    "update_filters": node_update_filters,
    "help": node_help,
    "general_chat": node_general_chat,
}


def _merge(state: RouterState, delta: Dict[str, Any]) -> RouterState:
    return replace(state, **delta) if delta else state


def run_sequential(state: RouterState) -> RouterState:
    # detect
    state = _merge(state, node_detect_intent(state))
    # route
    state = _merge(state, node_route(state))
    # handle
    state = _merge(state, HANDLERS[state.handler](state))
    # respond
    return _merge(state, node_generate_response(state))


def process_message(
    user_id: str,
    message: str,
    conversation_state: ConversationState,
    llm: Completion = None,
) -> AssistantReply:
    """Run one chat turn. Never raises; the caller persists the turn."""
    try:
        initial = RouterState(
            messages=[*conversation_state.messages, Message(role="user", content=message)],
            current_filters=dict(conversation_state.current_filters or {}),
            user_id=user_id,
            llm=llm or complete,
        )
        result = run_sequential(initial)
    except Exception as e:
        logger.error(f"Assistant pipeline failed for user {user_id}: {e}", exc_info=True)
        return AssistantReply(response=APOLOGY)

    update = result.filter_update
    if update is not None and update.is_empty():
        update = None
    return AssistantReply(response=result.response or NO_RESPONSE, filter_update=update)
