import os
import re
import json
from typing import Optional
from dotenv import load_dotenv
import requests

from app.utils.exceptions import CompletionError

load_dotenv()

OLLAMA = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
LLM_MODEL = os.getenv("LLM_MODEL", "llama3.1:8b")
LLM_TIMEOUT = int(os.getenv("LLM_TIMEOUT", "120"))

_LEADING_NUMBER = re.compile(r"\s*([-+]?\d+(?:\.\d+)?)")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_RANGE = re.compile(r"\d+(?:\.\d+)?\s*[-\u2013]\s*\d+(?:\.\d+)?")


def complete(prompt: str, temperature: float = 0.2, model: str = None) -> str:
    """Text completion against an Ollama-compatible endpoint.

    Any transport, status or payload problem surfaces as CompletionError so
    call sites only have one failure type to recover from.
    """
    model = model or LLM_MODEL
    url = f"{OLLAMA}/api/generate"
    try:
        resp = requests.post(
            url,
            json={
                "model": model,
                "prompt": prompt,
                "options": {"temperature": temperature},
                "stream": False  # important
            },
            timeout=LLM_TIMEOUT,
        )
        resp.raise_for_status()
        data = resp.json()
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        raise CompletionError(f"Completion request failed: {e}", status_code=status, model_name=model, cause=e) from e
    except (requests.RequestException, ValueError) as e:
        raise CompletionError(f"Completion request failed: {e}", model_name=model, cause=e) from e

    text = data.get("response") if isinstance(data, dict) else None
    if not isinstance(text, str):
        raise CompletionError("Completion payload has no response text", model_name=model)
    return text


def safe_json(s: str, fallback: Optional[dict]):
    try:
        # heuristics to find JSON inside
        start = s.find("{")
        end = s.rfind("}")
        if start >= 0 and end >= 0:
            data = json.loads(s[start:end+1])
            return data if isinstance(data, dict) else fallback
        return fallback
    except (ValueError, AttributeError):
        return fallback


def safe_float(s: str, fallback: Optional[float]):
    """Rating from a model reply, or fallback.

    A leading number wins. Otherwise the first number outside a range such
    as "0-30" is used, so scale mentions never read as the rating.
    """
    if not isinstance(s, str):
        return fallback
    m = _LEADING_NUMBER.match(s)
    if m and not _RANGE.match(s.lstrip()):
        return float(m.group(1))
    m = _NUMBER.search(_RANGE.sub(" ", s))
    return float(m.group(0)) if m else fallback
