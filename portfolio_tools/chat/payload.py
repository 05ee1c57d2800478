"""
Structured payload extraction from assistant replies.

The model is told to answer search requests with bare JSON, but replies
often arrive fenced or wrapped in prose, so several strategies are tried.
"""

import json
import re
from typing import Any, Callable, List, Mapping, Optional

from shared.logging import get_logger

logger = get_logger(__name__)

_LEADING_FENCE = re.compile(r"^```json\n?")
_TRAILING_FENCE = re.compile(r"```$")
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*\n([\s\S]*?)\n```", re.IGNORECASE)
_LOOSE_SEARCH_CALL = re.compile(r'(\{[\s\S]*"name"\s*:\s*"searchProjects"[\s\S]*\})')


def _parse_json(candidate: str, log_on_error: bool = False) -> Any:
    try:
        return json.loads(candidate)
    except ValueError as exc:
        if log_on_error:
            logger.warning("Could not parse JSON from assistant payload", error=str(exc))
        return None


def _direct(text: str) -> Any:
    sanitized = _TRAILING_FENCE.sub("", _LEADING_FENCE.sub("", text.strip()))
    return _parse_json(sanitized)


def _fenced(text: str) -> Any:
    match = _FENCED_BLOCK.search(text)
    return _parse_json(match.group(1), log_on_error=True) if match else None


def _loose(text: str) -> Any:
    match = _LOOSE_SEARCH_CALL.search(text)
    return _parse_json(match.group(1), log_on_error=True) if match else None


STRATEGIES: List[Callable[[str], Any]] = [_direct, _fenced, _loose]


def extract_assistant_payload(text: str) -> Optional[Any]:
    """Return the first truthy JSON value any strategy finds in *text*, else None."""
    if not text:
        return None
    for strategy in STRATEGIES:
        payload = strategy(text)
        if payload:
            return payload
    return None


def is_chat_reset_payload(payload: Any) -> bool:
    if not payload or not isinstance(payload, Mapping):
        return False

    name = payload.get("name")
    action = payload.get("action")
    name = name.lower() if isinstance(name, str) else ""
    action = action.lower() if isinstance(action, str) else ""

    if "reset" in name or "reset" in action:
        return True
    return payload.get("reset") is True or payload.get("type") == "reset"
