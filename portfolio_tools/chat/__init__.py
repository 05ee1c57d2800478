"""
Portfolio chat assistant: reply payload parsing and the conversation loop.
"""

from .assistant import ChatAssistant, ChatSession, format_search_reply
from .payload import extract_assistant_payload, is_chat_reset_payload

__all__ = [
    "ChatAssistant",
    "ChatSession",
    "extract_assistant_payload",
    "format_search_reply",
    "is_chat_reset_payload",
]
