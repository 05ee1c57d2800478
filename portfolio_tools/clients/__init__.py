"""
Outbound HTTP clients: portfolio API, paystub API, local LLM server, Gemini.
"""

from .api_client import PortfolioApiClient
from .base import ApiClientConfig, JsonApiClient
from .gemini import GeminiChatSession, GeminiClient, GeminiConfig
from .local_llm import LocalLlmClient, LocalLlmConfig
from .paystub import PaystubApiClient

__all__ = [
    "ApiClientConfig",
    "GeminiChatSession",
    "GeminiClient",
    "GeminiConfig",
    "JsonApiClient",
    "LocalLlmClient",
    "LocalLlmConfig",
    "PaystubApiClient",
    "PortfolioApiClient",
]
