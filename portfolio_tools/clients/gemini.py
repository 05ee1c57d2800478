"""
Gemini REST client with a streaming chat session.

Uses the public ``generativelanguage`` REST endpoints directly;
``streamGenerateContent?alt=sse`` yields ``data:`` lines carrying partial
candidates.
"""

import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from shared.errors import ExternalServiceError, ValidationError
from shared.logging import get_logger

from .base import error_message

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"

SEARCH_FUNCTION_INSTRUCTIONS = """
Available function:
  • searchProjects(query: string, opts?: { type?: 'Video'|'Photo'|'Cinemagraph', dateFrom?: string, dateTo?: string, includeTags?: string[], excludeTags?: string[] }) → returns matching project objects.

When a user asks to find or filter projects, respond **only** with JSON in this exact shape:

{ "name": "searchProjects", "arguments": { "query": "<their search phrase>", "opts": { /* optional filters */ } } }

Rules:
- Use type when they specify media (e.g., "videos", "photos", "cinemagraphs").
- Use dateFrom/dateTo for ranges like "in 2024" (dateFrom: "01/2024", dateTo: "12/2024") or "since 2019" (dateFrom: "2019").
- Use includeTags for explicit names in the corpus (e.g., ["Michael"], ["Bernal Heights Park"])
- Use excludeTags if they say things like "not Michael".
- Keep other text in query; geo/alias expansion is handled locally.

Do not add any other keys, prose, or code-fences.
"""


@dataclass
class GeminiConfig:
    api_key: Optional[str]
    model: str = "gemini-2.5-flash"
    system_instruction: Optional[str] = SEARCH_FUNCTION_INSTRUCTIONS
    base_url: str = GEMINI_API_URL
    timeout: float = 60.0


def _candidate_text(data: Dict[str, Any]) -> str:
    parts = []
    for candidate in data.get("candidates") or []:
        for part in (candidate.get("content") or {}).get("parts") or []:
            if isinstance(part.get("text"), str):
                parts.append(part["text"])
    return "".join(parts)


class GeminiClient:
    """Thin async wrapper over generateContent and streamGenerateContent."""

    service_name = "gemini"

    def __init__(self, config: GeminiConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not config.api_key:
            raise ValidationError("Gemini API key is not configured.")
        self.config = config
        self.transport = transport
        self.logger = get_logger("portfolio_tools.clients.gemini")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            headers={"x-goog-api-key": self.config.api_key, "Content-Type": "application/json"},
            timeout=self.config.timeout,
            transport=self.transport,
        )

    def _body(self, contents: List[Dict[str, Any]]) -> Dict[str, Any]:
        body: Dict[str, Any] = {"contents": contents}
        if self.config.system_instruction:
            body["systemInstruction"] = {"parts": [{"text": self.config.system_instruction}]}
        return body

    def _raise_for(self, response: httpx.Response, body_text: str = "") -> None:
        if response.is_error:
            message = error_message(response, body_text or f"Gemini request failed with status {response.status_code}")
            self.logger.error("Gemini request failed", status_code=response.status_code, error=message)
            raise ExternalServiceError(self.service_name, message, details={"status_code": response.status_code})

    async def generate_content(self, prompt: str) -> str:
        path = f"/models/{self.config.model}:generateContent"
        body = self._body([{"role": "user", "parts": [{"text": prompt}]}])
        try:
            async with self._client() as client:
                response = await client.post(path, json=body)
        except httpx.HTTPError as e:
            raise ExternalServiceError(self.service_name, f"Failed to generate content with Gemini: {e}") from e
        self._raise_for(response)
        return _candidate_text(response.json())

    async def stream_content(self, contents: List[Dict[str, Any]]) -> AsyncIterator[str]:
        """Yield text chunks for *contents* as they arrive."""
        path = f"/models/{self.config.model}:streamGenerateContent"
        try:
            async with self._client() as client:
                async with client.stream("POST", path, params={"alt": "sse"}, json=self._body(contents)) as response:
                    if response.is_error:
                        await response.aread()
                        self._raise_for(response)
                    async for line in response.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        payload = line[len("data:"):].strip()
                        if not payload:
                            continue
                        text = _candidate_text(json.loads(payload))
                        if text:
                            yield text
        except httpx.HTTPError as e:
            raise ExternalServiceError(self.service_name, f"Failed to send chat message to Gemini: {e}") from e

    def start_chat(self) -> "GeminiChatSession":
        return GeminiChatSession(self)


class GeminiChatSession:
    """Multi-turn conversation; history grows with each completed exchange."""

    def __init__(self, client: GeminiClient):
        self.client = client
        self.history: List[Dict[str, Any]] = []

    async def send_message_stream(self, message: str) -> AsyncIterator[str]:
        user_turn = {"role": "user", "parts": [{"text": message}]}
        reply = ""
        async for chunk in self.client.stream_content(self.history + [user_turn]):
            reply += chunk
            yield chunk
        self.history.extend([user_turn, {"role": "model", "parts": [{"text": reply}]}])

    async def send_message(self, message: str) -> str:
        return "".join([chunk async for chunk in self.send_message_stream(message)])
