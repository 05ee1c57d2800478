"""
Client for a local OpenAI-compatible chat server (LM Studio, Ollama).
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from shared.errors import ExternalServiceError
from shared.logging import get_logger

from .base import error_message

PLACEHOLDER_API_KEY = "lm-studio"


@dataclass
class LocalLlmConfig:
    base_url: str = "http://localhost:1234/v1"
    chat_model: str = "phi-3-mini-4k-instruct"
    api_key: str = PLACEHOLDER_API_KEY
    timeout: float = 120.0


class LocalLlmClient:
    """Chat completions against a locally running model server."""

    service_name = "local-llm"

    def __init__(self, config: LocalLlmConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.transport = transport
        self.logger = get_logger("portfolio_tools.clients.local_llm")

    @property
    def base_url(self) -> str:
        url = self.config.base_url
        return url[:-1] if url.endswith("/") else url

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        key = self.config.api_key
        if key and key != PLACEHOLDER_API_KEY and key.strip():
            headers["Authorization"] = f"Bearer {key}"
        return headers

    async def _post(self, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout, transport=self.transport) as client:
                response = await client.post(url, json=body, headers=self._headers())
        except httpx.ConnectError as e:
            raise ExternalServiceError(
                self.service_name,
                f"Could not connect to Local AI at {self.config.base_url}. "
                "Ensure your local server (e.g., LM Studio, Ollama) is running.",
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(self.service_name, f"Local AI API call failed: {e}") from e

        if response.is_error:
            message = error_message(
                response,
                f"LM Studio API request failed with status {response.status_code}: {response.text}",
            )
            self.logger.error("Local AI request failed", endpoint=endpoint, status_code=response.status_code, error=message)
            raise ExternalServiceError(self.service_name, message, details={"status_code": response.status_code})
        return response.json()

    async def chat_completion(
        self,
        messages: List[Dict[str, str]],
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
    ) -> str:
        """Send *messages* and return the first choice's content."""
        body: Dict[str, Any] = {"model": self.config.chat_model, "messages": messages, "temperature": temperature}
        if max_tokens is not None:
            body["max_tokens"] = max_tokens

        data = await self._post("/chat/completions", body)
        choices = data.get("choices") or []
        content = choices[0].get("message", {}).get("content") if choices else None
        if not isinstance(content, str):
            raise ExternalServiceError(self.service_name, "Local AI returned no completion text")
        return content.strip()
