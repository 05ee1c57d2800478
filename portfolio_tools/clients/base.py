"""
Shared plumbing for the outbound HTTP clients.
"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from shared.errors import AuthenticationError, ExternalServiceError
from shared.logging import get_logger


@dataclass
class ApiClientConfig:
    """Where a backend lives and the bearer token to present."""

    base_url: str = "http://localhost:4000"
    token: Optional[str] = None
    timeout: float = 10.0


def error_message(response: httpx.Response, fallback: str) -> str:
    """Pull a human message out of an error body, else *fallback*."""
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str) and error:
            return error
        if isinstance(body.get("message"), str) and body["message"]:
            return body["message"]
    return fallback


class JsonApiClient:
    """Base for clients of JSON backends using bearer auth."""

    service_name = "api"

    def __init__(self, config: ApiClientConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.transport = transport
        self.logger = get_logger(f"portfolio_tools.clients.{self.service_name}")

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url.rstrip("/"),
            headers=self._headers(),
            timeout=self.config.timeout,
            transport=self.transport,
        )

    async def _request(self, method: str, path: str, failure: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            self.logger.error("Backend unreachable", method=method, path=path, error=str(e))
            raise ExternalServiceError(self.service_name, f"{failure}: {e}", details={"path": path}) from e

        if response.status_code == 401:
            raise AuthenticationError("Unauthorized")
        if response.is_error:
            message = error_message(response, failure)
            self.logger.warning(
                "Backend request failed", method=method, path=path, status_code=response.status_code, error=message
            )
            raise ExternalServiceError(
                self.service_name, message, details={"status_code": response.status_code, "path": path}
            )
        return response

    async def _json(self, method: str, path: str, failure: str, **kwargs: Any) -> Any:
        response = await self._request(method, path, failure, **kwargs)
        if not response.content:
            return None
        return response.json()
