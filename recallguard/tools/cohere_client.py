"""
Cohere HTTP client for RecallGuard.

Thin async wrapper over the Cohere REST API (embed, rerank, chat) shared by
the embedding provider and the alert message generator. Without an API key
the client reports itself unavailable and every call raises
ProviderUnavailableError; callers turn that into their fallback path.
"""

import logging
from typing import Any, Optional

import httpx

from recallguard.config.settings import CohereConfig
from recallguard.utils.error_handling import ProviderUnavailableError

logger = logging.getLogger(__name__)


class CohereClient:
    """Client for the Cohere v1 endpoints."""

    def __init__(
        self,
        config: Optional[CohereConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or CohereConfig()
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def available(self) -> bool:
        return self.config.enabled

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
            )
        return self._client

    async def post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        POST a JSON payload and return the decoded body.

        Raises:
            ProviderUnavailableError: When no API key is configured, the
                request fails, or the response is not a JSON object.
        """
        if not self.available:
            raise ProviderUnavailableError("Cohere API key not configured")

        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            response = await self._get_client().post(path, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            logger.error(f"Cohere {path} failed with status {status}")
            raise ProviderUnavailableError(f"Cohere {path} returned {status}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Cohere {path} request error: {e}")
            raise ProviderUnavailableError(f"Cohere {path} request failed: {e}") from e

        if not isinstance(data, dict):
            raise ProviderUnavailableError(f"Cohere {path} returned an unexpected body")
        return data

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
