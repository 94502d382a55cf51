"""Async client for the Gemini generateContent endpoint.

Uses httpx for async HTTP. One POST per call, no retries.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.config import settings

logger = logging.getLogger(__name__)


class GenerationConfig(BaseModel):
    """Decoding parameters, serialized with the endpoint's camelCase keys."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    temperature: float
    top_k: int
    top_p: float
    max_output_tokens: int


class GeminiAPIError(Exception):
    """Non-2xx response from the endpoint."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        super().__init__(message or f"HTTP {status_code}")
        self.status_code = status_code
        self.message = message


class GeminiTransportError(Exception):
    """The request never produced an HTTP response."""


def text_part(text: str) -> dict[str, Any]:
    return {"text": text}


def inline_data_part(mime_type: str, data: str) -> dict[str, Any]:
    return {"inline_data": {"mime_type": mime_type, "data": data}}


def build_request_body(parts: list[dict[str, Any]], config: GenerationConfig) -> dict[str, Any]:
    return {
        "contents": [{"parts": parts}],
        "generationConfig": config.model_dump(by_alias=True),
    }


def first_candidate_text(data: Any) -> str:
    """Text of the first candidate's first part, or "" when any level is missing."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        message = response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return None
    return message or None


class GeminiClient:
    """
    Thin wrapper around ``httpx.AsyncClient`` for ``generateContent``.

    The API key travels as the ``key`` query parameter and is never logged.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_key: Gemini API key (default: settings.gemini_api_key)
            api_url: generateContent URL (default: settings.gemini_api_url)
            timeout: Request timeout in seconds (default: settings.gemini_timeout, None = no timeout)
            transport: Optional httpx transport, used by tests to mock the endpoint
        """
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.api_url = api_url or settings.gemini_api_url
        self.timeout = timeout if timeout is not None else settings.gemini_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy init)."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def generate(self, parts: list[dict[str, Any]], config: GenerationConfig) -> str:
        """
        Send one generateContent request.

        Returns:
            Text of the first candidate's first part ("" if absent)

        Raises:
            GeminiAPIError: On any non-2xx status
            GeminiTransportError: On network/transport failure
        """
        client = await self._get_client()
        body = build_request_body(parts, config)

        try:
            response = await client.post(
                self.api_url,
                params={"key": self.api_key},
                json=body,
            )
        except httpx.HTTPError as e:
            logger.error(f"Gemini request failed: {e.__class__.__name__}: {e}")
            raise GeminiTransportError(str(e) or e.__class__.__name__) from e

        if not response.is_success:
            message = _error_message(response)
            logger.error(f"Gemini returned HTTP {response.status_code}: {message}")
            raise GeminiAPIError(response.status_code, message)

        try:
            data = response.json()
        except ValueError:
            logger.warning("Gemini returned a non-JSON success body")
            return ""
        return first_candidate_text(data)


gemini_client = GeminiClient()
