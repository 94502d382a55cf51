"""
Pytest configuration for the summarizer tests.

The Gemini endpoint is never contacted: every client is built on an
``httpx.MockTransport`` that records requests and replays a canned response.
"""

import json
from typing import Any, Optional

import httpx
import pytest

from src.services.processors.extraction_processor import ExtractionProcessor
from src.services.processors.gemini_client import GeminiClient
from src.services.processors.summary_processor import SummaryProcessor

TEST_API_URL = "https://gemini.test/v1beta/models/test-model:generateContent"


def gemini_response(text: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class FakeEndpoint:
    """Callable handler for httpx.MockTransport."""

    def __init__(
        self,
        status_code: int = 200,
        json_body: Optional[Any] = None,
        exc: Optional[Exception] = None,
    ):
        self.status_code = status_code
        self.json_body = json_body if json_body is not None else gemini_response("")
        self.exc = exc
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status_code, json=self.json_body)

    @property
    def last_body(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)

    @property
    def last_prompt(self) -> str:
        return self.last_body["contents"][0]["parts"][0]["text"]


def make_client(endpoint: FakeEndpoint) -> GeminiClient:
    return GeminiClient(
        api_key="test-key",
        api_url=TEST_API_URL,
        transport=httpx.MockTransport(endpoint),
    )


@pytest.fixture
def endpoint() -> FakeEndpoint:
    return FakeEndpoint(json_body=gemini_response("Hello world"))


@pytest.fixture
def extraction(endpoint) -> ExtractionProcessor:
    return ExtractionProcessor(client=make_client(endpoint))


@pytest.fixture
def summarizer(endpoint) -> SummaryProcessor:
    return SummaryProcessor(client=make_client(endpoint))
