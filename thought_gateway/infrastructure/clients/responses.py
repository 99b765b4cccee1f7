"""HTTP client for an OpenAI-compatible Responses API, with retry and schema decoding"""

import asyncio
from typing import Any, Dict, List, Literal, Optional

import httpx
from pydantic import BaseModel, ValidationError

from thought_gateway.config import settings
from thought_gateway.domain.exceptions import GenerationServiceError, MalformedResponseError
from thought_gateway.infrastructure.observability.metrics import (
    generation_failure_counter,
    generation_latency_histogram,
)


class OutputContent(BaseModel):
    type: str
    text: Optional[str] = None


class OutputItem(BaseModel):
    type: str
    content: List[OutputContent] = []


class ResponsesPayload(BaseModel):
    """Subset of a Responses API body that carries generated text"""

    output_text: Optional[str] = None
    output: List[OutputItem] = []

    def text(self) -> str:
        if self.output_text:
            return self.output_text
        for item in self.output:
            for part in item.content:
                if part.type == "output_text" and part.text:
                    return part.text
        return ""


class ClassificationPayload(BaseModel):
    """JSON document the classifier is asked to return"""

    ok: bool
    category: Literal["human", "animal"]
    label: str


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500 or exc.response.status_code == 429
    return isinstance(exc, httpx.RequestError)


class ResponsesClient:
    """Base client shared by the generation and classification clients"""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
    ):
        self.base_url = (base_url or settings.generation_api_base).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.generation_api_key
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = max_retries or settings.generation_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.generation_backoff_base

    async def create_response(self, body: Dict[str, Any]) -> ResponsesPayload:
        """
        POST a request to /responses and decode the body.

        Retry strategy:
        - Exponential backoff: base, 2*base, 4*base...
        - Retries on 5xx, 429 and network failures; other 4xx fail fast

        Raises:
            GenerationServiceError: When all attempts fail
            MalformedResponseError: When the body does not match the schema
        """
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while True:
                try:
                    with generation_latency_histogram.time():
                        response = await client.post(f"{self.base_url}/responses", json=body, headers=headers)
                        response.raise_for_status()
                    data = response.json()
                    break
                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    generation_failure_counter.inc()

                    if attempt >= self.max_retries or not _is_retryable(e):
                        if isinstance(e, httpx.TimeoutException):
                            raise GenerationServiceError(f"Generation timeout after {self.timeout}s") from e
                        if isinstance(e, httpx.HTTPStatusError):
                            raise GenerationServiceError(f"Generation error: {e.response.status_code}") from e
                        raise GenerationServiceError(f"Generation request failed: {e}") from e

                    await asyncio.sleep(self.backoff_base * (2 ** (attempt - 1)))
                except ValueError as e:
                    raise MalformedResponseError(f"Generation response is not JSON: {e}") from e

        try:
            return ResponsesPayload.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(f"Unexpected generation response shape: {e}") from e
