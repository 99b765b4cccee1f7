"""Unit tests for the generation and classification HTTP clients"""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from thought_gateway.domain.exceptions import (
    ClassificationServiceError,
    GenerationServiceError,
    MalformedResponseError,
)
from thought_gateway.infrastructure.clients.classification import OTHER_LABEL, ClassificationClient
from thought_gateway.infrastructure.clients.generation import GenerationClient


BASE_URL = "http://generation.test/v1"


def make_response(status_code: int = 200, body=None, content: bytes = None) -> httpx.Response:
    request = httpx.Request("POST", f"{BASE_URL}/responses")
    if content is not None:
        return httpx.Response(status_code, content=content, request=request)
    return httpx.Response(status_code, json=body if body is not None else {}, request=request)


def text_body(text: str) -> dict:
    return {"output": [{"type": "message", "content": [{"type": "output_text", "text": text}]}]}


@pytest.fixture
def generation_client() -> GenerationClient:
    return GenerationClient(base_url=BASE_URL, api_key="test-key", max_retries=3, backoff_base=0)


@pytest.fixture
def classification_client() -> ClassificationClient:
    return ClassificationClient(base_url=BASE_URL, api_key="test-key", max_retries=2, backoff_base=0)


async def test_generate_batch_returns_raw_text(generation_client):
    """Test output text is extracted from the message content"""
    mock_post = AsyncMock(return_value=make_response(body=text_body("line one\nline two")))
    with patch("httpx.AsyncClient.post", mock_post):
        text = await generation_client.generate_batch("dog", 25)

    assert text == "line one\nline two"
    _, kwargs = mock_post.call_args
    assert kwargs["headers"] == {"Authorization": "Bearer test-key"}
    assert "a dog" in kwargs["json"]["input"][1]["content"]


async def test_output_text_shortcut_preferred(generation_client):
    body = {"output_text": "  I deserve the whole sandwich 🥪  ", "output": []}
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=make_response(body=body))):
        text = await generation_client.generate_single("dog", "Scene tags: kitchen")

    assert text == "I deserve the whole sandwich 🥪"


async def test_retries_server_errors_then_succeeds(generation_client):
    """Test 5xx responses are retried with backoff"""
    mock_post = AsyncMock(side_effect=[make_response(503), make_response(body=text_body("ok"))])
    with patch("httpx.AsyncClient.post", mock_post):
        assert await generation_client.generate_batch("cat", 5) == "ok"

    assert mock_post.call_count == 2


async def test_gives_up_after_max_retries(generation_client):
    mock_post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
    with patch("httpx.AsyncClient.post", mock_post):
        with pytest.raises(GenerationServiceError):
            await generation_client.generate_batch("cat", 5)

    assert mock_post.call_count == 3


async def test_client_errors_fail_fast(generation_client):
    """Test 4xx other than 429 is not retried"""
    mock_post = AsyncMock(return_value=make_response(401))
    with patch("httpx.AsyncClient.post", mock_post):
        with pytest.raises(GenerationServiceError, match="401"):
            await generation_client.generate_batch("cat", 5)

    assert mock_post.call_count == 1


async def test_timeout_maps_to_generation_error(generation_client):
    with patch("httpx.AsyncClient.post", AsyncMock(side_effect=httpx.ReadTimeout("slow"))):
        with pytest.raises(GenerationServiceError, match="timeout"):
            await generation_client.generate_batch("cat", 5)


async def test_non_json_body_is_malformed(generation_client):
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=make_response(content=b"<html>oops</html>"))):
        with pytest.raises(MalformedResponseError):
            await generation_client.generate_batch("cat", 5)


async def test_unexpected_shape_is_malformed(generation_client):
    body = {"output": "not a list"}
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=make_response(body=body))):
        with pytest.raises(MalformedResponseError):
            await generation_client.generate_batch("cat", 5)


async def test_classify_subject_returns_label(classification_client):
    answer = json.dumps({"ok": True, "category": "animal", "label": "dog"})
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=make_response(body=text_body(answer)))):
        assert await classification_client.classify_subject("data:image/png;base64,AAAA") == "dog"


async def test_classify_subject_unsure_is_other(classification_client):
    answer = json.dumps({"ok": False, "category": "animal", "label": "dog"})
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=make_response(body=text_body(answer)))):
        assert await classification_client.classify_subject("data:image/png;base64,AAAA") == OTHER_LABEL


async def test_classify_subject_invalid_answer(classification_client):
    """Test a non-conforming answer maps to a classification error"""
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=make_response(body=text_body("a dog, probably")))):
        with pytest.raises(ClassificationServiceError):
            await classification_client.classify_subject("data:image/png;base64,AAAA")


async def test_classify_transport_failure(classification_client):
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=make_response(500))):
        with pytest.raises(ClassificationServiceError):
            await classification_client.classify_subject("data:image/png;base64,AAAA")


async def test_describe_scene_limits_tags(classification_client):
    tags = ", ".join(f"Tag{i}" for i in range(15)) + ", ,"
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=make_response(body=text_body(tags)))):
        result = await classification_client.describe_scene("data:image/png;base64,AAAA")

    assert result == [f"tag{i}" for i in range(10)]
