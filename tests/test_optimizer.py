"""Tests for the prompt optimizer."""

import json

import httpx
import pytest

from prompt_library.core.optimizer import (
    InvalidApiKeyError,
    MissingApiKeyError,
    OptimizationConfig,
    OptimizationNetworkError,
    OptimizationResponseError,
    PromptOptimizer,
    validate_api_key_format,
)

VALID_KEY = "sk-ant-REDACTED"


def _optimizer(handler) -> PromptOptimizer:
    return PromptOptimizer(VALID_KEY, transport=httpx.MockTransport(handler))


class TestKeyValidation:
    def test_valid_format(self):
        assert validate_api_key_format(VALID_KEY) is True

    @pytest.mark.parametrize("key", ["sk-ant-api", "sk-openai-0123456789abcdef", "x" * 40])
    def test_invalid_format(self, key):
        assert validate_api_key_format(key) is False


class TestOptimize:
    @pytest.mark.asyncio
    async def test_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"content": [{"type": "text", "text": "Better prompt"}]})

        result = await _optimizer(handler).optimize(
            "Write a poem", OptimizationConfig(model="haiku", max_tokens=500, temperature=0.2)
        )
        assert result == "Better prompt"
        assert seen["headers"]["x-api-key"] == VALID_KEY
        assert seen["headers"]["anthropic-version"] == "2023-06-01"
        assert seen["body"]["model"] == "claude-3-5-haiku-20241022"
        assert seen["body"]["max_tokens"] == 500
        assert "Write a poem" in seen["body"]["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_full_model_id_passed_through(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["model"] = json.loads(request.content)["model"]
            return httpx.Response(200, json={"content": [{"text": "ok"}]})

        await _optimizer(handler).optimize("p", OptimizationConfig(model="claude-custom"))
        assert seen["model"] == "claude-custom"

    @pytest.mark.asyncio
    async def test_configured_default_model(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["model"] = json.loads(request.content)["model"]
            return httpx.Response(200, json={"content": [{"text": "ok"}]})

        optimizer = PromptOptimizer(
            VALID_KEY, transport=httpx.MockTransport(handler), default_model="opus"
        )
        await optimizer.optimize("p")
        assert seen["model"] == "claude-3-opus-20240229"

    @pytest.mark.asyncio
    async def test_missing_key(self):
        optimizer = PromptOptimizer(api_key="")
        assert optimizer.configured is False
        with pytest.raises(MissingApiKeyError):
            await optimizer.optimize("Write a poem")

    @pytest.mark.asyncio
    async def test_malformed_key_never_calls_api(self):
        def handler(request):
            raise AssertionError("request should not be sent")

        optimizer = PromptOptimizer("not-a-key", transport=httpx.MockTransport(handler))
        with pytest.raises(InvalidApiKeyError):
            await optimizer.optimize("Write a poem")

    @pytest.mark.asyncio
    async def test_empty_prompt(self):
        with pytest.raises(ValueError):
            await _optimizer(lambda r: httpx.Response(200)).optimize("   ")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_rejected_key(self, status):
        optimizer = _optimizer(lambda r: httpx.Response(status, json={}))
        with pytest.raises(InvalidApiKeyError):
            await optimizer.optimize("Write a poem")

    @pytest.mark.asyncio
    async def test_api_error_message(self):
        body = {"error": {"type": "overloaded_error", "message": "Overloaded"}}
        optimizer = _optimizer(lambda r: httpx.Response(529, json=body))
        with pytest.raises(OptimizationResponseError, match="Overloaded") as exc_info:
            await optimizer.optimize("Write a poem")
        assert exc_info.value.status_code == 529

    @pytest.mark.asyncio
    async def test_api_error_without_json(self):
        optimizer = _optimizer(lambda r: httpx.Response(500, text="boom"))
        with pytest.raises(OptimizationResponseError, match="status 500"):
            await optimizer.optimize("Write a poem")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body", [{"content": []}, {"content": [{"type": "tool_use"}]}, {"id": "msg"}, ["x"]]
    )
    async def test_malformed_body(self, body):
        optimizer = _optimizer(lambda r: httpx.Response(200, json=body))
        with pytest.raises(OptimizationResponseError, match="Invalid response format"):
            await optimizer.optimize("Write a poem")

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(OptimizationNetworkError):
            await _optimizer(handler).optimize("Write a poem")
