"""Prompt optimization through the Anthropic Messages API.

The optimizer only produces text. Applying it to a stored prompt is a
separate, explicit step (``PromptStore.apply_optimization``), so a failed
call can never change a prompt.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

import httpx
import structlog

from prompt_library.config import get_settings

logger = structlog.get_logger()

ANTHROPIC_VERSION = "2023-06-01"

CLAUDE_MODELS = {
    "haiku": "claude-3-5-haiku-20241022",
    "sonnet": "claude-3-5-sonnet-20241022",
    "opus": "claude-3-opus-20240229",
}

OPTIMIZER_SYSTEM_PROMPT = """You are an expert prompt engineer specialized in optimizing AI prompts. Your task is to improve the given prompt to be more effective and produce better results.

When optimizing, focus on:
1. **Clarity & Specificity**: Make instructions crystal clear and unambiguous
2. **Context**: Add relevant background information and constraints
3. **Structure**: Organize the prompt logically with clear sections
4. **Output Format**: Specify exactly what format the response should take
5. **Examples**: Include relevant examples when helpful
6. **Edge Cases**: Address potential ambiguities or special cases
7. **Role Definition**: Clearly define the AI's role and expertise
8. **Success Criteria**: Define what makes a good response

Return ONLY the optimized prompt without any explanations, commentary, or meta-discussion about the optimization."""


class OptimizationError(Exception):
    """Base class for every optimization failure."""


class MissingApiKeyError(OptimizationError):
    """No API key is configured."""


class InvalidApiKeyError(OptimizationError):
    """The key is malformed or was rejected by the API."""


class OptimizationNetworkError(OptimizationError):
    """The API could not be reached."""


class OptimizationResponseError(OptimizationError):
    """The API answered with an error status or an unusable body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def validate_api_key_format(api_key: str) -> bool:
    return api_key.startswith("sk-ant-api") and len(api_key) > 20


@dataclass
class OptimizationConfig:
    """Per-request knobs; ``model`` is an alias from CLAUDE_MODELS or a full model id.

    Without a model the optimizer's configured default is used.
    """

    model: str | None = None
    max_tokens: int = 2000
    temperature: float = 0.7


class PromptOptimizer:
    """Sends a prompt to Claude and returns the rewritten text."""

    def __init__(
        self,
        api_key: str | None,
        api_url: str = "https://api.anthropic.com/v1/messages",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
        default_model: str = "sonnet",
    ) -> None:
        self.api_key = api_key or None
        self.api_url = api_url
        self.default_model = default_model
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return self.api_key is not None

    async def optimize(self, prompt: str, config: OptimizationConfig | None = None) -> str:
        """Return an optimized version of *prompt*.

        Raises an OptimizationError subclass describing why no text could be
        produced.
        """
        if not prompt or not prompt.strip():
            raise ValueError("Cannot optimize an empty prompt")
        if not self.api_key:
            raise MissingApiKeyError(
                "Claude API key not configured. Set LIBRARY_ANTHROPIC_API_KEY."
            )
        if not validate_api_key_format(self.api_key):
            raise InvalidApiKeyError("Claude API key has an invalid format")

        config = config or OptimizationConfig()
        alias = config.model or self.default_model
        model = CLAUDE_MODELS.get(alias, alias)
        payload = {
            "model": model,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "system": OPTIMIZER_SYSTEM_PROMPT,
            "messages": [
                {
                    "role": "user",
                    "content": f"Optimize this prompt to make it more effective:\n\n{prompt}",
                }
            ],
        }
        headers = {"x-api-key": self.api_key, "anthropic-version": ANTHROPIC_VERSION}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("optimizer.network_error", error=str(e))
            raise OptimizationNetworkError(
                "Network error: unable to reach the Claude API"
            ) from e

        if resp.status_code in (401, 403):
            raise InvalidApiKeyError(f"Claude API rejected the key ({resp.status_code})")
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("error", {}).get("message")
            except (ValueError, AttributeError):
                detail = None
            logger.warning("optimizer.api_error", status=resp.status_code, detail=detail)
            raise OptimizationResponseError(
                detail or f"API request failed with status {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            text = resp.json()["content"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise OptimizationResponseError("Invalid response format from Claude API") from e
        if not isinstance(text, str) or not text:
            raise OptimizationResponseError("Invalid response format from Claude API")

        logger.info("optimizer.completed", model=model, chars=len(text))
        return text


@lru_cache
def get_optimizer() -> PromptOptimizer:
    """Get the optimizer configured from settings."""
    settings = get_settings()
    return PromptOptimizer(
        settings.anthropic_api_key,
        api_url=settings.anthropic_api_url,
        default_model=settings.optimizer_model,
    )
