"""Hosted-model transport for the scoring and generation oracles.

Anthropic goes through the ``anthropic`` SDK and Ollama through plain
``httpx``; callers only see ``complete(prompt) -> str`` and the
``LLMError`` family.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Literal

import anthropic
import httpx

from jobhunt.config import Settings
from jobhunt.errors import ConfigurationError, LLMError, LLMResponseError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0
ANTHROPIC_MAX_RETRIES = 2


class LLMProvider(ABC):
    """Base class: one prompt in, raw text out."""

    name: str
    _transport_errors: tuple[type[Exception], ...] = (httpx.HTTPError,)

    @abstractmethod
    async def _call_api(self, prompt: str, max_tokens: int) -> str:
        """Make a single API call and return the response text."""

    async def complete(self, prompt: str, max_tokens: int = 1024) -> str:
        """Send a prompt and return the model's text.

        Raises:
            LLMError: on transport/HTTP failure or an empty answer.
        """
        try:
            text = await self._call_api(prompt, max_tokens)
        except self._transport_errors as e:
            raise LLMError(f"{self.name} request failed: {e}") from e
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            raise LLMError(f"{self.name} returned an unexpected payload: {e}") from e

        if not text.strip():
            raise LLMError(f"{self.name} returned an empty response")
        return text


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API through the async SDK client."""

    _transport_errors = (anthropic.APIError, httpx.HTTPError)

    def __init__(
        self,
        api_key: str,
        model: str,
        client: httpx.AsyncClient | None = None,
        max_retries: int = ANTHROPIC_MAX_RETRIES,
    ) -> None:
        if not api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY environment variable is not set")
        self.model = model
        self.name = f"anthropic/{model}"
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key,
            http_client=client,
            max_retries=max_retries,
            timeout=DEFAULT_TIMEOUT,
        )

    async def _call_api(self, prompt: str, max_tokens: int) -> str:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(block.text for block in response.content if block.type == "text")


class OllamaProvider(LLMProvider):
    """Local Ollama generate API."""

    def __init__(self, base_url: str, model: str, client: httpx.AsyncClient | None = None) -> None:
        self._client = client
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.name = f"ollama/{model}"

    async def _call_api(self, prompt: str, max_tokens: int) -> str:
        if self._client is not None:
            return await self._generate(self._client, prompt, max_tokens)
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
            return await self._generate(client, prompt, max_tokens)

    async def _generate(self, client: httpx.AsyncClient, prompt: str, max_tokens: int) -> str:
        response = await client.post(
            f"{self.base_url}/api/generate",
            json={
                "model": self.model,
                "prompt": prompt,
                "stream": False,
                "options": {
                    "temperature": 0.1,
                    "num_predict": max_tokens,
                },
            },
        )
        response.raise_for_status()
        data = response.json()
        return data.get("response", "")


def get_provider(settings: Settings, role: Literal["scoring", "tailor"]) -> LLMProvider:
    """Build the provider for an oracle role from settings.

    Raises:
        ConfigurationError: if the selected provider lacks its credential.
    """
    if settings.llm_provider == "ollama":
        return OllamaProvider(settings.ollama_base_url, settings.ollama_model)
    model = settings.scoring_model if role == "scoring" else settings.tailor_model
    return AnthropicProvider(settings.anthropic_api_key, model)


# =============================================================================
# Response parsing
# =============================================================================


def extract_json(text: str) -> str | None:
    """Extract a JSON object from text that may contain surrounding content."""
    text = text.strip()
    if text.startswith("{"):
        # Find the matching closing brace, ignoring braces inside strings
        depth = 0
        in_string = False
        escaped = False
        for i, ch in enumerate(text):
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[: i + 1]

    # JSON block in markdown code fences
    match = re.search(r"```(?:json)?\s*(\{.*\})\s*```", text, re.DOTALL)
    if match:
        return match.group(1)

    # Any flat or singly-nested JSON object
    match = re.search(r"\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}", text, re.DOTALL)
    if match:
        return match.group(0)

    return None


def parse_json_object(text: str) -> dict[str, Any]:
    """Decode the JSON object embedded in a model response.

    Raises:
        LLMResponseError: if no JSON object can be found or decoded.
    """
    json_str = extract_json(text)
    if not json_str:
        raise LLMResponseError("No JSON object found in model response", raw=text)
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise LLMResponseError(f"JSON parse error: {e}", raw=text) from e
    if not isinstance(data, dict):
        raise LLMResponseError("Model response JSON is not an object", raw=text)
    return data
