"""Generation backends for follow-up drafting.

Every backend exposes the same capability, ``generate(system, user_message)``,
and returns the raw model output: a parsed JSON value when the text is
valid JSON, otherwise the text itself. Validation happens downstream; the
backends only deal with transport failures.

Backends are picked by name from ``BACKENDS`` (``GENERATION_BACKEND``
setting), never by inspecting what they return.
"""

import json
import logging
from collections.abc import Callable
from typing import Any, Protocol

import anthropic
import openai
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from src.core.config import Settings
from src.core.exceptions import UpstreamError
from src.core.llm.prompts import PromptAdapter
from src.core.observability import observe

logger = logging.getLogger(__name__)


class GenerationBackend(Protocol):
    name: str
    model: str

    async def generate(self, system: str, user_message: str) -> Any: ...


def parse_model_output(text: str) -> Any:
    """Decode JSON output, falling back to the raw text."""
    cleaned = text.strip()
    # Some models wrap JSON in a markdown fence despite instructions
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.startswith("json"):
            cleaned = cleaned[4:]
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("Generation output is not JSON (%d chars)", len(text))
        return text


class OpenAIBackend:
    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float = 0.5,
        max_tokens: int = 1024,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self._api_key = api_key
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    @observe(name="follow_up_generation_openai")
    async def generate(self, system: str, user_message: str) -> Any:
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                max_completion_tokens=self._max_tokens,
                temperature=self._temperature,
                response_format={"type": "json_object"},
                **PromptAdapter.for_openai(system, [{"role": "user", "content": user_message}]),
            )
        except openai.OpenAIError as e:
            raise UpstreamError(f"OpenAI API error: {e}") from e

        content = resp.choices[0].message.content if resp.choices else None
        if not content:
            raise UpstreamError("Empty response from OpenAI")
        return parse_model_output(content)


class AnthropicBackend:
    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float = 0.5,
        max_tokens: int = 1024,
        client: AsyncAnthropic | None = None,
    ) -> None:
        self.model = model
        self._api_key = api_key
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client = client

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = AsyncAnthropic(api_key=self._api_key)
        return self._client

    @observe(name="follow_up_generation_anthropic")
    async def generate(self, system: str, user_message: str) -> Any:
        try:
            resp = await self.client.messages.create(
                model=self.model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                **PromptAdapter.for_claude(system, [{"role": "user", "content": user_message}]),
            )
        except anthropic.AnthropicError as e:
            raise UpstreamError(f"Anthropic API error: {e}") from e

        text = next((block.text for block in resp.content if block.type == "text"), "")
        if not text:
            raise UpstreamError("Empty response from Anthropic")
        return parse_model_output(text)


def _openai_from_settings(settings: Settings) -> GenerationBackend:
    return OpenAIBackend(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        temperature=settings.generation_temperature,
        max_tokens=settings.generation_max_tokens,
    )


def _anthropic_from_settings(settings: Settings) -> GenerationBackend:
    return AnthropicBackend(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        temperature=settings.generation_temperature,
        max_tokens=settings.generation_max_tokens,
    )


BACKENDS: dict[str, Callable[[Settings], GenerationBackend]] = {
    "openai": _openai_from_settings,
    "anthropic": _anthropic_from_settings,
}


def get_backend(settings: Settings) -> GenerationBackend:
    """Build the generation backend named by ``settings.generation_backend``."""
    factory = BACKENDS.get(settings.generation_backend.lower())
    if factory is None:
        raise ValueError(
            f"Unknown generation backend: {settings.generation_backend}. "
            f"Must be one of: {', '.join(BACKENDS)}"
        )
    return factory(settings)
