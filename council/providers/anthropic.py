"""Anthropic Claude provider using anthropic SDK with native async."""

import asyncio
import logging
import os
import time
from typing import Any

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from council.models import ModelResponse
from council.providers.base import AIProvider, ChunkHandler, ProviderError

logger = logging.getLogger(__name__)


class AnthropicProvider(AIProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _request_kwargs(
        self, system_prompt: str, messages: list[dict[str, str]], max_tokens: int
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if system_prompt:
            # Personas repeat every round, so mark them cacheable
            kwargs["system"] = [
                {
                    "type": "text",
                    "text": system_prompt,
                    "cache_control": {"type": "ephemeral"},
                }
            ]
        return kwargs

    async def _stream(self, kwargs: dict[str, Any], on_chunk: ChunkHandler) -> tuple[str, Any]:
        parts: list[str] = []
        async with self._client.messages.stream(**kwargs) as stream:
            async for text in stream.text_stream:
                parts.append(text)
                on_chunk(text)
            final = await stream.get_final_message()
        return "".join(parts), final.usage

    async def _create(self, kwargs: dict[str, Any]) -> tuple[str, Any]:
        response = await self._client.messages.create(**kwargs)
        text_blocks = [b.text for b in response.content if b.type == "text"]
        return "\n".join(text_blocks), response.usage

    async def complete(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        max_tokens: int,
        on_chunk: ChunkHandler | None = None,
    ) -> ModelResponse:
        kwargs = self._request_kwargs(system_prompt, messages, max_tokens)
        call = self._stream(kwargs, on_chunk) if on_chunk else self._create(kwargs)

        start = time.monotonic()
        try:
            content, usage = await asyncio.wait_for(call, timeout=self._config.timeout_sec)
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not content.strip():
            raise ProviderError(self._config.name, "Empty response content")

        token_count: int | None = None
        if usage:
            token_count = usage.input_tokens + usage.output_tokens

        logger.info(
            "Anthropic %s: %.2fs, %s tokens",
            "stream" if on_chunk else "call",
            latency,
            token_count,
        )

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=content,
            latency_sec=latency,
            token_count=token_count,
        )
