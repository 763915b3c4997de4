"""OpenAI provider using openai SDK with native async.

Also serves OpenAI-compatible vendors (xAI Grok, DeepSeek) through base_url.
"""

import asyncio
import logging
import os
import time
from typing import Any

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from council.models import ModelResponse
from council.providers.base import AIProvider, ChunkHandler, ProviderError

logger = logging.getLogger(__name__)


class OpenAIProvider(AIProvider):
    """OpenAI provider via openai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        if config.base_url:
            self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)
        else:
            self._client = AsyncOpenAI(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def _stream(self, kwargs: dict[str, Any], on_chunk: ChunkHandler) -> tuple[str, int | None]:
        parts: list[str] = []
        token_count: int | None = None
        stream = await self._client.chat.completions.create(
            **kwargs,
            stream=True,
            stream_options={"include_usage": True},
        )
        async for chunk in stream:
            if chunk.usage:
                token_count = chunk.usage.total_tokens
            if not chunk.choices:
                continue
            text = chunk.choices[0].delta.content
            if text:
                parts.append(text)
                on_chunk(text)
        return "".join(parts), token_count

    async def _create(self, kwargs: dict[str, Any]) -> tuple[str, int | None]:
        response = await self._client.chat.completions.create(**kwargs)
        choice = response.choices[0] if response.choices else None
        content = choice.message.content if choice and choice.message.content else ""
        token_count = response.usage.total_tokens if response.usage else None
        return content, token_count

    async def complete(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        max_tokens: int,
        on_chunk: ChunkHandler | None = None,
    ) -> ModelResponse:
        chat: list[dict[str, str]] = []
        if system_prompt:
            chat.append({"role": "system", "content": system_prompt})
        chat.extend(messages)
        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "messages": chat,
            "max_tokens": max_tokens,
        }
        call = self._stream(kwargs, on_chunk) if on_chunk else self._create(kwargs)

        start = time.monotonic()
        try:
            content, token_count = await asyncio.wait_for(call, timeout=self._config.timeout_sec)
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not content.strip():
            raise ProviderError(self._config.name, "Empty response content")

        logger.info(
            "OpenAI-compatible %s (%s): %.2fs, %s tokens",
            "stream" if on_chunk else "call",
            self._config.name,
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
