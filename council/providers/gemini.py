"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from council.models import ModelResponse
from council.providers.base import AIProvider, ChunkHandler, ProviderError

logger = logging.getLogger(__name__)

_ROLE_MAP = {"user": "user", "assistant": "model"}


def _to_contents(messages: list[dict[str, str]]) -> list[genai_types.Content]:
    return [
        genai_types.Content(
            role=_ROLE_MAP.get(m["role"], "user"),
            parts=[genai_types.Part(text=m["content"])],
        )
        for m in messages
    ]


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def _stream(
        self,
        contents: list[genai_types.Content],
        gen_config: genai_types.GenerateContentConfig,
        on_chunk: ChunkHandler,
    ) -> tuple[str, int | None]:
        parts: list[str] = []
        token_count: int | None = None
        stream = await self._client.aio.models.generate_content_stream(
            model=self._config.model,
            contents=contents,
            config=gen_config,
        )
        async for chunk in stream:
            if chunk.usage_metadata:
                token_count = chunk.usage_metadata.total_token_count
            if chunk.text:
                parts.append(chunk.text)
                on_chunk(chunk.text)
        return "".join(parts), token_count

    async def _create(
        self,
        contents: list[genai_types.Content],
        gen_config: genai_types.GenerateContentConfig,
    ) -> tuple[str, int | None]:
        response = await self._client.aio.models.generate_content(
            model=self._config.model,
            contents=contents,
            config=gen_config,
        )
        token_count = response.usage_metadata.total_token_count if response.usage_metadata else None
        return response.text or "", token_count

    async def complete(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        max_tokens: int,
        on_chunk: ChunkHandler | None = None,
    ) -> ModelResponse:
        gen_config = genai_types.GenerateContentConfig(
            max_output_tokens=max_tokens,
            system_instruction=system_prompt or None,
        )
        contents = _to_contents(messages)
        call = self._stream(contents, gen_config, on_chunk) if on_chunk else self._create(contents, gen_config)

        start = time.monotonic()
        try:
            content, token_count = await asyncio.wait_for(call, timeout=self._config.timeout_sec)
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not content.strip():
            raise ProviderError(self._config.name, "Empty response text")

        logger.info(
            "Gemini %s: %.2fs, %s tokens",
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
