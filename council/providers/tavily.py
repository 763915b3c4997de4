"""Tavily web-search provider over its REST API (httpx, async)."""

import logging
import os
import time

import httpx

from config.config_loader import SearchConfig
from council.models import ResearchResult
from council.providers.base import SearchError, SearchProvider

logger = logging.getLogger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"


class TavilySearchProvider(SearchProvider):
    """Web search via Tavily. Results map content -> snippet."""

    def __init__(self, config: SearchConfig, http_client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._api_key = os.environ.get(config.api_key_env, "").strip()
        if not self._api_key:
            raise SearchError(config.name, f"Missing API key: {config.api_key_env}")
        self._http_client = http_client

    def name(self) -> str:
        return self._config.name

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> dict:
        response = await client.post(
            TAVILY_SEARCH_URL,
            json=payload,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
        response.raise_for_status()
        return response.json()

    async def search(self, query: str, max_results: int) -> list[ResearchResult]:
        payload = {
            "query": query.strip(),
            "max_results": max_results,
            "search_depth": self._config.search_depth,
            "include_answer": False,
            "include_raw_content": False,
        }

        start = time.monotonic()
        try:
            if self._http_client is not None:
                data = await self._post(self._http_client, payload)
            else:
                async with httpx.AsyncClient(timeout=self._config.timeout_sec) as client:
                    data = await self._post(client, payload)
        except httpx.TimeoutException as exc:
            raise SearchError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except httpx.HTTPStatusError as exc:
            raise SearchError(self._config.name, f"HTTP {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise SearchError(self._config.name, f"Search failed: {exc}") from exc

        results = [
            ResearchResult(
                title=item.get("title") or "Untitled",
                url=item.get("url") or "",
                snippet=item.get("content") or "",
            )
            for item in data.get("results") or []
        ]

        logger.info(
            "Tavily search: %.2fs, %d results",
            time.monotonic() - start,
            len(results),
        )
        return results[:max_results]
