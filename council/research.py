"""Research gate: decide whether to web-search a question, and run the search."""

import logging
from collections.abc import Sequence

from council.models import EventKind, EventSink, ResearchResult, StreamEvent
from council.providers.base import SearchProvider

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 3


class ResearchGate:
    """Best-effort web research. Never raises on search failure."""

    def __init__(
        self,
        search: SearchProvider | None,
        keywords: Sequence[str],
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> None:
        self._search = search
        self._keywords = tuple(k.lower() for k in keywords)
        self._max_results = max_results

    @property
    def available(self) -> bool:
        return self._search is not None

    def should_research(self, question: str, research_enabled: bool) -> bool:
        if self._search is None:
            return False
        if research_enabled:
            return True
        lowered = question.lower()
        return any(keyword in lowered for keyword in self._keywords)

    async def perform_research(self, query: str, emit: EventSink) -> list[ResearchResult]:
        """Search for the query and return at most max_results results.

        Emits research_start and research_complete around the call. A search
        failure becomes a status event and an empty list.
        """
        if self._search is None:
            return []

        emit(StreamEvent(EventKind.RESEARCH_START, content=f"Searching for: {query}"))
        try:
            results = await self._search.search(query, self._max_results)
        except Exception as exc:
            logger.warning("Research via %s failed: %s", self._search.name(), exc)
            emit(StreamEvent(
                EventKind.STATUS,
                content=f"Web research unavailable, continuing without it ({exc})",
            ))
            results = []
        emit(StreamEvent(EventKind.RESEARCH_COMPLETE))

        results = list(results)[: self._max_results]
        logger.info("Research for %r returned %d results", query[:60], len(results))
        return results
