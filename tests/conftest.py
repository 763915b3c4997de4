"""Shared pytest fixtures."""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import (
    AppConfig,
    DefaultsConfig,
    LimitsConfig,
    ModelConfig,
    PromptsConfig,
    ResearchConfig,
)
from council.models import ModelResponse, ResearchResult, StreamEvent
from council.personas import PERSONAS
from council.providers.base import AIProvider, ChunkHandler, ProviderError, SearchError, SearchProvider

CONSENSUS_YES = """CONSENSUS: YES
AGREEMENT_LEVEL: 85
AGREEMENTS:
- Focus on distribution first
- Skip the editor for now
DISAGREEMENTS:
- How fast to scale output
MAJORITY_VIEW: Grow the audience before spending on production.
MINORITY_VIEWS: Pavel prefers slower organic growth.
"""

CONSENSUS_NO = """CONSENSUS: NO
AGREEMENT_LEVEL: 40
AGREEMENTS:
- Budget is tight
DISAGREEMENTS:
- Whether to hire at all
MAJORITY_VIEW: Wait before hiring.
MINORITY_VIEWS: Hire now.
"""


def advisor_for(system_prompt: str) -> str | None:
    """Persona id whose system prompt this is, or None."""
    for persona in PERSONAS.values():
        if persona.system_prompt == system_prompt:
            return persona.id
    return None


class ScriptedProvider(AIProvider):
    """Test double completion client.

    Advisor calls answer "<id> round <n>" (counting that advisor's calls),
    streamed word by word. Moderator calls answer with the consensus reply
    or the final answer depending on the prompt. Pass `fail` to make an
    advisor's calls raise, and override any reply via `replies`.
    """

    def __init__(
        self,
        consensus_reply: str = CONSENSUS_NO,
        final_reply: str = "Final answer: grow the audience first.",
        clarification_reply: str = "CLEAR",
        fail: Callable[[str, int], bool] | None = None,
        replies: Callable[[str, int], str] | None = None,
    ) -> None:
        self.consensus_reply = consensus_reply
        self.final_reply = final_reply
        self.clarification_reply = clarification_reply
        self._fail = fail
        self._replies = replies
        self.calls: list[dict] = []
        self.advisor_calls: dict[str, int] = {}

    def name(self) -> str:
        return "scripted"

    def model_string(self) -> str:
        return "scripted-model"

    def calls_for(self, advisor: str) -> list[dict]:
        return [c for c in self.calls if c["advisor"] == advisor]

    @property
    def moderator_calls(self) -> list[dict]:
        return [c for c in self.calls if c["advisor"] == "moderator"]

    async def complete(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        max_tokens: int,
        on_chunk: ChunkHandler | None = None,
    ) -> ModelResponse:
        advisor = advisor_for(system_prompt)
        prompt = messages[-1]["content"]
        self.calls.append({
            "advisor": advisor,
            "prompt": prompt,
            "max_tokens": max_tokens,
            "streamed": on_chunk is not None,
        })

        if advisor == "moderator":
            if "CONSENSUS:" in prompt:
                content = self.consensus_reply
            elif "NEEDS_CLARIFICATION" in prompt:
                content = self.clarification_reply
            else:
                content = self.final_reply
        else:
            n = self.advisor_calls.get(advisor, 0) + 1
            self.advisor_calls[advisor] = n
            if self._fail and self._fail(advisor, n):
                raise ProviderError("scripted", f"{advisor} unavailable")
            content = self._replies(advisor, n) if self._replies else f"{advisor} round {n}"

        if on_chunk:
            words = content.split(" ")
            for i, word in enumerate(words):
                on_chunk(word if i == len(words) - 1 else word + " ")

        return ModelResponse(
            provider="scripted",
            model="scripted-model",
            content=content,
            latency_sec=0.01,
            token_count=len(content.split()),
        )


class MockProvider(AIProvider):
    """Test double AIProvider backed by an AsyncMock."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because complete is defined in the class body below.
        self.complete = AsyncMock(  # type: ignore[assignment]
            return_value=ModelResponse(
                provider=provider_name,
                model="mock-model",
                content=response_content,
                latency_sec=0.1,
                token_count=10,
            )
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def complete(  # type: ignore[override]
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        max_tokens: int,
        on_chunk: ChunkHandler | None = None,
    ) -> ModelResponse:
        """Default implementation; replaced by AsyncMock in __init__."""
        return ModelResponse(self._name, "mock-model", self._response_content, 0.1, 10)


class MockSearch(SearchProvider):
    """Test double search provider."""

    def __init__(self, results: list[ResearchResult] | None = None, error: str | None = None) -> None:
        self._results = results or []
        self._error = error
        self.queries: list[tuple[str, int]] = []

    def name(self) -> str:
        return "mock-search"

    async def search(self, query: str, max_results: int) -> list[ResearchResult]:
        self.queries.append((query, max_results))
        if self._error:
            raise SearchError("mock-search", self._error)
        return list(self._results)


class EventLog(list):
    """Collects StreamEvents; callable so it can be passed as an event sink."""

    def __call__(self, event: StreamEvent) -> None:
        self.append(event)

    def kinds(self) -> list[str]:
        return [e.kind.value for e in self]

    def of(self, kind: str) -> list[StreamEvent]:
        return [e for e in self if e.kind.value == kind]


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        round_one='Question: "{question}"{context}\n\nRound 1. Give your view.{citation_hint}',
        follow_up=(
            'Question: "{question}"{context}\n\nRound {round}. Others said:\n\n'
            "{other_advisors}\n\nRespond.{citation_hint}"
        ),
        consensus='Question: "{question}"\n\n{responses}\n\nReply with CONSENSUS: [YES/NO] and the other fields.',
        final_answer=(
            'Question: "{question}"\nConsensus: {consensus_reached} ({agreement_pct}%)\n'
            "Agreements: {agreements}\nDisagreements: {disagreements}\nMajority: {majority_view}\n"
            "Transcript ({rounds} rounds):\n{transcript}\n\n{framing}"
        ),
        clarification='Is "{question}" clear? Reply NEEDS_CLARIFICATION: <question> or CLEAR.',
    )


@pytest.fixture
def sample_limits_config() -> LimitsConfig:
    return LimitsConfig()


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="claude",
        sdk="anthropic",
        model="claude-sonnet-4-20250514",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        input_price_per_mtok=3.0,
        output_price_per_mtok=15.0,
    )


@pytest.fixture
def sample_app_config(
    tmp_path: Path,
    sample_prompts_config: PromptsConfig,
    sample_model_config: ModelConfig,
) -> AppConfig:
    return AppConfig(
        defaults=DefaultsConfig(
            mode="standard",
            advisors=["naval", "elon", "larry"],
            model="claude",
            output_dir=tmp_path / "output",
        ),
        models={"claude": sample_model_config},
        prompts=sample_prompts_config,
        research=ResearchConfig(keywords=["research", "latest data"]),
        available_providers={"claude"},
    )


@pytest.fixture
def sample_results() -> list[ResearchResult]:
    return [
        ResearchResult("Creator economy report", "https://example.com/a", "Small channels grow via titles."),
        ResearchResult("Thumbnail CTR study", "https://example.com/b", "CTR drives early growth."),
    ]


@pytest.fixture
def scripted_provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()
