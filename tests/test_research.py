"""Tests for council/research.py."""

import pytest

from council.models import EventKind, ResearchResult
from council.research import ResearchGate
from tests.conftest import MockSearch


@pytest.fixture
def gate(sample_results) -> ResearchGate:
    return ResearchGate(MockSearch(sample_results), keywords=["Latest Data", "statistics"])


def test_should_research_without_provider_is_false():
    gate = ResearchGate(None, keywords=["statistics"])
    assert gate.available is False
    assert gate.should_research("statistics please", research_enabled=True) is False


def test_should_research_when_forced(gate):
    assert gate.should_research("Should I hire an editor?", research_enabled=True) is True


def test_should_research_on_keyword_case_insensitive(gate):
    assert gate.should_research("What does the LATEST DATA say?", research_enabled=False) is True
    assert gate.should_research("Should I hire an editor?", research_enabled=False) is False


async def test_perform_research_emits_start_and_complete(gate, event_log, sample_results):
    results = await gate.perform_research("latest data on creators", event_log)
    assert results == sample_results
    assert event_log.kinds() == ["research_start", "research_complete"]
    assert event_log[0].content == "Searching for: latest data on creators"


async def test_perform_research_caps_results(event_log):
    many = [ResearchResult(f"T{i}", f"https://x/{i}", "s") for i in range(6)]
    search = MockSearch(many)
    gate = ResearchGate(search, keywords=[], max_results=2)

    results = await gate.perform_research("q", event_log)

    assert len(results) == 2
    assert search.queries == [("q", 2)]


async def test_perform_research_failure_is_swallowed(event_log):
    gate = ResearchGate(MockSearch(error="HTTP 429"), keywords=[])

    results = await gate.perform_research("q", event_log)

    assert results == []
    assert event_log.kinds() == ["research_start", "status", "research_complete"]
    assert "HTTP 429" in event_log[1].content
    assert not any(e.kind is EventKind.ERROR for e in event_log)
